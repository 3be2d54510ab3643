from app.api.v1.endpoints.schedule.common import *

router = APIRouter()


@router.get("", response_model=List[ScheduleRule])
async def get_rules(
    class_id: Optional[int] = Query(None, description="Only rules of this class"),
    db: Session = Depends(get_db),
    current_gym: GymSchema = Depends(verify_gym_access)
) -> Any:
    """List the recurring weekly rules of the current gym."""
    return await schedule_rule_service.get_rules(db, gym_id=current_gym.id, class_id=class_id)


@router.post("", response_model=List[ScheduleRule], status_code=status.HTTP_201_CREATED)
async def create_rules(
    rule_data: ScheduleRuleCreate = Body(...),
    db: Session = Depends(get_db),
    current_gym: GymSchema = Depends(verify_gym_access)
) -> Any:
    """
    Create Schedule Rules

    Creates one weekly rule per selected weekday (0=Sunday ... 6=Saturday).
    Rules do not create sessions by themselves; use POST /rules/generate.
    """
    return await schedule_rule_service.create_rules(db, rule_data=rule_data, gym_id=current_gym.id)


@router.post("/generate", response_model=RuleGenerateResult)
async def generate_from_rules(
    request: Optional[RuleGenerateRequest] = Body(None),
    db: Session = Depends(get_db),
    current_gym: GymSchema = Depends(verify_gym_access)
) -> Any:
    """
    Materialize Rules

    Creates the sessions of every active rule inside the window. By default the
    window starts today (gym timezone) and spans RULES_DEFAULT_WINDOW_DAYS days.

    - Occurrences whose exact start already exists are counted in `skipped_existing`.
    - Occurrences overlapping other sessions are listed in `conflicts` and skipped.
    - Exceptions can skip a date or override its times and capacity.
    """
    request = request or RuleGenerateRequest()
    return await schedule_rule_service.materialize_rules(
        db, gym_id=current_gym.id, from_date=request.from_date,
        to_date=request.to_date, class_id=request.class_id
    )


@router.put("/{rule_id}", response_model=List[ScheduleRule])
async def update_rule(
    rule_id: int = Path(..., description="ID of the rule"),
    rule_data: ScheduleRuleUpdate = Body(...),
    db: Session = Depends(get_db),
    current_gym: GymSchema = Depends(verify_gym_access)
) -> Any:
    """
    Update Schedule Rule

    If `weekdays` is exactly the rule's current weekday the rule is updated in
    place. Otherwise the rule (and its exceptions) is replaced by one new rule
    per selected weekday.
    """
    return await schedule_rule_service.update_rule(db, rule_id=rule_id, rule_data=rule_data, gym_id=current_gym.id)


@router.delete("/{rule_id}", response_model=ScheduleRule)
async def delete_rule(
    rule_id: int = Path(..., description="ID of the rule"),
    db: Session = Depends(get_db),
    current_gym: GymSchema = Depends(verify_gym_access)
) -> Any:
    """Delete a rule and its exceptions. Already generated sessions are kept."""
    return await schedule_rule_service.delete_rule(db, rule_id=rule_id, gym_id=current_gym.id)


@router.get("/{rule_id}/exceptions", response_model=List[ScheduleException])
async def get_rule_exceptions(
    rule_id: int = Path(..., description="ID of the rule"),
    db: Session = Depends(get_db),
    current_gym: GymSchema = Depends(verify_gym_access)
) -> Any:
    return await schedule_rule_service.get_exceptions(db, rule_id=rule_id, gym_id=current_gym.id)


@router.put("/{rule_id}/exceptions", response_model=ScheduleException)
async def upsert_rule_exception(
    rule_id: int = Path(..., description="ID of the rule"),
    exception_data: ScheduleExceptionUpsert = Body(...),
    db: Session = Depends(get_db),
    current_gym: GymSchema = Depends(verify_gym_access)
) -> Any:
    """
    Upsert Rule Exception

    There is at most one exception per rule and date: sending the same
    `on_date` again replaces it.
    """
    return await schedule_rule_service.upsert_exception(
        db, rule_id=rule_id, exception_data=exception_data, gym_id=current_gym.id
    )


@router.delete("/exceptions/{exception_id}", response_model=ScheduleException)
async def delete_rule_exception(
    exception_id: int = Path(..., description="ID of the exception"),
    db: Session = Depends(get_db),
    current_gym: GymSchema = Depends(verify_gym_access)
) -> Any:
    return await schedule_rule_service.delete_exception(db, exception_id=exception_id, gym_id=current_gym.id)
