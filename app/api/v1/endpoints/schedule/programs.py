from app.api.v1.endpoints.schedule.common import *

router = APIRouter()


@router.post("/generate", response_model=ProgramGenerateResult,
             responses={409: {"model": SessionConflictResponse}})
async def generate_program(
    request: ProgramGenerateRequest = Body(...),
    db: Session = Depends(get_db),
    current_gym: GymSchema = Depends(verify_gym_access)
) -> Any:
    """
    Generate Program

    Creates one session for every date between `from_date` and `to_date`
    (inclusive) whose weekday, in the gym's timezone, equals `day_of_week`
    (0=Sunday ... 6=Saturday). `start_time`/`end_time` are local wall-clock
    times (HH:MM) and must describe a window within the same day.

    All sessions are inserted in a single batch. If any of them overlaps an
    existing session of the class, nothing is inserted and a 409 lists the
    conflicting sessions.

    Returns:
        ProgramGenerateResult: `status="created"` with the sessions, or
        `status="none_created"` and `created=0` when no date matched.

    Raises:
        409: Overlap with existing sessions.
        400: Range longer than PROGRAM_MAX_RANGE_DAYS, inactive class.
        422: from_date > to_date or start_time >= end_time.
    """
    result = await class_session_service.generate_program(db, request=request, gym_id=current_gym.id)
    if result.status == "conflict":
        return conflict_response("El programa se solapa con sesiones existentes de la clase", result.conflicts)
    return result


@router.post("/delete", response_model=ProgramDeleteResult)
async def delete_program(
    request: ProgramDeleteRequest = Body(...),
    db: Session = Depends(get_db),
    current_gym: GymSchema = Depends(verify_gym_access)
) -> Any:
    """
    Delete Program

    Deletes the sessions of a class that start between the start of
    `from_date` and the end of `to_date` (local days, inclusive), on one of the
    `selected_days`, and optionally at one exact local start time.

    `time_filter` is either `{"mode": "specific", "time": "HH:MM"}` or
    `{"mode": "all"}`. With `dry_run=true` the matching ids are returned and
    nothing is deleted.

    Returns:
        ProgramDeleteResult: `status` is `deleted`, `preview` or
        `nothing_matched` (no session satisfied the filters).
    """
    return await class_session_service.delete_program(db, request=request, gym_id=current_gym.id)
