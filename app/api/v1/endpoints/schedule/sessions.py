from app.api.v1.endpoints.schedule.common import *

router = APIRouter()


@router.get("/date-range", response_model=List[ClassSession])
async def get_sessions_by_date_range(
    start_date: date = Query(..., description="First local day (inclusive)"),
    end_date: date = Query(..., description="Last local day (inclusive)"),
    class_id: Optional[int] = Query(None, description="Only sessions of this class"),
    skip: int = Query(0, ge=0),
    limit: int = Query(500, ge=1, le=2000),
    db: Session = Depends(get_db),
    current_gym: GymSchema = Depends(verify_gym_access)
) -> Any:
    """
    Get Sessions by Date Range

    Retrieves the sessions whose start falls between the start of `start_date`
    and the end of `end_date`, both interpreted as calendar days in the gym's
    timezone, ordered by start time.

    Timezone
    - start_time/end_time are UTC instants.
    - start_time_local/end_time_local are the same instants in the gym's timezone.

    Raises:
        400: start_date is after end_date.
    """
    return await class_session_service.get_sessions_by_date_range(
        db, gym_id=current_gym.id, start_date=start_date, end_date=end_date,
        class_id=class_id, skip=skip, limit=limit
    )


@router.get("/{session_id}", response_model=ClassSession)
async def get_session(
    session_id: int = Path(..., description="ID of the session"),
    db: Session = Depends(get_db),
    current_gym: GymSchema = Depends(verify_gym_access)
) -> Any:
    """Get a single session of the current gym."""
    return await class_session_service.get_session(db, session_id=session_id, gym_id=current_gym.id)


@router.post("", response_model=ClassSession, status_code=status.HTTP_201_CREATED,
             responses={409: {"model": SessionConflictResponse}})
async def create_session(
    session_data: ClassSessionCreate = Body(...),
    db: Session = Depends(get_db),
    current_gym: GymSchema = Depends(verify_gym_access)
) -> Any:
    """
    Create Session

    Creates a single session after checking that it does not overlap any other
    session of the same class. Intervals are half-open, so a session may start
    exactly when another one ends.

    Naive datetimes are interpreted in the gym's timezone; timezone-aware ones
    are converted to UTC as given.

    Returns:
        ClassSession: The created session.

    Raises:
        409: The session overlaps existing sessions (listed in `details`).
        404: The class does not exist in the current gym.
        400: The class is inactive or end_time <= start_time.
    """
    result = await class_session_service.create_session(db, session_data=session_data, gym_id=current_gym.id)
    if result.status == "conflict":
        return conflict_response("La sesión se solapa con otras sesiones de la clase", result.conflicts)
    return result.session


@router.put("/{session_id}", response_model=ClassSession,
            responses={409: {"model": SessionConflictResponse}})
async def update_session(
    session_id: int = Path(..., description="ID of the session"),
    session_data: ClassSessionUpdate = Body(...),
    db: Session = Depends(get_db),
    current_gym: GymSchema = Depends(verify_gym_access)
) -> Any:
    """
    Update Session

    Moves, resizes or edits a session. A new interval is checked against the
    other sessions of the class (the session itself is excluded).

    Raises:
        409: The new interval overlaps existing sessions.
        404: The session does not exist in the current gym.
    """
    result = await class_session_service.update_session(
        db, session_id=session_id, session_data=session_data, gym_id=current_gym.id
    )
    if result.status == "conflict":
        return conflict_response("El nuevo horario se solapa con otras sesiones de la clase", result.conflicts)
    return result.session


@router.delete("/{session_id}", response_model=ClassSession)
async def delete_session(
    session_id: int = Path(..., description="ID of the session"),
    db: Session = Depends(get_db),
    current_gym: GymSchema = Depends(verify_gym_access)
) -> Any:
    """Delete a single session and return it."""
    return await class_session_service.delete_session(db, session_id=session_id, gym_id=current_gym.id)
