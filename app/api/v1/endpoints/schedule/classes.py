from app.api.v1.endpoints.schedule.common import *

router = APIRouter()


@router.get("", response_model=List[Class])
async def get_classes(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    active_only: bool = Query(False, description="Only return active classes"),
    db: Session = Depends(get_db),
    current_gym: GymSchema = Depends(verify_gym_access),
    redis_client: Optional[Redis] = Depends(get_redis_client)
) -> Any:
    """
    List Classes

    Retrieves the class definitions of the current gym, ordered by name.

    Args:
        skip (int): Number of records to skip for pagination.
        limit (int): Maximum number of records to return.
        active_only (bool): If True, inactive classes are excluded.

    Returns:
        List[Class]: The gym's classes.
    """
    return await class_service.get_classes(
        db, gym_id=current_gym.id, active_only=active_only,
        skip=skip, limit=limit, redis_client=redis_client
    )


@router.get("/{class_id}", response_model=Class)
async def get_class(
    class_id: int = Path(..., description="ID of the class"),
    db: Session = Depends(get_db),
    current_gym: GymSchema = Depends(verify_gym_access),
    redis_client: Optional[Redis] = Depends(get_redis_client)
) -> Any:
    """
    Get Class

    Raises:
        404: The class does not exist in the current gym.
    """
    return await class_service.get_class(db, class_id=class_id, gym_id=current_gym.id, redis_client=redis_client)


@router.post("", response_model=Class, status_code=status.HTTP_201_CREATED)
async def create_class(
    class_data: ClassCreate = Body(...),
    db: Session = Depends(get_db),
    current_gym: GymSchema = Depends(verify_gym_access),
    redis_client: Optional[Redis] = Depends(get_redis_client)
) -> Any:
    """
    Create Class

    Creates a class definition in the current gym. The gym is taken from the
    X-Gym-ID header, never from the body.
    """
    return await class_service.create_class(db, class_data=class_data, gym_id=current_gym.id, redis_client=redis_client)


@router.put("/{class_id}", response_model=Class)
async def update_class(
    class_id: int = Path(..., description="ID of the class"),
    class_data: ClassUpdate = Body(...),
    db: Session = Depends(get_db),
    current_gym: GymSchema = Depends(verify_gym_access),
    redis_client: Optional[Redis] = Depends(get_redis_client)
) -> Any:
    """
    Update Class

    Partially updates a class. Deactivating a class prevents new sessions from
    being scheduled for it; existing sessions are kept.
    """
    return await class_service.update_class(
        db, class_id=class_id, class_data=class_data, gym_id=current_gym.id, redis_client=redis_client
    )
