"""
Endpoints para la gestión de gimnasios (tenants).

La zona horaria del gimnasio determina cómo se interpretan las fechas locales,
los días de la semana y las horas de reloj de toda la programación de clases.
"""

from typing import Any, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Path, Query, status, Body
from sqlalchemy.orm import Session
from redis.asyncio import Redis
import logging

from app.services.gym import gym_service
from app.schemas.gym import Gym as GymSchema, GymCreate, GymUpdate
from app.db.session import get_db
from app.db.redis_client import get_redis_client

# Definir logger para este módulo
logger = logging.getLogger("gym_endpoint")

router = APIRouter()


@router.post("", response_model=GymSchema, status_code=status.HTTP_201_CREATED)
async def create_gym(
    *,
    db: Session = Depends(get_db),
    gym_in: GymCreate = Body(...)
) -> Any:
    """
    Crear un nuevo gimnasio.

    Args:
        db: Sesión de base de datos
        gym_in: Datos del gimnasio a crear (nombre, subdominio, zona horaria IANA)

    Returns:
        Gym: El nuevo gimnasio creado

    Raises:
        HTTPException: 400 si ya existe un gimnasio con el mismo subdominio
    """
    return gym_service.create_gym(db, gym_in=gym_in)


@router.get("", response_model=List[GymSchema])
async def read_gyms(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db)
) -> Any:
    """Listar los gimnasios activos."""
    return gym_service.get_gyms(db, skip=skip, limit=limit)


@router.get("/{gym_id}", response_model=GymSchema)
async def read_gym(
    gym_id: int = Path(..., title="ID del gimnasio"),
    db: Session = Depends(get_db),
    redis_client: Optional[Redis] = Depends(get_redis_client)
) -> Any:
    """Obtener un gimnasio por su ID."""
    gym = await gym_service.get_gym_cached(db, gym_id, redis_client)
    if not gym:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Gimnasio no encontrado")
    return gym


@router.put("/{gym_id}", response_model=GymSchema)
async def update_gym(
    gym_id: int = Path(..., title="ID del gimnasio"),
    gym_in: GymUpdate = Body(...),
    db: Session = Depends(get_db),
    redis_client: Optional[Redis] = Depends(get_redis_client)
) -> Any:
    """
    Actualizar nombre, zona horaria o estado de un gimnasio.

    Cambiar la zona horaria no modifica las sesiones ya creadas (son instantes UTC).
    """
    gym = gym_service.get_gym(db, gym_id)
    if not gym:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Gimnasio no encontrado")
    updated = await gym_service.update_gym(db, gym=gym, gym_in=gym_in, redis_client=redis_client)
    logger.info(f"Gimnasio {gym_id} actualizado")
    return updated
