from fastapi import Header, HTTPException, Depends, Request, status
from sqlalchemy.orm import Session
from typing import Optional
import logging

from redis.asyncio import Redis

from app.db.session import get_db
from app.db.redis_client import get_redis_client
from app.schemas.gym import Gym as GymSchema
from app.services.gym import gym_service

logger = logging.getLogger("tenant_verification")


async def get_tenant_id(
    x_gym_id: Optional[str] = Header(None, alias="X-Gym-ID")
) -> Optional[int]:
    """
    Obtiene el ID del tenant (gimnasio) únicamente del header X-Gym-ID.
    """
    if x_gym_id:
        try:
            return int(x_gym_id)
        except (ValueError, TypeError):
            logger.warning(f"Formato inválido para X-Gym-ID: {x_gym_id}")
            return None
    return None


async def get_current_gym(
    db: Session = Depends(get_db),
    tenant_id: Optional[int] = Depends(get_tenant_id),
    redis_client: Optional[Redis] = Depends(get_redis_client)
) -> Optional[GymSchema]:
    """
    Obtiene el gimnasio actual basado en el tenant ID, usando caché Redis si existe.
    Devuelve None si no se proporciona tenant_id o si el gym no existe.
    """
    if not tenant_id:
        return None

    gym_schema = await gym_service.get_gym_cached(db, tenant_id, redis_client)
    if not gym_schema:
        logger.warning(f"El gimnasio con ID {tenant_id} no existe.")
    return gym_schema


async def verify_gym_access(
    request: Request,
    tenant_id: Optional[int] = Depends(get_tenant_id),
    current_gym: Optional[GymSchema] = Depends(get_current_gym),
) -> GymSchema:
    """
    Dependencia: exige un X-Gym-ID válido que corresponda a un gimnasio activo.
    """
    if tenant_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Header 'X-Gym-ID' requerido. Debe especificar el ID del gimnasio al que desea acceder."
        )
    if current_gym is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Gimnasio {tenant_id} no encontrado"
        )
    if not current_gym.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"El gimnasio '{current_gym.name}' no está activo"
        )

    logger.debug(f"Acceso concedido a gym {current_gym.id} para {request.method} {request.url.path}")
    return current_gym
