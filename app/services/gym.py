from typing import List, Optional
from sqlalchemy.orm import Session
import logging

from fastapi import HTTPException, status
from redis.asyncio import Redis

from app.core.config import get_settings
from app.models.gym import Gym
from app.schemas.gym import GymCreate, GymUpdate, Gym as GymSchema
from app.repositories.gym import gym_repository
from app.services.cache_service import cache_service

logger = logging.getLogger(__name__)


class GymService:
    def create_gym(self, db: Session, *, gym_in: GymCreate) -> Gym:
        """
        Crear un nuevo gimnasio.

        Args:
            db: Sesión de base de datos
            gym_in: Datos del gimnasio a crear

        Returns:
            El gimnasio creado

        Raises:
            HTTPException: Si el subdominio ya está en uso
        """
        if gym_repository.get_by_subdomain(db, subdomain=gym_in.subdomain):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"El subdominio '{gym_in.subdomain}' ya está en uso"
            )
        gym = gym_repository.create(db, obj_in=gym_in)
        logger.info(f"Gimnasio creado: {gym.id} ({gym.subdomain}, {gym.timezone})")
        return gym

    def get_gym(self, db: Session, gym_id: int) -> Optional[Gym]:
        """Obtener un gimnasio por su ID (None si no existe)."""
        return gym_repository.get(db, id=gym_id)

    async def get_gym_cached(self, db: Session, gym_id: int, redis_client: Optional[Redis] = None) -> Optional[GymSchema]:
        """Obtener un gimnasio por su ID usando la caché si está disponible."""
        async def db_fetch():
            return gym_repository.get(db, id=gym_id)

        return await cache_service.get_or_set(
            redis_client=redis_client,
            cache_key=f"gym:details:{gym_id}",
            db_fetch_func=db_fetch,
            model_class=GymSchema,
            expiry_seconds=get_settings().CACHE_TTL_GYM,
        )

    def get_gyms(self, db: Session, *, skip: int = 0, limit: int = 100) -> List[Gym]:
        return gym_repository.get_active_gyms(db, skip=skip, limit=limit)

    async def update_gym(self, db: Session, *, gym: Gym, gym_in: GymUpdate,
                         redis_client: Optional[Redis] = None) -> Gym:
        """Actualizar un gimnasio e invalidar su caché."""
        updated = gym_repository.update(db, db_obj=gym, obj_in=gym_in)
        await cache_service.delete_pattern(redis_client, f"gym:details:{gym.id}")
        return updated


gym_service = GymService()
