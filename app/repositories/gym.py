from typing import Optional, List
from sqlalchemy.orm import Session

from app.models.gym import Gym
from app.repositories.base import BaseRepository
from app.schemas.gym import GymCreate, GymUpdate


class GymRepository(BaseRepository[Gym, GymCreate, GymUpdate]):
    """Gimnasios (tenants). El modelo no tiene gym_id, así que nada se filtra por tenant."""

    def get_by_subdomain(self, db: Session, *, subdomain: str) -> Optional[Gym]:
        return db.query(Gym).filter(Gym.subdomain == subdomain).first()

    def get_active_gyms(self, db: Session, *, skip: int = 0, limit: int = 100) -> List[Gym]:
        """Gimnasios activos ordenados por ID."""
        return db.query(Gym).filter(
            Gym.is_active == True
        ).order_by(Gym.id).offset(skip).limit(limit).all()


gym_repository = GymRepository(Gym)
