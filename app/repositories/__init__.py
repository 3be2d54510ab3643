# Inicializador del paquete repositories
from app.repositories.base import BaseRepository
from app.repositories.gym import gym_repository
from app.repositories.schedule import (
    class_repository,
    class_session_repository,
    schedule_rule_repository,
    schedule_exception_repository,
)

__all__ = [
    "BaseRepository",
    "gym_repository",
    "class_repository",
    "class_session_repository",
    "schedule_rule_repository",
    "schedule_exception_repository",
]
