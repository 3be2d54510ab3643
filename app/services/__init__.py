"""
Services module for GymDesk app

This module includes all service-related modules, which implement the business logic of the application.
Services interact with models, repositories and the optional Redis cache.
"""

# servicios disponibles
from app.services.gym import gym_service
from app.services.cache_service import cache_service
from app.services.schedule import (
    class_service,
    class_session_service,
    schedule_rule_service,
)

# Exportar servicios para acceso fácil
__all__ = [
    "gym_service",
    "cache_service",
    "class_service",
    "class_session_service",
    "schedule_rule_service",
]
