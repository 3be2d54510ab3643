"""
Common imports and dependencies for the schedule module.

This module centralizes shared imports and dependencies used across
all schedule-related endpoints (database access, tenant verification,
services and schemas). Importing from this module keeps the endpoint
files consistent and reduces duplication.
"""

from typing import Any, List, Optional
from datetime import date
from fastapi import APIRouter, Depends, Query, Path, Body, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from redis.asyncio import Redis

from app.core.tenant import verify_gym_access
from app.db.redis_client import get_redis_client
from app.db.session import get_db
from app.schemas.gym import Gym as GymSchema
from app.services.schedule import (
    class_service,
    class_session_service,
    schedule_rule_service,
)
from app.schemas.schedule import (
    Class, ClassCreate, ClassUpdate,
    ClassSession, ClassSessionCreate, ClassSessionUpdate,
    ProgramGenerateRequest, ProgramGenerateResult,
    ProgramDeleteRequest, ProgramDeleteResult,
    SessionConflict, SessionConflictResponse,
    ScheduleRule, ScheduleRuleCreate, ScheduleRuleUpdate,
    ScheduleException, ScheduleExceptionUpsert,
    RuleGenerateRequest, RuleGenerateResult,
)


def conflict_response(message: str, conflicts: List[SessionConflict]) -> JSONResponse:
    """Respuesta 409 con las sesiones en conflicto."""
    body = SessionConflictResponse(detail=message, details=conflicts)
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=jsonable_encoder(body))
