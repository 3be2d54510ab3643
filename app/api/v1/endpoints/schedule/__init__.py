"""
Schedule Module - API Endpoints

This module organizes the different components of the class scheduling system:
- Class definitions (/classes)
- Individual class sessions: ad-hoc creation with conflict check, edit/move,
  delete and calendar range queries (/sessions)
- Programs: bulk weekly generation over a date range and range deletion
  filtered by weekday and start time (/programs)
- Recurring weekly rules with per-date exceptions, materialized into
  sessions on demand (/rules)

All routes are tenant-scoped through the X-Gym-ID header. Dates and weekdays
(0=Sunday ... 6=Saturday) are interpreted in the gym's local timezone, while
session instants are stored and returned in UTC alongside their local values.
"""

from fastapi import APIRouter

from app.api.v1.endpoints.schedule import (
    classes,
    sessions,
    programs,
    rules,
)

router = APIRouter()

# Rutas para clases y sesiones
router.include_router(classes.router, prefix="/classes", tags=["classes"])
router.include_router(sessions.router, prefix="/sessions", tags=["sessions"])

# Rutas de programación en bloque
router.include_router(programs.router, prefix="/programs", tags=["programs"])
router.include_router(rules.router, prefix="/rules", tags=["schedule-rules"])
