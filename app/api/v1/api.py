from fastapi import APIRouter

# Import routers from modules
from app.api.v1.endpoints import gyms

# Import modular packages directly
from app.api.v1.endpoints.schedule import router as schedule_router

api_router = APIRouter()

# Gyms module
api_router.include_router(gyms.router, prefix="/gyms", tags=["gyms"])

# Schedule module (classes, sessions, programs and recurring rules)
api_router.include_router(schedule_router, prefix="/schedule")
