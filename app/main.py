from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.core.logging_config import setup_logging

# El logging debe quedar configurado antes de que se creen los loggers de los módulos
setup_logging()

from app.api.v1.api import api_router
from app.core.config import get_settings
from app.core.exceptions import ScheduleError, schedule_error_handler
from app.db.redis_client import close_redis_client, initialize_redis_pool
from app.middleware.timing import TimingMiddleware

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    redis_enabled = initialize_redis_pool() is not None
    app.state.redis_enabled = redis_enabled
    logger.info(f"{settings.PROJECT_NAME} {settings.VERSION} arrancando (caché Redis: {'sí' if redis_enabled else 'no'})")
    yield
    await close_redis_client()
    logger.info("Conexiones cerradas, apagando")


def create_application() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description=settings.PROJECT_DESCRIPTION,
        version=settings.VERSION,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        docs_url=f"{settings.API_V1_STR}/docs",
        redoc_url=f"{settings.API_V1_STR}/redoc",
        lifespan=lifespan,
    )

    # Errores de dominio -> {"error": <código>, "detail": <mensaje>}
    application.add_exception_handler(ScheduleError, schedule_error_handler)

    @application.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"(gym={request.headers.get('x-gym-id', '-')})"
        )
        return response

    application.add_middleware(TimingMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin).rstrip("/") for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Process-Time"],
        max_age=86400,
    )

    application.include_router(api_router, prefix=settings.API_V1_STR)
    return application


app = create_application()


@app.get("/")
def root():
    return {
        "message": f"Bienvenido a {settings.PROJECT_NAME}",
        "docs": f"{settings.API_V1_STR}/docs",
    }


@app.get("/health")
def health(request: Request):
    return {
        "status": "ok",
        "version": settings.VERSION,
        "cache": "redis" if getattr(request.app.state, "redis_enabled", False) else "disabled",
    }
