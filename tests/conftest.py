import os

# Configurar el entorno ANTES de importar la aplicación
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["DEBUG_MODE"] = "False"
os.environ.pop("REDIS_URL", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.base import Base
from app.db.redis_client import get_redis_client
from app.db.session import get_db
from app.models.gym import Gym
from app.models.schedule import Class
from main import app


# Usar una base de datos en memoria para pruebas
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db():
    """
    Crea el esquema y una sesión de base de datos fresca para cada test.

    Los servicios hacen commit/rollback por su cuenta, así que el aislamiento
    entre tests se consigue recreando las tablas.
    """
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """
    Crea un cliente de prueba usando la sesión de base de datos de prueba y sin caché Redis.
    """
    def override_get_db():
        try:
            yield db
        finally:
            pass

    async def override_get_redis_client():
        yield None

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis_client] = override_get_redis_client
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def gym(db):
    """Gimnasio en Europe/Athens (UTC+2 en invierno, UTC+3 en verano)."""
    gym = Gym(name="Athens Fitness", subdomain="athens-fitness", timezone="Europe/Athens", is_active=True)
    db.add(gym)
    db.commit()
    db.refresh(gym)
    return gym


@pytest.fixture(scope="function")
def other_gym(db):
    """Segundo tenant para comprobar el aislamiento entre gimnasios."""
    gym = Gym(name="Harbor Gym", subdomain="harbor-gym", timezone="UTC", is_active=True)
    db.add(gym)
    db.commit()
    db.refresh(gym)
    return gym


@pytest.fixture(scope="function")
def yoga_class(db, gym):
    class_obj = Class(name="Yoga", description="Vinyasa flow", is_active=True, gym_id=gym.id)
    db.add(class_obj)
    db.commit()
    db.refresh(class_obj)
    return class_obj


@pytest.fixture(scope="function")
def inactive_class(db, gym):
    class_obj = Class(name="Pilates (retirada)", is_active=False, gym_id=gym.id)
    db.add(class_obj)
    db.commit()
    db.refresh(class_obj)
    return class_obj


@pytest.fixture(scope="function")
def other_gym_class(db, other_gym):
    class_obj = Class(name="Spinning", is_active=True, gym_id=other_gym.id)
    db.add(class_obj)
    db.commit()
    db.refresh(class_obj)
    return class_obj


@pytest.fixture(scope="function")
def gym_headers(gym):
    """Headers de tenant para el gimnasio principal."""
    return {"X-Gym-ID": str(gym.id)}
