from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.exc import SQLAlchemyError
import logging

# Importar get_settings
from app.core.config import get_settings

logger = logging.getLogger(__name__)

# Obtener la instancia de configuración
settings_instance = get_settings()

# Obtener la URL directamente de la instancia de configuración
db_url = str(settings_instance.SQLALCHEMY_DATABASE_URI)


def _display_url(url: str) -> str:
    """Oculta las credenciales de la URL para poder loguearla."""
    if '@' in url:
        scheme = url.split('://')[0]
        host_info = url.split('@')[-1]
        return f"{scheme}://***@{host_info}"
    return url


display_url = _display_url(db_url)
logger.info(f"URL FINAL utilizada para crear el engine: {display_url}")

if db_url.startswith("sqlite"):
    # SQLite (tests y desarrollo local): una conexión compartida entre hilos
    engine = create_engine(
        db_url,
        echo=False,
        connect_args={"check_same_thread": False},
    )
else:
    engine = create_engine(
        db_url,
        echo=False,  # SIEMPRE False en producción para mejor rendimiento
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
        pool_recycle=180,
        connect_args={
            "connect_timeout": 10,
            "options": "-c statement_timeout=30000 -c timezone=UTC",
        },
        execution_options={
            "isolation_level": "READ COMMITTED",
        }
    )

logger.info(f"Engine creado (dialecto {engine.dialect.name}): {display_url}")

# Crear clase de sesión
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Dependencia para obtener la sesión de DB
def get_db():
    db = SessionLocal()
    try:
        yield db
    except SQLAlchemyError as e:
        logger.error(f"Error de SQLAlchemy en la sesión: {e}", exc_info=True)
        db.rollback()  # Hacer rollback en caso de error
        raise  # Relanzar la excepción para que FastAPI la maneje
    finally:
        # Asegurarse siempre de cerrar la sesión
        db.close()
