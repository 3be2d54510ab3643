"""
Cliente Redis con Connection Pooling (async).

Redis se usa solo como caché de lecturas (clases y gimnasios). Si REDIS_URL
no está configurada, la dependencia entrega None y los servicios consultan
directamente la base de datos.

Para usar en endpoints:
```python
@router.get("/items/{item_id}")
async def read_item(item_id: int, redis: Optional[Redis] = Depends(get_redis_client)):
    ...
```
"""
from typing import Optional

from redis.asyncio import ConnectionPool, Redis
from app.core.config import get_settings
import logging

logger = logging.getLogger(__name__)

# Declaración global del pool de conexiones
REDIS_POOL: Optional[ConnectionPool] = None


def initialize_redis_pool() -> Optional[ConnectionPool]:
    """
    Inicializa el pool de conexiones a Redis (una sola vez).
    Devuelve None si la caché está deshabilitada.
    """
    global REDIS_POOL
    if REDIS_POOL is not None:
        return REDIS_POOL

    settings = get_settings()
    redis_url = (settings.REDIS_URL or "").split('#')[0].strip()
    if not redis_url:
        logger.info("REDIS_URL no configurada: caché deshabilitada")
        return None

    logger.info("Inicializando connection pool para Redis...")
    REDIS_POOL = ConnectionPool.from_url(
        redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=settings.REDIS_POOL_MAX_CONNECTIONS,
        socket_timeout=settings.REDIS_POOL_SOCKET_TIMEOUT,
    )
    logger.info(f"Connection pool de Redis inicializado (max_connections={settings.REDIS_POOL_MAX_CONNECTIONS}).")
    return REDIS_POOL


async def get_redis_client():
    """
    Dependencia FastAPI: un cliente por request sobre el pool compartido,
    o None si la caché está deshabilitada.
    """
    pool = initialize_redis_pool()
    if pool is None:
        yield None
        return

    client = Redis(connection_pool=pool)
    try:
        yield client
    finally:
        # Cerrar cliente para devolver la conexión al pool
        await client.aclose()


async def close_redis_client():
    """Cierra el pool de conexiones Redis al finalizar la aplicación."""
    global REDIS_POOL

    if REDIS_POOL:
        logger.info("Cerrando connection pool de Redis...")
        await REDIS_POOL.disconnect()
        REDIS_POOL = None
        logger.info("Connection pool de Redis cerrado.")
