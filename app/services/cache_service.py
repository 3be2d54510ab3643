import json
import logging
from typing import Any, Awaitable, Callable, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

T = TypeVar('T', bound=BaseModel)


class CacheService:
    """
    Servicio genérico para cachear modelos Pydantic (o listas de modelos) en Redis.
    Un fallo de Redis nunca rompe la petición: se registra y se consulta la BD.
    """

    @staticmethod
    async def get_or_set(
        redis_client: Optional[Redis],
        cache_key: str,
        db_fetch_func: Callable[[], Awaitable[Any]],
        model_class: Type[T],
        expiry_seconds: int = 300,  # 5 minutos por defecto
        is_list: bool = False
    ) -> Any:
        """
        Obtiene un objeto de Redis o lo establece si no existe.

        Args:
            redis_client: Cliente Redis (None = sin caché)
            cache_key: Clave única para identificar el objeto en caché
            db_fetch_func: Corrutina que obtiene los datos de la BD si no están en caché
            model_class: Clase del modelo Pydantic que se debe devolver
            expiry_seconds: Tiempo de expiración en segundos
            is_list: Si es True, se espera/devuelve una lista de objetos

        Returns:
            El modelo (o lista de modelos) solicitado
        """
        if redis_client is None:
            return CacheService._to_models(await db_fetch_func(), model_class, is_list)

        try:
            cached_data = await redis_client.get(cache_key)
        except RedisError as e:
            logger.error(f"Error al leer del caché ({cache_key}): {e}")
            cached_data = None

        if cached_data:
            logger.debug(f"Cache hit para clave: {cache_key}")
            try:
                return CacheService._to_models(json.loads(cached_data), model_class, is_list)
            except (ValueError, ValidationError) as e:
                logger.warning(f"Ignorando datos en caché corruptos para {cache_key}: {e}")
                await CacheService._safe_delete(redis_client, cache_key)

        logger.debug(f"Cache miss para clave: {cache_key}")
        result = CacheService._to_models(await db_fetch_func(), model_class, is_list)
        if result is None:
            return None

        if is_list:
            payload = json.dumps([item.model_dump(mode="json") for item in result])
        else:
            payload = result.model_dump_json()
        try:
            await redis_client.set(cache_key, payload, ex=expiry_seconds)
        except RedisError as e:
            logger.error(f"Error al guardar en caché ({cache_key}): {e}")
        return result

    @staticmethod
    def _to_models(data: Any, model_class: Type[T], is_list: bool) -> Any:
        if data is None:
            return None
        if is_list:
            return [model_class.model_validate(item) for item in data]
        return model_class.model_validate(data)

    @staticmethod
    async def _safe_delete(redis_client: Redis, cache_key: str) -> None:
        try:
            await redis_client.delete(cache_key)
        except RedisError as e:
            logger.error(f"Error al eliminar clave de caché {cache_key}: {e}")

    @staticmethod
    async def delete_pattern(redis_client: Optional[Redis], pattern: str) -> int:
        """
        Elimina todas las claves que coinciden con el patrón.

        Returns:
            Número de claves eliminadas
        """
        if redis_client is None:
            return 0
        try:
            keys = [key async for key in redis_client.scan_iter(match=pattern)]
            if not keys:
                return 0
            count = await redis_client.delete(*keys)
            logger.debug(f"Eliminadas {count} claves con patrón: {pattern}")
            return count
        except RedisError as e:
            logger.error(f"Error al invalidar patrón {pattern}: {e}")
            return 0


cache_service = CacheService()
