"""
Errores de dominio del módulo de programación de clases.

Los conflictos de horario y las eliminaciones sin coincidencias NO son
excepciones: se devuelven como resultados explícitos (ver app/schemas/schedule.py).
"""
import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ScheduleError(Exception):
    """Error base del módulo de horarios."""
    code = "schedule_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRangeError(ScheduleError):
    """from_date > to_date, o start_time >= end_time."""
    code = "invalid_range"


class NonexistentLocalTimeError(InvalidRangeError):
    """
    La ventana horaria no existe en ciertas fechas locales (salto de un cambio de hora).

    Lleva las fechas afectadas en `details` para que se pueda acotar el rango.
    """
    code = "nonexistent_local_time"

    def __init__(self, message: str, dates):
        super().__init__(message)
        self.details = [d.isoformat() for d in dates]


class MissingFieldError(ScheduleError):
    """Falta un parámetro obligatorio (clase, fechas, días, hora)."""
    code = "missing_field"


class NotFoundError(ScheduleError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class InactiveClassError(ScheduleError):
    """No se pueden programar sesiones de una clase inactiva."""
    code = "inactive_class"


class StorageFailureError(ScheduleError):
    """La capa de almacenamiento devolvió un error; el mensaje se propaga tal cual."""
    code = "storage_failure"


async def schedule_error_handler(request: Request, exc: ScheduleError) -> JSONResponse:
    if isinstance(exc, StorageFailureError):
        logger.error(f"Fallo de almacenamiento en {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.code} en {request.method} {request.url.path}: {exc.message}")
    content = {"error": exc.code, "detail": exc.message}
    details = getattr(exc, "details", None)
    if details:
        content["details"] = details
    return JSONResponse(status_code=exc.status_code, content=content)
