"""
Lógica pura de programación de clases (sin acceso a base de datos).

- Generador de sesiones semanales para un rango de fechas.
- Predicado de solapamiento entre sesiones (intervalos semiabiertos).
- Selección de sesiones para el borrado por rango.
- Expansión de reglas recurrentes con sus excepciones.

Todas las funciones reciben la zona horaria del gimnasio de forma explícita;
las fechas y días de la semana se interpretan siempre en hora local.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence

from app.core.exceptions import InvalidRangeError, MissingFieldError, NonexistentLocalTimeError
from app.core.timezone_utils import (
    ensure_utc,
    iter_local_dates,
    local_date_time_to_utc,
    local_weekday,
    utc_to_local_time,
    weekday_of,
)
from app.schemas.schedule import AllTimesFilter, ProgramGenerateRequest, SpecificTimeFilter

logger = logging.getLogger(__name__)


def generate_program_sessions(
    request: ProgramGenerateRequest, gym_id: int, gym_timezone: str
) -> List[Dict[str, Any]]:
    """
    Genera los datos de creación de sesiones para cada fecha del rango
    [from_date, to_date] (inclusive) cuyo día local coincide con day_of_week.

    Returns:
        Lista (posiblemente vacía) de diccionarios listos para una inserción en bloque.

    Raises:
        MissingFieldError: Si falta la clase, las fechas o las horas
        InvalidRangeError: Si from_date > to_date, start_time >= end_time o el día no está en 0..6
        NonexistentLocalTimeError: Si la ventana cae en el salto de un cambio de hora en
            alguna fecha (se informan todas las fechas afectadas y no se genera nada)
    """
    for field in ("class_id", "day_of_week", "start_time", "end_time", "from_date", "to_date"):
        if getattr(request, field, None) is None:
            raise MissingFieldError(f"Falta el campo obligatorio '{field}'")

    if request.from_date > request.to_date:
        raise InvalidRangeError("from_date no puede ser posterior a to_date")
    if request.start_time >= request.end_time:
        raise InvalidRangeError("start_time debe ser anterior a end_time")
    if not 0 <= request.day_of_week <= 6:
        raise InvalidRangeError("day_of_week debe estar entre 0 (domingo) y 6 (sábado)")

    payloads = []
    gap_dates = []
    for local_date in iter_local_dates(request.from_date, request.to_date):
        if weekday_of(local_date) != request.day_of_week:
            continue

        starts = local_date_time_to_utc(local_date, request.start_time, gym_timezone)
        ends = local_date_time_to_utc(local_date, request.end_time, gym_timezone)
        if ends <= starts:
            # Solo ocurre si la ventana cae dentro del salto de un cambio de hora
            gap_dates.append(local_date)
            continue

        payloads.append({
            "gym_id": gym_id,
            "class_id": request.class_id,
            "start_time": starts,
            "end_time": ends,
            "capacity": request.capacity,
            "cancel_before_hours": request.cancel_before_hours,
            "is_recurring": True,
            "recurrence_pattern": f"WEEKLY:{request.day_of_week}",
        })

    if gap_dates:
        raise NonexistentLocalTimeError(
            f"La ventana {request.start_time:%H:%M}-{request.end_time:%H:%M} no existe en {gym_timezone} "
            f"(cambio de horario) el: {', '.join(d.isoformat() for d in gap_dates)}",
            gap_dates,
        )

    logger.debug(
        f"Generador: {len(payloads)} sesiones para clase {request.class_id} "
        f"({request.from_date} -> {request.to_date}, día {request.day_of_week}, {gym_timezone})"
    )
    return payloads


def sessions_overlap(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """Intervalos semiabiertos [start, end): los extremos que se tocan no se solapan."""
    return ensure_utc(start_a) < ensure_utc(end_b) and ensure_utc(end_a) > ensure_utc(start_b)


def find_overlaps(start_time: datetime, end_time: datetime, existing: Iterable[Any]) -> List[Any]:
    """Sesiones de `existing` (con start_time/end_time) que se solapan con [start_time, end_time)."""
    return [
        session for session in existing
        if sessions_overlap(session.start_time, session.end_time, start_time, end_time)
    ]


def find_batch_conflicts(payloads: Sequence[Dict[str, Any]], existing: Sequence[Any]) -> List[Any]:
    """
    Sesiones existentes que chocan con alguna de las sesiones a crear.

    Devuelve cada sesión existente una sola vez, en orden de inicio.
    """
    conflicts = {}
    for payload in payloads:
        for session in find_overlaps(payload["start_time"], payload["end_time"], existing):
            conflicts[session.id] = session
    return sorted(conflicts.values(), key=lambda s: ensure_utc(s.start_time))


# --- Borrado por rango ---

def validate_deletion_filters(selected_days: Optional[Sequence[int]], time_filter: Any) -> None:
    """Precondiciones del borrado por rango; se comprueban antes de cualquier consulta."""
    if not selected_days:
        raise MissingFieldError("Debe seleccionar al menos un día de la semana")
    if time_filter is None:
        raise MissingFieldError("Debe indicar un filtro de hora (una hora concreta o todas)")


def match_sessions_for_deletion(
    sessions: Iterable[Any],
    selected_days: Sequence[int],
    time_filter: Any,
    gym_timezone: str,
) -> List[int]:
    """
    Filtra las sesiones candidatas (ya acotadas por rango de fechas) y devuelve sus ids.

    - Se conservan las sesiones cuyo día local de inicio está en selected_days.
    - Con SpecificTimeFilter se exige además la misma hora y minuto local de inicio.
    """
    validate_deletion_filters(selected_days, time_filter)
    days = set(selected_days)

    matched = []
    for session in sessions:
        if local_weekday(session.start_time, gym_timezone) not in days:
            continue
        if isinstance(time_filter, SpecificTimeFilter):
            local_start = utc_to_local_time(session.start_time, gym_timezone)
            if (local_start.hour, local_start.minute) != (time_filter.time.hour, time_filter.time.minute):
                continue
        elif not isinstance(time_filter, AllTimesFilter):
            raise MissingFieldError(f"Filtro de hora no soportado: {time_filter!r}")
        matched.append(session.id)
    return matched


# --- Reglas recurrentes ---

@dataclass
class RuleOccurrence:
    """Ocurrencia concreta de una regla en una fecha local"""
    rule_id: int
    class_id: int
    on_date: date
    start_time: datetime  # UTC
    end_time: datetime  # UTC
    capacity: Optional[int] = None
    cancel_before_hours: Optional[float] = None

    def as_session_payload(self, gym_id: int) -> Dict[str, Any]:
        return {
            "gym_id": gym_id,
            "class_id": self.class_id,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "capacity": self.capacity,
            "cancel_before_hours": self.cancel_before_hours,
            "is_recurring": True,
            "recurrence_pattern": f"RULE:{self.rule_id}",
        }


def first_occurrence_on_or_after(starts_on: date, weekday: int) -> date:
    """Primera fecha >= starts_on cuyo día de la semana (0=Domingo) es `weekday`."""
    return starts_on + timedelta(days=(weekday - weekday_of(starts_on)) % 7)


def expand_rule_occurrences(
    rule: Any,
    exceptions_by_date: Dict[date, Any],
    from_date: date,
    to_date: date,
    gym_timezone: str,
) -> List[RuleOccurrence]:
    """
    Expande una regla semanal dentro de [from_date, to_date].

    La regla aplica en [starts_on, ends_on]; la primera ocurrencia es la primera
    fecha con su día de la semana a partir de starts_on y se repite cada
    `repeat_every_weeks` semanas. Las excepciones por fecha pueden saltar la
    ocurrencia o sobrescribir horas y capacidad.
    """
    tz_name = rule.timezone or gym_timezone
    anchor = first_occurrence_on_or_after(rule.starts_on, rule.weekday)
    window_start = max(from_date, anchor)
    window_end = min(to_date, rule.ends_on) if rule.ends_on else to_date
    repeat = rule.repeat_every_weeks or 1

    occurrences = []
    for local_date in iter_local_dates(window_start, window_end):
        if weekday_of(local_date) != rule.weekday:
            continue
        if ((local_date - anchor).days // 7) % repeat != 0:
            continue

        start_time: time = rule.start_time
        end_time: time = rule.end_time
        capacity = rule.capacity

        exception = exceptions_by_date.get(local_date)
        if exception is not None:
            if exception.skip:
                continue
            start_time = exception.override_start_time or start_time
            end_time = exception.override_end_time or end_time
            if exception.override_capacity is not None:
                capacity = exception.override_capacity

        starts = local_date_time_to_utc(local_date, start_time, tz_name)
        ends = local_date_time_to_utc(local_date, end_time, tz_name)
        if ends <= starts:
            logger.warning(
                f"Regla {rule.id}: ventana vacía el {local_date.isoformat()} "
                f"({start_time:%H:%M}-{end_time:%H:%M} {tz_name}); ocurrencia omitida"
            )
            continue

        occurrences.append(RuleOccurrence(
            rule_id=rule.id,
            class_id=rule.class_id,
            on_date=local_date,
            start_time=starts,
            end_time=ends,
            capacity=capacity,
            cancel_before_hours=rule.cancel_before_hours,
        ))
    return occurrences
