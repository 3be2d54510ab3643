"""
Utilidades para el manejo de zonas horarias en el sistema.

Convenciones:
- Los instantes se almacenan siempre en UTC (datetime aware).
- Un datetime naive leído de la base de datos se interpreta como UTC.
- Un datetime naive recibido como "hora del gimnasio" se interpreta en la zona del gimnasio.
- Los días de la semana usan 0=Domingo ... 6=Sábado.
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Tuple, Union
import pytz


def get_gym_tz(gym_timezone: str):
    """Devuelve el objeto tzinfo de pytz para un nombre IANA (ej: 'Europe/Athens')."""
    return pytz.timezone(gym_timezone)


def convert_naive_to_gym_timezone(naive_dt: datetime, gym_timezone: str) -> datetime:
    """
    Convierte un datetime naive (sin timezone) interpretándolo como hora local del gimnasio
    y lo convierte a un datetime aware en la zona horaria del gimnasio.

    Args:
        naive_dt: Datetime naive que representa la hora local del gimnasio
        gym_timezone: Zona horaria del gimnasio (ej: 'America/Mexico_City')

    Returns:
        Datetime aware en la zona horaria del gimnasio
    """
    if naive_dt.tzinfo is not None:
        raise ValueError("El datetime debe ser naive (sin timezone)")

    tz = get_gym_tz(gym_timezone)
    return tz.localize(naive_dt)


def convert_gym_time_to_utc(naive_dt: datetime, gym_timezone: str) -> datetime:
    """
    Convierte un datetime naive (hora local del gimnasio) a UTC.

    Args:
        naive_dt: Datetime naive que representa la hora local del gimnasio
        gym_timezone: Zona horaria del gimnasio

    Returns:
        Datetime aware en UTC
    """
    gym_aware = convert_naive_to_gym_timezone(naive_dt, gym_timezone)
    return gym_aware.astimezone(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Datetime aware en UTC; un naive se asume ya en UTC (valor leído de la BD)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def normalize_to_utc(dt: datetime, gym_timezone: str) -> datetime:
    """
    Normaliza un datetime a UTC manejando entradas naive o aware.

    - Si `dt` es naive, se interpreta en la timezone del gimnasio y se convierte a UTC.
    - Si `dt` es aware, se convierte directamente a UTC preservando la hora exacta.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return convert_gym_time_to_utc(dt, gym_timezone)
    return dt.astimezone(timezone.utc)


def convert_utc_to_local(utc_dt: datetime, gym_timezone: str) -> datetime:
    """
    Convierte un datetime UTC a hora local del gimnasio.

    Args:
        utc_dt: Datetime aware en UTC (si es naive se asume UTC)
        gym_timezone: Zona horaria del gimnasio

    Returns:
        Datetime aware en la zona horaria del gimnasio
    """
    tz = get_gym_tz(gym_timezone)
    return ensure_utc(utc_dt).astimezone(tz)


def get_current_time_in_gym_timezone(gym_timezone: str) -> datetime:
    """Hora actual (aware) en la zona horaria del gimnasio."""
    return datetime.now(timezone.utc).astimezone(get_gym_tz(gym_timezone))


# --- Días y fechas locales ---

def weekday_of(value: date) -> int:
    """Día de la semana de una fecha de calendario (0=Domingo ... 6=Sábado)."""
    return value.isoweekday() % 7


def local_weekday(instant: datetime, gym_timezone: str) -> int:
    """Día de la semana local (0=Domingo) de un instante absoluto."""
    return weekday_of(convert_utc_to_local(instant, gym_timezone).date())


def local_midnight(value: Union[date, datetime], gym_timezone: str) -> datetime:
    """
    Medianoche local (aware, en la zona del gimnasio) del día de calendario de `value`.

    Una fecha se toma tal cual; un datetime se convierte primero a hora local
    (naive = UTC) y se usa su fecha local.
    """
    if isinstance(value, datetime):
        value = convert_utc_to_local(value, gym_timezone).date()
    return convert_naive_to_gym_timezone(datetime.combine(value, time.min), gym_timezone)


def local_date_time_to_utc(local_date: date, wall_time: time, gym_timezone: str) -> datetime:
    """Fecha de calendario local + hora de reloj local -> instante UTC."""
    return convert_gym_time_to_utc(datetime.combine(local_date, wall_time), gym_timezone)


def utc_to_local_date(instant: datetime, gym_timezone: str) -> date:
    """Fecha de calendario local de un instante absoluto."""
    return convert_utc_to_local(instant, gym_timezone).date()


def utc_to_local_time(instant: datetime, gym_timezone: str) -> time:
    """Hora de reloj local (naive) de un instante absoluto."""
    return convert_utc_to_local(instant, gym_timezone).time().replace(tzinfo=None)


def local_day_bounds_utc(from_date: date, to_date: date, gym_timezone: str) -> Tuple[datetime, datetime]:
    """
    Límites UTC inclusivos [inicio del día from_date, fin del día to_date] en hora local.

    El fin del día es 23:59:59.999999 local, igual que un selector de fechas.
    """
    start_utc = local_midnight(from_date, gym_timezone).astimezone(timezone.utc)
    end_local = datetime.combine(to_date, time(23, 59, 59, 999999))
    end_utc = convert_gym_time_to_utc(end_local, gym_timezone)
    return start_utc, end_utc


def iter_local_dates(from_date: date, to_date: date):
    """Itera fechas de calendario de from_date a to_date (inclusive), en orden ascendente."""
    current = from_date
    while current <= to_date:
        yield current
        current += timedelta(days=1)


def populate_session_timezone_fields(session_dict: dict, gym_timezone: str) -> dict:
    """
    Puebla los campos timezone de una sesión para la respuesta.

    Args:
        session_dict: Diccionario con datos de la sesión
        gym_timezone: Zona horaria del gimnasio

    Returns:
        Diccionario actualizado con campos timezone poblados
    """
    # Copiar el diccionario para no modificar el original
    result = session_dict.copy()
    result["timezone"] = gym_timezone

    for field in ("start_time", "end_time"):
        value = result.get(field)
        if not value:
            continue
        if isinstance(value, str):
            value = datetime.fromisoformat(value.replace('Z', '+00:00'))
        result[field] = ensure_utc(value)
        # Retornar como naive para compatibilidad
        result[f"{field}_local"] = convert_utc_to_local(value, gym_timezone).replace(tzinfo=None)

    return result
