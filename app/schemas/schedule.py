from typing import Annotated, Optional, List, Literal, Union
from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import datetime, time, date

from app.core.timezone_utils import ensure_utc
import pytz

Weekday = Annotated[int, Field(ge=0, le=6, description="0=Domingo ... 6=Sábado")]


def parse_time_string(value):
    """Validar y convertir strings de tiempo en formato HH:MM a objetos time"""
    if value is None or isinstance(value, time):
        return value

    if isinstance(value, str):
        parts = value.split(':')
        try:
            if len(parts) not in (2, 3):
                raise ValueError(value)
            hour, minute = int(parts[0]), int(parts[1])
            second = int(parts[2]) if len(parts) == 3 else 0
            return time(hour=hour, minute=minute, second=second)
        except (ValueError, TypeError):
            raise ValueError('El formato de tiempo debe ser HH:MM (ejemplo: 09:30)')

    return value


# Class schemas
class ClassBaseInput(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: bool = True


class ClassCreate(ClassBaseInput):
    """Modelo para crear clases (el gym_id sale del header X-Gym-ID)"""
    pass


class ClassUpdate(BaseModel):
    """Modelo para actualizar clases (campos opcionales)"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None
    # No incluir gym_id en update para evitar cambios de gimnasio


class Class(ClassBaseInput):
    """Modelo completo con todos los campos para respuestas"""
    id: int
    gym_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ClassSession schemas
class ClassSessionBase(BaseModel):
    class_id: int
    start_time: datetime
    end_time: datetime
    capacity: Optional[int] = Field(None, ge=0)
    cancel_before_hours: Optional[float] = Field(None, ge=0)

    @model_validator(mode='after')
    def check_interval(self):
        if (self.start_time.tzinfo is None) != (self.end_time.tzinfo is None):
            raise ValueError('start_time y end_time deben ser ambos naive o ambos con zona horaria')
        if self.end_time <= self.start_time:
            raise ValueError('end_time debe ser posterior a start_time')
        return self


class ClassSessionCreate(ClassSessionBase):
    """
    Sesión ad-hoc. Un datetime naive se interpreta como hora local del gimnasio;
    uno aware se convierte a UTC tal cual.
    """
    pass


class ClassSessionUpdate(BaseModel):
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    capacity: Optional[int] = Field(None, ge=0)
    cancel_before_hours: Optional[float] = Field(None, ge=0)

    @model_validator(mode='after')
    def check_updated_interval(self):
        if self.start_time and self.end_time:
            if (self.start_time.tzinfo is None) != (self.end_time.tzinfo is None):
                raise ValueError('start_time y end_time deben ser ambos naive o ambos con zona horaria')
            if self.end_time <= self.start_time:
                raise ValueError('end_time debe ser posterior a start_time')
        return self


class ClassSession(ClassSessionBase):
    id: int
    gym_id: int
    is_recurring: bool = False
    recurrence_pattern: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Campos en hora local del gimnasio (se pueblan en el endpoint)
    start_time_local: Optional[datetime] = None
    end_time_local: Optional[datetime] = None
    timezone: Optional[str] = None

    model_config = {"from_attributes": True}

    @field_validator('start_time', 'end_time')
    def as_utc(cls, v: datetime) -> datetime:
        # La BD puede devolver naive (SQLite); siempre es UTC
        return ensure_utc(v)


class SessionConflict(BaseModel):
    """Sesión existente que se solapa con la solicitada"""
    id: int
    class_id: int
    start_time: datetime
    end_time: datetime

    model_config = {"from_attributes": True}

    @field_validator('start_time', 'end_time')
    def as_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class SessionConflictResponse(BaseModel):
    """Cuerpo de la respuesta 409"""
    error: Literal["conflict"] = "conflict"
    detail: str
    details: List[SessionConflict] = []


class SessionWriteResult(BaseModel):
    """Resultado de crear o mover una sesión: creada/actualizada o rechazada por conflicto"""
    status: Literal["created", "updated", "conflict"]
    session: Optional[ClassSession] = None
    conflicts: List[SessionConflict] = []


# --- Programas (generación y borrado por rango) ---

class ProgramGenerateRequest(BaseModel):
    class_id: int
    day_of_week: Weekday
    start_time: time = Field(..., description="Hora local de inicio (HH:MM)")
    end_time: time = Field(..., description="Hora local de fin (HH:MM)")
    from_date: date
    to_date: date
    capacity: Optional[int] = Field(None, ge=0)
    cancel_before_hours: Optional[float] = Field(None, ge=0)

    @field_validator('start_time', 'end_time', mode='before')
    def parse_times(cls, v):
        return parse_time_string(v)

    @model_validator(mode='after')
    def check_ranges(self):
        if self.from_date > self.to_date:
            raise ValueError('from_date no puede ser posterior a to_date')
        if self.start_time >= self.end_time:
            raise ValueError('start_time debe ser anterior a end_time (solo ventanas dentro del mismo día)')
        return self


class ProgramGenerateResult(BaseModel):
    status: Literal["created", "none_created", "conflict"]
    created: int = 0
    sessions: List[ClassSession] = []
    conflicts: List[SessionConflict] = []


class SpecificTimeFilter(BaseModel):
    """Solo las sesiones que empiezan exactamente a esta hora:minuto local"""
    mode: Literal["specific"] = "specific"
    time: time

    @field_validator('time', mode='before')
    def parse_time(cls, v):
        return parse_time_string(v)


class AllTimesFilter(BaseModel):
    """Todas las sesiones de los días seleccionados"""
    mode: Literal["all"] = "all"


TimeFilter = Annotated[Union[SpecificTimeFilter, AllTimesFilter], Field(discriminator="mode")]


class ProgramDeleteRequest(BaseModel):
    class_id: int
    from_date: date
    to_date: date
    selected_days: List[Weekday] = Field(..., min_length=1)
    time_filter: TimeFilter
    dry_run: bool = Field(False, description="Si es True, solo devuelve las sesiones que se eliminarían")

    @model_validator(mode='after')
    def check_dates(self):
        if self.from_date > self.to_date:
            raise ValueError('from_date no puede ser posterior a to_date')
        return self


class ProgramDeleteResult(BaseModel):
    status: Literal["deleted", "nothing_matched", "preview"]
    deleted: int = 0
    matched_ids: List[int] = []


# --- Reglas recurrentes ---

class ScheduleRuleBase(BaseModel):
    class_id: int
    start_time: time
    end_time: time
    capacity: Optional[int] = Field(None, ge=0)
    cancel_before_hours: Optional[float] = Field(None, ge=0)
    starts_on: date
    ends_on: Optional[date] = None
    repeat_every_weeks: int = Field(1, ge=1)
    timezone: Optional[str] = Field(None, max_length=50, description="Null = zona horaria del gimnasio")
    is_active: bool = True

    @field_validator('start_time', 'end_time', mode='before')
    def parse_times(cls, v):
        return parse_time_string(v)

    @field_validator('timezone')
    def validate_timezone(cls, v):
        if v is not None and v not in pytz.all_timezones_set:
            raise ValueError(f"Zona horaria inválida: {v}")
        return v

    @model_validator(mode='after')
    def check_rule(self):
        if self.start_time >= self.end_time:
            raise ValueError('start_time debe ser anterior a end_time')
        if self.ends_on is not None and self.ends_on < self.starts_on:
            raise ValueError('ends_on no puede ser anterior a starts_on')
        return self


class ScheduleRuleCreate(ScheduleRuleBase):
    weekdays: List[Weekday] = Field(..., min_length=1, description="Se crea una regla por cada día")

    @field_validator('weekdays')
    def unique_weekdays(cls, v: List[int]) -> List[int]:
        return sorted(set(v))


class ScheduleRuleUpdate(ScheduleRuleCreate):
    """Edición completa: si cambian los días, la regla se reemplaza por una por día"""
    pass


class ScheduleRule(ScheduleRuleBase):
    id: int
    gym_id: int
    weekday: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ScheduleExceptionUpsert(BaseModel):
    on_date: date
    skip: bool = False
    override_start_time: Optional[time] = None
    override_end_time: Optional[time] = None
    override_capacity: Optional[int] = Field(None, ge=0)
    note: Optional[str] = Field(None, max_length=255)

    @field_validator('override_start_time', 'override_end_time', mode='before')
    def parse_times(cls, v):
        return parse_time_string(v)

    @model_validator(mode='after')
    def check_overrides(self):
        if (self.override_start_time and self.override_end_time
                and self.override_start_time >= self.override_end_time):
            raise ValueError('override_start_time debe ser anterior a override_end_time')
        return self


class ScheduleException(ScheduleExceptionUpsert):
    id: int
    rule_id: int
    gym_id: int

    model_config = {"from_attributes": True}


class RuleGenerateRequest(BaseModel):
    """Ventana a materializar; por defecto desde hoy (hora del gimnasio) y 4 semanas"""
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    class_id: Optional[int] = None

    @model_validator(mode='after')
    def check_dates(self):
        if self.from_date and self.to_date and self.from_date > self.to_date:
            raise ValueError('from_date no puede ser posterior a to_date')
        return self


class RuleOccurrenceConflict(BaseModel):
    rule_id: int
    on_date: date
    start_time: datetime
    end_time: datetime
    conflicting_session_ids: List[int]


class RuleGenerateResult(BaseModel):
    from_date: date
    to_date: date
    created: int = 0
    skipped_existing: int = 0
    conflicts: List[RuleOccurrenceConflict] = []
