from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field, field_validator
import pytz


class GymBase(BaseModel):
    """Esquema base para gimnasios (tenants)"""
    name: str = Field(..., title="Nombre del gimnasio", max_length=255)
    subdomain: str = Field(..., title="Subdominio único para el gimnasio", max_length=100, pattern="^[a-z0-9-]+$")
    timezone: str = Field('UTC', title="Zona horaria del gimnasio", max_length=50, description="Timezone en formato pytz (ej: 'Europe/Athens')")

    @field_validator('subdomain')
    def validate_subdomain(cls, v):
        if not v or len(v) < 3:
            raise ValueError("El subdominio debe tener al menos 3 caracteres")
        return v

    @field_validator('timezone')
    def validate_timezone(cls, v):
        if v not in pytz.all_timezones_set:
            raise ValueError(f"Zona horaria inválida: {v}. Debe ser una zona horaria válida de pytz.")
        return v


class GymCreate(GymBase):
    """Esquema para crear un nuevo gimnasio"""
    is_active: bool = Field(True, title="Estado del gimnasio")


class GymUpdate(BaseModel):
    """Esquema para actualizar un gimnasio existente"""
    name: Optional[str] = Field(None, title="Nombre del gimnasio", max_length=255)
    timezone: Optional[str] = Field(None, title="Zona horaria del gimnasio", max_length=50)
    is_active: Optional[bool] = Field(None, title="Estado del gimnasio")

    @field_validator('timezone')
    def validate_timezone(cls, v):
        if v is not None and v not in pytz.all_timezones_set:
            raise ValueError(f"Zona horaria inválida: {v}. Debe ser una zona horaria válida de pytz.")
        return v


class Gym(GymBase):
    """Esquema completo de gimnasio para respuestas"""
    id: int
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
