from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime
from typing import TYPE_CHECKING

from app.db.base_class import Base

# Imports condicionales para evitar referencias circulares
if TYPE_CHECKING:
    from app.models.schedule import Class, ClassSession, ClassScheduleRule


class Gym(Base):
    """
    Modelo para representar un gimnasio (tenant) en el sistema.
    Cada gimnasio tiene sus propias clases, sesiones y reglas de horario.
    """
    __tablename__ = "gyms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    subdomain = Column(String(100), unique=True, nullable=False, index=True)
    timezone = Column(String(50), nullable=False, default='UTC')  # Zona horaria del gimnasio (ej: 'Europe/Athens')
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relaciones
    classes = relationship("Class", back_populates="gym")
    class_sessions = relationship("ClassSession", back_populates="gym")
    schedule_rules = relationship("ClassScheduleRule", back_populates="gym")
