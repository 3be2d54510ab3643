from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Time, DateTime, Text, Float, CheckConstraint, Date
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import sqlalchemy as sa

from app.db.base_class import Base


class Class(Base):
    """Definición de clases que se ofrecen"""
    __tablename__ = "class"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True)
    gym_id = Column(Integer, ForeignKey("gyms.id"), nullable=False, index=True)

    # Relaciones
    sessions = relationship("ClassSession", back_populates="class_definition")
    schedule_rules = relationship("ClassScheduleRule", back_populates="class_definition")
    gym = relationship("Gym", back_populates="classes")

    # Campos de auditoría
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class ClassSession(Base):
    """Sesiones específicas de clases (instancias concretas en tiempo)"""
    __tablename__ = "class_session"

    id = Column(Integer, primary_key=True, index=True)
    class_id = Column(Integer, ForeignKey("class.id"), nullable=False)
    gym_id = Column(Integer, ForeignKey("gyms.id"), nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False, index=True)  # UTC
    end_time = Column(DateTime(timezone=True), nullable=False)  # UTC
    capacity = Column(Integer, nullable=True)
    cancel_before_hours = Column(Float, nullable=True)  # Lo consume el flujo de reservas
    is_recurring = Column(Boolean, default=False)  # Creada por el generador o por una regla
    recurrence_pattern = Column(String, nullable=True)  # Ej: "WEEKLY:1" (lunes), "RULE:12"

    # Relaciones
    class_definition = relationship("Class", back_populates="sessions")
    gym = relationship("Gym", back_populates="class_sessions")

    # Campos de auditoría
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint('end_time > start_time', name='check_session_end_after_start'),
        CheckConstraint('capacity IS NULL OR capacity >= 0', name='check_session_capacity'),
        CheckConstraint('cancel_before_hours IS NULL OR cancel_before_hours >= 0',
                        name='check_session_cancel_before_hours'),
        sa.Index('ix_class_session_gym_class_start', 'gym_id', 'class_id', 'start_time'),
    )


class ClassScheduleRule(Base):
    """Regla recurrente semanal de una clase (un día de la semana por regla)"""
    __tablename__ = "class_schedule_rule"

    id = Column(Integer, primary_key=True, index=True)
    gym_id = Column(Integer, ForeignKey("gyms.id"), nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("class.id"), nullable=False)
    weekday = Column(Integer, nullable=False)  # 0=Domingo
    start_time = Column(Time, nullable=False)  # Hora local
    end_time = Column(Time, nullable=False)  # Hora local
    capacity = Column(Integer, nullable=True)
    cancel_before_hours = Column(Float, nullable=True)
    starts_on = Column(Date, nullable=False)
    ends_on = Column(Date, nullable=True)
    repeat_every_weeks = Column(Integer, nullable=False, default=1)
    timezone = Column(String(50), nullable=True)  # Null = zona del gimnasio
    is_active = Column(Boolean, default=True)

    # Relaciones
    class_definition = relationship("Class", back_populates="schedule_rules")
    gym = relationship("Gym", back_populates="schedule_rules")
    exceptions = relationship("ClassScheduleException", back_populates="rule",
                              cascade="all, delete-orphan")

    # Campos de auditoría
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint('weekday >= 0 AND weekday <= 6', name='check_rule_weekday'),
        CheckConstraint('end_time > start_time', name='check_rule_end_after_start'),
        CheckConstraint('repeat_every_weeks >= 1', name='check_rule_repeat_every_weeks'),
    )


class ClassScheduleException(Base):
    """Excepción de una regla para una fecha concreta (saltar o sobrescribir)"""
    __tablename__ = "class_schedule_exception"

    id = Column(Integer, primary_key=True, index=True)
    rule_id = Column(Integer, ForeignKey("class_schedule_rule.id", ondelete="CASCADE"), nullable=False)
    gym_id = Column(Integer, ForeignKey("gyms.id"), nullable=False, index=True)
    on_date = Column(Date, nullable=False)
    skip = Column(Boolean, default=False, nullable=False)
    override_start_time = Column(Time, nullable=True)
    override_end_time = Column(Time, nullable=True)
    override_capacity = Column(Integer, nullable=True)
    note = Column(String(255), nullable=True)

    # Relaciones
    rule = relationship("ClassScheduleRule", back_populates="exceptions")

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        sa.UniqueConstraint('rule_id', 'on_date', name='uq_schedule_exception_rule_date'),
    )
