from typing import List, Optional, Dict, Any, Sequence
from datetime import datetime, date
import logging

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import InvalidRangeError, StorageFailureError
from app.core.timezone_utils import ensure_utc
from app.repositories.base import BaseRepository
from app.models.schedule import (
    Class,
    ClassSession,
    ClassScheduleRule,
    ClassScheduleException,
)
from app.schemas.schedule import (
    ClassCreate,
    ClassUpdate,
    ClassSessionCreate,
    ClassSessionUpdate,
    ScheduleRuleCreate,
    ScheduleRuleUpdate,
    ScheduleExceptionUpsert,
)

logger = logging.getLogger(__name__)


def _storage_failure(db: Session, error: SQLAlchemyError, action: str) -> StorageFailureError:
    """Hace rollback y traduce el error de SQLAlchemy conservando el mensaje original."""
    db.rollback()
    message = str(getattr(error, "orig", None) or error)
    logger.error(f"Error de almacenamiento al {action}: {message}", exc_info=True)
    return StorageFailureError(message)


class ClassRepository(BaseRepository[Class, ClassCreate, ClassUpdate]):
    def get_by_gym(self, db: Session, *, gym_id: int, active_only: bool = False,
                   skip: int = 0, limit: int = 100) -> List[Class]:
        """Obtener las clases de un gimnasio"""
        query = db.query(Class).filter(Class.gym_id == gym_id)
        if active_only:
            query = query.filter(Class.is_active == True)
        return query.order_by(Class.name).offset(skip).limit(limit).all()

    def lock_for_update(self, db: Session, *, class_id: int, gym_id: int) -> Optional[Class]:
        """
        Obtener la clase con SELECT ... FOR UPDATE.

        Serializa a quienes crean sesiones para la misma clase hasta el commit/rollback
        de la transacción actual (en SQLite la cláusula se omite).
        """
        return db.query(Class).filter(
            Class.id == class_id,
            Class.gym_id == gym_id
        ).with_for_update().first()


class ClassSessionRepository(BaseRepository[ClassSession, ClassSessionCreate, ClassSessionUpdate]):
    def find(
        self, db: Session, *, gym_id: int, class_id: Optional[int] = None,
        start_from: Optional[datetime] = None, start_to: Optional[datetime] = None,
        skip: int = 0, limit: Optional[int] = None
    ) -> List[ClassSession]:
        """
        Obtener sesiones de un gimnasio ordenadas por inicio.

        Args:
            db: Sesión de base de datos
            gym_id: ID del gimnasio
            class_id: Filtrar por clase (opcional)
            start_from: Inicio mínimo, inclusivo (UTC)
            start_to: Inicio máximo, inclusivo (UTC)
        """
        query = db.query(ClassSession).filter(ClassSession.gym_id == gym_id)

        if class_id is not None:
            query = query.filter(ClassSession.class_id == class_id)
        if start_from is not None:
            query = query.filter(ClassSession.start_time >= ensure_utc(start_from))
        if start_to is not None:
            query = query.filter(ClassSession.start_time <= ensure_utc(start_to))

        query = query.order_by(ClassSession.start_time, ClassSession.id).offset(skip)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def get_overlapping(
        self, db: Session, *, gym_id: int, class_id: int, start_time: datetime, end_time: datetime,
        exclude_id: Optional[int] = None
    ) -> List[ClassSession]:
        """
        Sesiones de la misma clase cuyo intervalo [start, end) se solapa con el dado.

        existing.start_time < end_time AND existing.end_time > start_time
        """
        query = db.query(ClassSession).filter(
            ClassSession.gym_id == gym_id,
            ClassSession.class_id == class_id,
            ClassSession.start_time < ensure_utc(end_time),
            ClassSession.end_time > ensure_utc(start_time)
        )
        if exclude_id is not None:
            query = query.filter(ClassSession.id != exclude_id)
        return query.order_by(ClassSession.start_time).all()

    def get_starting_at(
        self, db: Session, *, gym_id: int, class_id: int, start_time: datetime
    ) -> Optional[ClassSession]:
        """Sesión de la clase que empieza exactamente en start_time (UTC)."""
        return db.query(ClassSession).filter(
            ClassSession.gym_id == gym_id,
            ClassSession.class_id == class_id,
            ClassSession.start_time == ensure_utc(start_time)
        ).first()

    def create_many(self, db: Session, *, payloads: Sequence[Dict[str, Any]]) -> List[ClassSession]:
        """
        Inserta todas las sesiones en una sola transacción.

        Raises:
            InvalidRangeError: Si alguna sesión no cumple end_time > start_time (no se inserta ninguna)
            StorageFailureError: Si la base de datos rechaza la inserción
        """
        if not payloads:
            return []

        for payload in payloads:
            if ensure_utc(payload["end_time"]) <= ensure_utc(payload["start_time"]):
                raise InvalidRangeError(
                    f"Sesión inválida: end_time ({payload['end_time']}) debe ser posterior "
                    f"a start_time ({payload['start_time']})"
                )

        sessions = [
            ClassSession(**{
                **payload,
                "start_time": ensure_utc(payload["start_time"]),
                "end_time": ensure_utc(payload["end_time"]),
            })
            for payload in payloads
        ]
        try:
            db.add_all(sessions)
            db.commit()
        except SQLAlchemyError as e:
            raise _storage_failure(db, e, "crear sesiones en bloque") from e

        for session in sessions:
            db.refresh(session)
        return sessions

    def create(self, db: Session, *, obj_in, gym_id: Optional[int] = None) -> ClassSession:
        try:
            return super().create(db, obj_in=obj_in, gym_id=gym_id)
        except SQLAlchemyError as e:
            raise _storage_failure(db, e, "crear la sesión") from e

    def update(self, db: Session, *, db_obj: ClassSession, obj_in, gym_id: Optional[int] = None) -> ClassSession:
        try:
            return super().update(db, db_obj=db_obj, obj_in=obj_in, gym_id=gym_id)
        except SQLAlchemyError as e:
            raise _storage_failure(db, e, f"actualizar la sesión {db_obj.id}") from e

    def remove_many(self, db: Session, *, ids: Sequence[int], gym_id: int) -> int:
        """Elimina las sesiones indicadas del gimnasio. Devuelve el número de filas borradas."""
        if not ids:
            return 0
        try:
            deleted = db.query(ClassSession).filter(
                ClassSession.gym_id == gym_id,
                ClassSession.id.in_(list(ids))
            ).delete(synchronize_session=False)
            db.commit()
        except SQLAlchemyError as e:
            raise _storage_failure(db, e, "eliminar sesiones") from e
        return deleted


class ClassScheduleRuleRepository(BaseRepository[ClassScheduleRule, ScheduleRuleCreate, ScheduleRuleUpdate]):
    def get_by_gym(
        self, db: Session, *, gym_id: int, class_id: Optional[int] = None, active_only: bool = False
    ) -> List[ClassScheduleRule]:
        query = db.query(ClassScheduleRule).filter(ClassScheduleRule.gym_id == gym_id)
        if class_id is not None:
            query = query.filter(ClassScheduleRule.class_id == class_id)
        if active_only:
            query = query.filter(ClassScheduleRule.is_active == True)
        return query.order_by(
            ClassScheduleRule.class_id, ClassScheduleRule.weekday, ClassScheduleRule.start_time
        ).all()

    def create_many(self, db: Session, *, rows: Sequence[Dict[str, Any]],
                    replace: Optional[ClassScheduleRule] = None) -> List[ClassScheduleRule]:
        """
        Crea una regla por fila en una transacción. Si se pasa `replace`, esa regla
        (y sus excepciones) se elimina en la misma transacción.
        """
        rules = [ClassScheduleRule(**row) for row in rows]
        try:
            if replace is not None:
                db.delete(replace)
            db.add_all(rules)
            db.commit()
        except SQLAlchemyError as e:
            raise _storage_failure(db, e, "guardar reglas de horario") from e
        for rule in rules:
            db.refresh(rule)
        return rules


class ClassScheduleExceptionRepository(
    BaseRepository[ClassScheduleException, ScheduleExceptionUpsert, ScheduleExceptionUpsert]
):
    def get_by_rule(self, db: Session, *, rule_id: int, gym_id: int) -> List[ClassScheduleException]:
        return db.query(ClassScheduleException).filter(
            ClassScheduleException.rule_id == rule_id,
            ClassScheduleException.gym_id == gym_id
        ).order_by(ClassScheduleException.on_date).all()

    def get_by_rule_indexed(self, db: Session, *, rule_id: int, gym_id: int) -> Dict[date, ClassScheduleException]:
        """Excepciones de la regla indexadas por fecha local."""
        return {exc.on_date: exc for exc in self.get_by_rule(db, rule_id=rule_id, gym_id=gym_id)}

    def upsert(self, db: Session, *, rule_id: int, gym_id: int,
               obj_in: ScheduleExceptionUpsert) -> ClassScheduleException:
        """Una excepción por (regla, fecha): actualiza si existe, inserta si no."""
        data = obj_in.model_dump()
        existing = db.query(ClassScheduleException).filter(
            ClassScheduleException.rule_id == rule_id,
            ClassScheduleException.on_date == obj_in.on_date
        ).first()
        try:
            if existing:
                for field, value in data.items():
                    setattr(existing, field, value)
                db_obj = existing
            else:
                db_obj = ClassScheduleException(rule_id=rule_id, gym_id=gym_id, **data)
                db.add(db_obj)
            db.commit()
        except SQLAlchemyError as e:
            raise _storage_failure(db, e, f"guardar la excepción de la regla {rule_id}") from e
        db.refresh(db_obj)
        return db_obj


# Instantiate repositories
class_repository = ClassRepository(Class)
class_session_repository = ClassSessionRepository(ClassSession)
schedule_rule_repository = ClassScheduleRuleRepository(ClassScheduleRule)
schedule_exception_repository = ClassScheduleExceptionRepository(ClassScheduleException)
