from typing import List, Optional, Dict, Any, Sequence
from datetime import date, datetime, timedelta
from sqlalchemy.orm import Session
import logging

from redis.asyncio import Redis

from app.core.config import get_settings
from app.core.exceptions import InactiveClassError, InvalidRangeError, NotFoundError
from app.core.timezone_utils import (
    ensure_utc,
    get_current_time_in_gym_timezone,
    local_day_bounds_utc,
    normalize_to_utc,
    populate_session_timezone_fields,
)
from app.models.schedule import Class, ClassSession, ClassScheduleRule
from app.repositories.gym import gym_repository
from app.repositories.schedule import (
    class_repository,
    class_session_repository,
    schedule_rule_repository,
    schedule_exception_repository,
)
from app.schemas.schedule import (
    ClassCreate,
    ClassUpdate,
    Class as ClassSchema,
    ClassSession as ClassSessionSchema,
    ClassSessionCreate,
    ClassSessionUpdate,
    ProgramGenerateRequest,
    ProgramGenerateResult,
    ProgramDeleteRequest,
    ProgramDeleteResult,
    RuleGenerateResult,
    RuleOccurrenceConflict,
    ScheduleException as ScheduleExceptionSchema,
    ScheduleExceptionUpsert,
    ScheduleRule as ScheduleRuleSchema,
    ScheduleRuleCreate,
    ScheduleRuleUpdate,
    SessionConflict,
    SessionWriteResult,
)
from app.services.cache_service import cache_service
from app.services.program import (
    RuleOccurrence,
    expand_rule_occurrences,
    find_batch_conflicts,
    generate_program_sessions,
    match_sessions_for_deletion,
    sessions_overlap,
    validate_deletion_filters,
)

logger = logging.getLogger(__name__)


def get_gym_timezone(db: Session, gym_id: int) -> str:
    """Zona horaria IANA del gimnasio."""
    gym = gym_repository.get(db, id=gym_id)
    if not gym:
        raise NotFoundError(f"Gimnasio {gym_id} no encontrado")
    return gym.timezone


def to_session_schema(session: ClassSession, gym_timezone: str) -> ClassSessionSchema:
    """Sesión para respuestas: instantes en UTC más su hora local del gimnasio."""
    data = ClassSessionSchema.model_validate(session).model_dump()
    return ClassSessionSchema(**populate_session_timezone_fields(data, gym_timezone))


def check_range_length(from_date: date, to_date: date) -> None:
    if from_date > to_date:
        raise InvalidRangeError("from_date no puede ser posterior a to_date")
    max_days = get_settings().PROGRAM_MAX_RANGE_DAYS
    if (to_date - from_date).days + 1 > max_days:
        raise InvalidRangeError(f"El rango de fechas no puede superar {max_days} días")


def get_schedulable_class(
    db: Session, class_id: int, gym_id: int, lock: bool = False, require_active: bool = True
) -> Class:
    """
    Clase del gimnasio. Con lock=True se bloquea la fila (FOR UPDATE) hasta el
    fin de la transacción, lo que serializa la comprobación de conflictos y la inserción.

    Solo la creación exige una clase activa; editar sesiones o reglas existentes de
    una clase retirada se permite con require_active=False.
    """
    if lock:
        class_obj = class_repository.lock_for_update(db, class_id=class_id, gym_id=gym_id)
    else:
        class_obj = class_repository.get(db, id=class_id, gym_id=gym_id)
    if not class_obj:
        raise NotFoundError(f"Clase {class_id} no encontrada en este gimnasio")
    if require_active and not class_obj.is_active:
        raise InactiveClassError("No se pueden crear sesiones para una clase inactiva")
    return class_obj


class ClassService:
    async def _invalidate_class_caches(self, redis_client: Optional[Redis], gym_id: int) -> None:
        await cache_service.delete_pattern(redis_client, f"schedule:classes:gym:{gym_id}:*")

    async def get_class(self, db: Session, class_id: int, gym_id: int,
                        redis_client: Optional[Redis] = None) -> ClassSchema:
        """Obtener una clase del gimnasio (con caché)"""
        async def db_fetch():
            return class_repository.get(db, id=class_id, gym_id=gym_id)

        class_obj = await cache_service.get_or_set(
            redis_client=redis_client,
            cache_key=f"schedule:classes:gym:{gym_id}:detail:{class_id}",
            db_fetch_func=db_fetch,
            model_class=ClassSchema,
            expiry_seconds=get_settings().CACHE_TTL_CLASSES,
        )
        if class_obj is None:
            raise NotFoundError(f"Clase {class_id} no encontrada en este gimnasio")
        return class_obj

    async def get_classes(self, db: Session, gym_id: int, active_only: bool = False,
                          skip: int = 0, limit: int = 100,
                          redis_client: Optional[Redis] = None) -> List[ClassSchema]:
        async def db_fetch():
            return class_repository.get_by_gym(db, gym_id=gym_id, active_only=active_only, skip=skip, limit=limit)

        return await cache_service.get_or_set(
            redis_client=redis_client,
            cache_key=f"schedule:classes:gym:{gym_id}:list:{int(active_only)}:{skip}:{limit}",
            db_fetch_func=db_fetch,
            model_class=ClassSchema,
            expiry_seconds=get_settings().CACHE_TTL_CLASSES,
            is_list=True,
        )

    async def create_class(self, db: Session, class_data: ClassCreate, gym_id: int,
                           redis_client: Optional[Redis] = None) -> Class:
        """Crear una nueva clase e invalidar caché"""
        db_obj = class_repository.create(db, obj_in=class_data, gym_id=gym_id)
        await self._invalidate_class_caches(redis_client, gym_id)
        logger.info(f"Clase {db_obj.id} creada en gimnasio {gym_id}")
        return db_obj

    async def update_class(self, db: Session, class_id: int, class_data: ClassUpdate, gym_id: int,
                           redis_client: Optional[Redis] = None) -> Class:
        """Actualizar una clase existente e invalidar caché"""
        class_obj = class_repository.get(db, id=class_id, gym_id=gym_id)
        if not class_obj:
            raise NotFoundError(f"Clase {class_id} no encontrada en este gimnasio")

        updated_class = class_repository.update(db, db_obj=class_obj, obj_in=class_data)
        await self._invalidate_class_caches(redis_client, gym_id)
        return updated_class


class ClassSessionService:
    async def get_session(self, db: Session, session_id: int, gym_id: int) -> ClassSessionSchema:
        session = class_session_repository.get(db, id=session_id, gym_id=gym_id)
        if not session:
            raise NotFoundError(f"Sesión {session_id} no encontrada en este gimnasio")
        return to_session_schema(session, get_gym_timezone(db, gym_id))

    async def check_overlap(
        self, db: Session, *, gym_id: int, class_id: int, start_time: datetime, end_time: datetime,
        exclude_id: Optional[int] = None
    ) -> List[ClassSession]:
        """Sesiones de la misma clase que se solapan con [start_time, end_time) (UTC)."""
        return class_session_repository.get_overlapping(
            db, gym_id=gym_id, class_id=class_id,
            start_time=start_time, end_time=end_time, exclude_id=exclude_id
        )

    async def create_session(self, db: Session, session_data: ClassSessionCreate, gym_id: int) -> SessionWriteResult:
        """
        Crear una sesión ad-hoc. Se rechaza con status="conflict" si se solapa con
        otra sesión de la misma clase.
        """
        gym_timezone = get_gym_timezone(db, gym_id)
        start_time = normalize_to_utc(session_data.start_time, gym_timezone)
        end_time = normalize_to_utc(session_data.end_time, gym_timezone)
        if end_time <= start_time:
            raise InvalidRangeError("end_time debe ser posterior a start_time")

        get_schedulable_class(db, session_data.class_id, gym_id, lock=True)

        overlapping = await self.check_overlap(
            db, gym_id=gym_id, class_id=session_data.class_id, start_time=start_time, end_time=end_time
        )
        if overlapping:
            conflicts = [SessionConflict.model_validate(s) for s in overlapping]
            db.rollback()  # Liberar el bloqueo de la clase
            logger.warning(
                f"Conflicto al crear sesión de clase {session_data.class_id} en gimnasio {gym_id}: "
                f"{[c.id for c in conflicts]}"
            )
            return SessionWriteResult(status="conflict", conflicts=conflicts)

        obj_in_data = session_data.model_dump()
        obj_in_data.update(start_time=start_time, end_time=end_time)
        created_session = class_session_repository.create(db, obj_in=obj_in_data, gym_id=gym_id)
        logger.info(f"Sesión {created_session.id} creada (clase {created_session.class_id}, gimnasio {gym_id})")
        return SessionWriteResult(status="created", session=to_session_schema(created_session, gym_timezone))

    async def update_session(
        self, db: Session, session_id: int, session_data: ClassSessionUpdate, gym_id: int
    ) -> SessionWriteResult:
        """
        Mover/redimensionar o editar una sesión. El nuevo intervalo se vuelve a comprobar
        contra las demás sesiones de la clase (excluyendo la propia).
        """
        session = class_session_repository.get(db, id=session_id, gym_id=gym_id)
        if not session:
            raise NotFoundError(f"Sesión {session_id} no encontrada en este gimnasio")
        gym_timezone = get_gym_timezone(db, gym_id)

        update_data = session_data.model_dump(exclude_unset=True)
        if "start_time" in update_data or "end_time" in update_data:
            start_time = (normalize_to_utc(update_data["start_time"], gym_timezone)
                          if update_data.get("start_time") else ensure_utc(session.start_time))
            end_time = (normalize_to_utc(update_data["end_time"], gym_timezone)
                        if update_data.get("end_time") else ensure_utc(session.end_time))
            if end_time <= start_time:
                raise InvalidRangeError("end_time debe ser posterior a start_time")

            get_schedulable_class(db, session.class_id, gym_id, lock=True, require_active=False)
            overlapping = await self.check_overlap(
                db, gym_id=gym_id, class_id=session.class_id,
                start_time=start_time, end_time=end_time, exclude_id=session.id
            )
            if overlapping:
                conflicts = [SessionConflict.model_validate(s) for s in overlapping]
                db.rollback()
                logger.warning(f"Conflicto al mover la sesión {session_id}: {[c.id for c in conflicts]}")
                return SessionWriteResult(status="conflict", conflicts=conflicts)

            update_data["start_time"] = start_time
            update_data["end_time"] = end_time

        updated_session = class_session_repository.update(db, db_obj=session, obj_in=update_data)
        return SessionWriteResult(status="updated", session=to_session_schema(updated_session, gym_timezone))

    async def delete_session(self, db: Session, session_id: int, gym_id: int) -> ClassSessionSchema:
        session = class_session_repository.get(db, id=session_id, gym_id=gym_id)
        if not session:
            raise NotFoundError(f"Sesión {session_id} no encontrada en este gimnasio")
        removed = to_session_schema(session, get_gym_timezone(db, gym_id))
        class_session_repository.remove_many(db, ids=[session_id], gym_id=gym_id)
        logger.info(f"Sesión {session_id} eliminada del gimnasio {gym_id}")
        return removed

    async def get_sessions_by_date_range(
        self, db: Session, gym_id: int, start_date: date, end_date: date,
        class_id: Optional[int] = None, skip: int = 0, limit: int = 500
    ) -> List[ClassSessionSchema]:
        """
        Sesiones cuyo inicio cae entre el inicio local de start_date y el fin local de
        end_date (ambos inclusive), ordenadas por inicio.
        """
        if start_date > end_date:
            raise InvalidRangeError("start_date no puede ser posterior a end_date")
        gym_timezone = get_gym_timezone(db, gym_id)
        start_utc, end_utc = local_day_bounds_utc(start_date, end_date, gym_timezone)
        sessions = class_session_repository.find(
            db, gym_id=gym_id, class_id=class_id, start_from=start_utc, start_to=end_utc,
            skip=skip, limit=limit
        )
        return [to_session_schema(s, gym_timezone) for s in sessions]

    async def generate_program(self, db: Session, request: ProgramGenerateRequest, gym_id: int) -> ProgramGenerateResult:
        """
        Genera una sesión por cada fecha del rango que cae en el día de la semana
        pedido y las inserta en un único lote. Si alguna choca con una sesión
        existente no se inserta ninguna (status="conflict").
        """
        check_range_length(request.from_date, request.to_date)
        gym_timezone = get_gym_timezone(db, gym_id)
        payloads = generate_program_sessions(request, gym_id, gym_timezone)
        get_schedulable_class(db, request.class_id, gym_id, lock=True)

        if not payloads:
            db.rollback()
            logger.info(
                f"Programa sin sesiones para clase {request.class_id}: ninguna fecha entre "
                f"{request.from_date} y {request.to_date} cae en el día {request.day_of_week}"
            )
            return ProgramGenerateResult(status="none_created", created=0)

        existing = class_session_repository.get_overlapping(
            db, gym_id=gym_id, class_id=request.class_id,
            start_time=payloads[0]["start_time"], end_time=payloads[-1]["end_time"]
        )
        clashes = find_batch_conflicts(payloads, existing)
        if clashes:
            conflicts = [SessionConflict.model_validate(s) for s in clashes]
            db.rollback()
            logger.warning(
                f"Programa rechazado para clase {request.class_id}: {len(conflicts)} sesiones existentes en conflicto"
            )
            return ProgramGenerateResult(status="conflict", created=0, conflicts=conflicts)

        sessions = class_session_repository.create_many(db, payloads=payloads)
        logger.info(
            f"Programa generado: {len(sessions)} sesiones para clase {request.class_id} "
            f"en gimnasio {gym_id} ({request.from_date} -> {request.to_date})"
        )
        return ProgramGenerateResult(
            status="created",
            created=len(sessions),
            sessions=[to_session_schema(s, gym_timezone) for s in sessions],
        )

    async def select_for_deletion(
        self, db: Session, *, gym_id: int, class_id: int, from_date: date, to_date: date,
        selected_days: Sequence[int], time_filter: Any
    ) -> List[int]:
        """
        Ids de las sesiones de la clase que empiezan en el rango (días locales inclusive),
        en uno de los días seleccionados y, si se pide, a una hora:minuto local concreta.
        """
        validate_deletion_filters(selected_days, time_filter)
        check_range_length(from_date, to_date)

        gym_timezone = get_gym_timezone(db, gym_id)
        start_utc, end_utc = local_day_bounds_utc(from_date, to_date, gym_timezone)
        candidates = class_session_repository.find(
            db, gym_id=gym_id, class_id=class_id, start_from=start_utc, start_to=end_utc
        )
        return match_sessions_for_deletion(candidates, selected_days, time_filter, gym_timezone)

    async def delete_program(self, db: Session, request: ProgramDeleteRequest, gym_id: int) -> ProgramDeleteResult:
        """Borrado por rango. Distingue "nada coincide" de "encontradas y eliminadas"."""
        ids = await self.select_for_deletion(
            db, gym_id=gym_id, class_id=request.class_id,
            from_date=request.from_date, to_date=request.to_date,
            selected_days=request.selected_days, time_filter=request.time_filter,
        )
        if not ids:
            logger.info(f"Borrado por rango sin coincidencias (clase {request.class_id}, gimnasio {gym_id})")
            return ProgramDeleteResult(status="nothing_matched", deleted=0, matched_ids=[])

        if request.dry_run:
            return ProgramDeleteResult(status="preview", deleted=0, matched_ids=ids)

        deleted = class_session_repository.remove_many(db, ids=ids, gym_id=gym_id)
        logger.info(f"Borrado por rango: {deleted} sesiones eliminadas (clase {request.class_id}, gimnasio {gym_id})")
        return ProgramDeleteResult(status="deleted", deleted=deleted, matched_ids=ids)


class ScheduleRuleService:
    def _get_rule(self, db: Session, rule_id: int, gym_id: int) -> ClassScheduleRule:
        rule = schedule_rule_repository.get(db, id=rule_id, gym_id=gym_id)
        if not rule:
            raise NotFoundError(f"Regla {rule_id} no encontrada en este gimnasio")
        return rule

    @staticmethod
    def _rule_rows(rule_data: ScheduleRuleCreate, gym_id: int) -> List[Dict[str, Any]]:
        base = rule_data.model_dump(exclude={"weekdays"})
        return [{**base, "gym_id": gym_id, "weekday": weekday} for weekday in rule_data.weekdays]

    async def get_rules(self, db: Session, gym_id: int, class_id: Optional[int] = None) -> List[ScheduleRuleSchema]:
        rules = schedule_rule_repository.get_by_gym(db, gym_id=gym_id, class_id=class_id)
        return [ScheduleRuleSchema.model_validate(r) for r in rules]

    async def create_rules(self, db: Session, rule_data: ScheduleRuleCreate, gym_id: int) -> List[ScheduleRuleSchema]:
        """Crea una regla por cada día de la semana seleccionado"""
        get_schedulable_class(db, rule_data.class_id, gym_id)
        rules = schedule_rule_repository.create_many(db, rows=self._rule_rows(rule_data, gym_id))
        logger.info(f"{len(rules)} reglas creadas para clase {rule_data.class_id} en gimnasio {gym_id}")
        return [ScheduleRuleSchema.model_validate(r) for r in rules]

    async def update_rule(
        self, db: Session, rule_id: int, rule_data: ScheduleRuleUpdate, gym_id: int
    ) -> List[ScheduleRuleSchema]:
        """
        Si el día no cambia se actualiza la regla; si cambia la selección de días, la
        regla se reemplaza por una nueva por día (sus excepciones se descartan).
        """
        rule = self._get_rule(db, rule_id, gym_id)
        # Reasignar la regla a otra clase sí exige que esa clase esté activa
        get_schedulable_class(db, rule_data.class_id, gym_id, require_active=rule_data.class_id != rule.class_id)

        if rule_data.weekdays == [rule.weekday]:
            updated = schedule_rule_repository.update(
                db, db_obj=rule, obj_in=rule_data.model_dump(exclude={"weekdays"})
            )
            return [ScheduleRuleSchema.model_validate(updated)]

        rules = schedule_rule_repository.create_many(db, rows=self._rule_rows(rule_data, gym_id), replace=rule)
        logger.info(f"Regla {rule_id} reemplazada por {[r.id for r in rules]}")
        return [ScheduleRuleSchema.model_validate(r) for r in rules]

    async def delete_rule(self, db: Session, rule_id: int, gym_id: int) -> ScheduleRuleSchema:
        rule = self._get_rule(db, rule_id, gym_id)
        removed = ScheduleRuleSchema.model_validate(rule)
        schedule_rule_repository.remove(db, id=rule_id, gym_id=gym_id)
        return removed

    async def get_exceptions(self, db: Session, rule_id: int, gym_id: int) -> List[ScheduleExceptionSchema]:
        self._get_rule(db, rule_id, gym_id)
        return [
            ScheduleExceptionSchema.model_validate(e)
            for e in schedule_exception_repository.get_by_rule(db, rule_id=rule_id, gym_id=gym_id)
        ]

    async def upsert_exception(
        self, db: Session, rule_id: int, exception_data: ScheduleExceptionUpsert, gym_id: int
    ) -> ScheduleExceptionSchema:
        """Crea o reemplaza la excepción de la regla para esa fecha"""
        rule = self._get_rule(db, rule_id, gym_id)
        if not exception_data.skip:
            start_time = exception_data.override_start_time or rule.start_time
            end_time = exception_data.override_end_time or rule.end_time
            if start_time >= end_time:
                raise InvalidRangeError(
                    f"La excepción deja una ventana vacía ({start_time:%H:%M}-{end_time:%H:%M})"
                )
        exception = schedule_exception_repository.upsert(
            db, rule_id=rule_id, gym_id=gym_id, obj_in=exception_data
        )
        return ScheduleExceptionSchema.model_validate(exception)

    async def delete_exception(self, db: Session, exception_id: int, gym_id: int) -> ScheduleExceptionSchema:
        exception = schedule_exception_repository.get(db, id=exception_id, gym_id=gym_id)
        if not exception:
            raise NotFoundError(f"Excepción {exception_id} no encontrada en este gimnasio")
        removed = ScheduleExceptionSchema.model_validate(exception)
        schedule_exception_repository.remove(db, id=exception_id, gym_id=gym_id)
        return removed

    async def materialize_rules(
        self, db: Session, gym_id: int, from_date: Optional[date] = None, to_date: Optional[date] = None,
        class_id: Optional[int] = None
    ) -> RuleGenerateResult:
        """
        Crea las sesiones de las reglas activas dentro de la ventana (por defecto, desde
        hoy en hora del gimnasio y RULES_DEFAULT_WINDOW_DAYS días).

        - Una ocurrencia cuyo inicio exacto ya existe para la clase se cuenta como skipped_existing.
        - Una ocurrencia que se solapa con otra sesión se informa en conflicts y no se crea.
        - El resto se inserta en un único lote.
        """
        gym_timezone = get_gym_timezone(db, gym_id)
        if from_date is None:
            from_date = get_current_time_in_gym_timezone(gym_timezone).date()
        if to_date is None:
            to_date = from_date + timedelta(days=get_settings().RULES_DEFAULT_WINDOW_DAYS)
        check_range_length(from_date, to_date)

        rules = schedule_rule_repository.get_by_gym(db, gym_id=gym_id, class_id=class_id, active_only=True)

        # Bloquear las clases implicadas antes de comprobar conflictos
        schedulable = {}
        for class_key in sorted({r.class_id for r in rules}):
            class_obj = class_repository.lock_for_update(db, class_id=class_key, gym_id=gym_id)
            schedulable[class_key] = bool(class_obj and class_obj.is_active)

        accepted: List[RuleOccurrence] = []
        skipped_existing = 0
        conflicts: List[RuleOccurrenceConflict] = []

        for rule in rules:
            if not schedulable[rule.class_id]:
                logger.info(f"Regla {rule.id} ignorada: la clase {rule.class_id} está inactiva")
                continue
            exceptions = schedule_exception_repository.get_by_rule_indexed(db, rule_id=rule.id, gym_id=gym_id)

            for occurrence in expand_rule_occurrences(rule, exceptions, from_date, to_date, gym_timezone):
                if class_session_repository.get_starting_at(
                    db, gym_id=gym_id, class_id=occurrence.class_id, start_time=occurrence.start_time
                ):
                    skipped_existing += 1
                    continue

                overlapping = class_session_repository.get_overlapping(
                    db, gym_id=gym_id, class_id=occurrence.class_id,
                    start_time=occurrence.start_time, end_time=occurrence.end_time
                )
                batch_clash = any(
                    other.class_id == occurrence.class_id
                    and sessions_overlap(other.start_time, other.end_time, occurrence.start_time, occurrence.end_time)
                    for other in accepted
                )
                if overlapping or batch_clash:
                    conflicts.append(RuleOccurrenceConflict(
                        rule_id=rule.id,
                        on_date=occurrence.on_date,
                        start_time=occurrence.start_time,
                        end_time=occurrence.end_time,
                        conflicting_session_ids=[s.id for s in overlapping],
                    ))
                    continue
                accepted.append(occurrence)

        if accepted:
            created = class_session_repository.create_many(
                db, payloads=[o.as_session_payload(gym_id) for o in accepted]
            )
        else:
            db.rollback()  # Liberar los bloqueos
            created = []

        if conflicts:
            logger.warning(f"Reglas del gimnasio {gym_id}: {len(conflicts)} ocurrencias en conflicto")
        logger.info(
            f"Reglas materializadas en gimnasio {gym_id} ({from_date} -> {to_date}): "
            f"{len(created)} creadas, {skipped_existing} ya existían"
        )
        return RuleGenerateResult(
            from_date=from_date,
            to_date=to_date,
            created=len(created),
            skipped_existing=skipped_existing,
            conflicts=conflicts,
        )


class_service = ClassService()
class_session_service = ClassSessionService()
schedule_rule_service = ScheduleRuleService()
