"""
Tests del servicio de reglas recurrentes: altas por día, reemplazo, excepciones
y materialización de sesiones.
"""
from datetime import date, datetime

import pytest

from app.core.exceptions import InactiveClassError, InvalidRangeError, NotFoundError
from app.models.schedule import ClassScheduleException, ClassSession
from app.schemas.schedule import (
    ClassSessionCreate,
    ScheduleExceptionUpsert,
    ScheduleRuleCreate,
    ScheduleRuleUpdate,
)
from app.services.schedule import class_session_service, schedule_rule_service


def rule_data(class_id: int, **overrides) -> dict:
    data = dict(
        class_id=class_id, weekdays=[1], start_time="18:00", end_time="19:00",
        starts_on="2024-03-01", capacity=15,
    )
    data.update(overrides)
    return data


class TestRuleManagement:
    @pytest.mark.asyncio
    async def test_one_rule_per_weekday(self, db, gym, yoga_class):
        rules = await schedule_rule_service.create_rules(
            db, ScheduleRuleCreate(**rule_data(yoga_class.id, weekdays=[3, 1])), gym.id
        )
        assert [r.weekday for r in rules] == [1, 3]
        assert all(r.gym_id == gym.id for r in rules)

    @pytest.mark.asyncio
    async def test_update_same_weekday_edits_in_place(self, db, gym, yoga_class):
        rule = (await schedule_rule_service.create_rules(
            db, ScheduleRuleCreate(**rule_data(yoga_class.id)), gym.id
        ))[0]

        updated = await schedule_rule_service.update_rule(
            db, rule.id, ScheduleRuleUpdate(**rule_data(yoga_class.id, start_time="17:00")), gym.id
        )
        assert len(updated) == 1
        assert updated[0].id == rule.id
        assert updated[0].start_time.hour == 17

    @pytest.mark.asyncio
    async def test_update_with_new_weekdays_replaces_rule(self, db, gym, yoga_class):
        rule = (await schedule_rule_service.create_rules(
            db, ScheduleRuleCreate(**rule_data(yoga_class.id)), gym.id
        ))[0]
        await schedule_rule_service.upsert_exception(
            db, rule.id, ScheduleExceptionUpsert(on_date="2024-03-11", skip=True), gym.id
        )

        replaced = await schedule_rule_service.update_rule(
            db, rule.id, ScheduleRuleUpdate(**rule_data(yoga_class.id, weekdays=[2, 4])), gym.id
        )

        assert [r.weekday for r in replaced] == [2, 4]
        assert rule.id not in [r.id for r in replaced]
        assert db.query(ClassScheduleException).count() == 0
        with pytest.raises(NotFoundError):
            await schedule_rule_service.get_exceptions(db, rule.id, gym.id)

    @pytest.mark.asyncio
    async def test_rules_of_retired_class_can_still_be_edited(self, db, gym, yoga_class):
        rule = (await schedule_rule_service.create_rules(
            db, ScheduleRuleCreate(**rule_data(yoga_class.id)), gym.id
        ))[0]
        yoga_class.is_active = False
        db.commit()

        updated = await schedule_rule_service.update_rule(
            db, rule.id, ScheduleRuleUpdate(**rule_data(yoga_class.id, is_active=False)), gym.id
        )
        assert updated[0].id == rule.id
        assert updated[0].is_active is False

    @pytest.mark.asyncio
    async def test_rule_cannot_move_to_inactive_class(self, db, gym, yoga_class, inactive_class):
        rule = (await schedule_rule_service.create_rules(
            db, ScheduleRuleCreate(**rule_data(yoga_class.id)), gym.id
        ))[0]
        with pytest.raises(InactiveClassError):
            await schedule_rule_service.update_rule(
                db, rule.id, ScheduleRuleUpdate(**rule_data(inactive_class.id)), gym.id
            )

    @pytest.mark.asyncio
    async def test_exception_upsert_keeps_one_per_date(self, db, gym, yoga_class):
        rule = (await schedule_rule_service.create_rules(
            db, ScheduleRuleCreate(**rule_data(yoga_class.id)), gym.id
        ))[0]

        await schedule_rule_service.upsert_exception(
            db, rule.id, ScheduleExceptionUpsert(on_date="2024-03-11", skip=True), gym.id
        )
        await schedule_rule_service.upsert_exception(
            db, rule.id, ScheduleExceptionUpsert(on_date="2024-03-11", override_capacity=5), gym.id
        )

        exceptions = await schedule_rule_service.get_exceptions(db, rule.id, gym.id)
        assert len(exceptions) == 1
        assert exceptions[0].skip is False
        assert exceptions[0].override_capacity == 5

    @pytest.mark.asyncio
    async def test_exception_cannot_leave_empty_window(self, db, gym, yoga_class):
        rule = (await schedule_rule_service.create_rules(
            db, ScheduleRuleCreate(**rule_data(yoga_class.id)), gym.id
        ))[0]
        with pytest.raises(InvalidRangeError):
            await schedule_rule_service.upsert_exception(
                db, rule.id, ScheduleExceptionUpsert(on_date="2024-03-11", override_start_time="20:00"), gym.id
            )

    @pytest.mark.asyncio
    async def test_rules_are_tenant_scoped(self, db, gym, other_gym, yoga_class):
        rule = (await schedule_rule_service.create_rules(
            db, ScheduleRuleCreate(**rule_data(yoga_class.id)), gym.id
        ))[0]
        assert await schedule_rule_service.get_rules(db, other_gym.id) == []
        with pytest.raises(NotFoundError):
            await schedule_rule_service.delete_rule(db, rule.id, other_gym.id)


class TestMaterializeRules:
    @pytest.mark.asyncio
    async def test_creates_sessions_and_applies_exceptions(self, db, gym, yoga_class):
        rule = (await schedule_rule_service.create_rules(
            db, ScheduleRuleCreate(**rule_data(yoga_class.id)), gym.id
        ))[0]
        await schedule_rule_service.upsert_exception(
            db, rule.id, ScheduleExceptionUpsert(on_date="2024-03-11", skip=True), gym.id
        )

        result = await schedule_rule_service.materialize_rules(
            db, gym.id, from_date=date(2024, 3, 1), to_date=date(2024, 3, 31)
        )

        assert result.created == 3
        assert result.skipped_existing == 0
        assert result.conflicts == []
        sessions = db.query(ClassSession).all()
        assert {s.recurrence_pattern for s in sessions} == {f"RULE:{rule.id}"}
        assert all(s.capacity == 15 for s in sessions)

    @pytest.mark.asyncio
    async def test_second_run_skips_existing(self, db, gym, yoga_class):
        await schedule_rule_service.create_rules(db, ScheduleRuleCreate(**rule_data(yoga_class.id)), gym.id)

        await schedule_rule_service.materialize_rules(db, gym.id, date(2024, 3, 1), date(2024, 3, 31))
        again = await schedule_rule_service.materialize_rules(db, gym.id, date(2024, 3, 1), date(2024, 3, 31))

        assert again.created == 0
        assert again.skipped_existing == 4
        assert db.query(ClassSession).count() == 4

    @pytest.mark.asyncio
    async def test_overlapping_occurrences_are_reported(self, db, gym, yoga_class):
        existing = await class_session_service.create_session(
            db, ClassSessionCreate(
                class_id=yoga_class.id,
                start_time=datetime(2024, 3, 18, 18, 30),
                end_time=datetime(2024, 3, 18, 19, 30),
            ), gym.id
        )
        rule = (await schedule_rule_service.create_rules(
            db, ScheduleRuleCreate(**rule_data(yoga_class.id)), gym.id
        ))[0]

        result = await schedule_rule_service.materialize_rules(db, gym.id, date(2024, 3, 1), date(2024, 3, 31))

        assert result.created == 3
        assert len(result.conflicts) == 1
        conflict = result.conflicts[0]
        assert conflict.rule_id == rule.id
        assert conflict.on_date == date(2024, 3, 18)
        assert conflict.conflicting_session_ids == [existing.session.id]

    @pytest.mark.asyncio
    async def test_clashing_rules_in_same_run(self, db, gym, yoga_class):
        await schedule_rule_service.create_rules(db, ScheduleRuleCreate(**rule_data(yoga_class.id)), gym.id)
        await schedule_rule_service.create_rules(
            db, ScheduleRuleCreate(**rule_data(yoga_class.id, start_time="18:30", end_time="19:30")), gym.id
        )

        result = await schedule_rule_service.materialize_rules(db, gym.id, date(2024, 3, 4), date(2024, 3, 4))

        assert result.created == 1
        assert len(result.conflicts) == 1
        assert result.conflicts[0].conflicting_session_ids == []

    @pytest.mark.asyncio
    async def test_inactive_rules_are_ignored(self, db, gym, yoga_class):
        await schedule_rule_service.create_rules(
            db, ScheduleRuleCreate(**rule_data(yoga_class.id, is_active=False)), gym.id
        )
        result = await schedule_rule_service.materialize_rules(db, gym.id, date(2024, 3, 1), date(2024, 3, 31))
        assert result.created == 0

    @pytest.mark.asyncio
    async def test_default_window(self, db, gym, yoga_class):
        result = await schedule_rule_service.materialize_rules(db, gym.id)
        assert (result.to_date - result.from_date).days == 28
