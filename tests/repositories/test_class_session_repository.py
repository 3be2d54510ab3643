"""
Tests del repositorio de sesiones contra SQLite en memoria.
"""
from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import InvalidRangeError, StorageFailureError
from app.core.timezone_utils import ensure_utc
from app.models.schedule import ClassSession
from app.repositories.schedule import class_repository, class_session_repository


def utc(day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(2024, 3, day, hour, minute, tzinfo=timezone.utc)


def payload(gym_id: int, class_id: int, start: datetime, minutes: int = 60) -> dict:
    return {
        "gym_id": gym_id,
        "class_id": class_id,
        "start_time": start,
        "end_time": start + timedelta(minutes=minutes),
        "capacity": 10,
        "is_recurring": True,
        "recurrence_pattern": "WEEKLY:1",
    }


class TestCreateMany:
    def test_inserts_whole_batch(self, db, gym, yoga_class):
        sessions = class_session_repository.create_many(db, payloads=[
            payload(gym.id, yoga_class.id, utc(4, 16)),
            payload(gym.id, yoga_class.id, utc(11, 16)),
        ])

        assert len(sessions) == 2
        assert all(s.id is not None for s in sessions)
        assert db.query(ClassSession).count() == 2

    def test_empty_batch_is_a_no_op(self, db):
        assert class_session_repository.create_many(db, payloads=[]) == []

    def test_invalid_interval_rejects_whole_batch(self, db, gym, yoga_class):
        bad = payload(gym.id, yoga_class.id, utc(11, 16))
        bad["end_time"] = bad["start_time"]

        with pytest.raises(InvalidRangeError):
            class_session_repository.create_many(db, payloads=[
                payload(gym.id, yoga_class.id, utc(4, 16)), bad
            ])
        assert db.query(ClassSession).count() == 0

    def test_storage_errors_are_wrapped(self, db, gym, yoga_class):
        broken = payload(gym.id, yoga_class.id, utc(4, 16))
        broken["class_id"] = None  # NOT NULL

        with pytest.raises(StorageFailureError) as exc_info:
            class_session_repository.create_many(db, payloads=[broken])
        assert "NOT NULL" in exc_info.value.message.upper()
        assert db.query(ClassSession).count() == 0


class TestQueries:
    @pytest.fixture
    def sessions(self, db, gym, yoga_class):
        return class_session_repository.create_many(db, payloads=[
            payload(gym.id, yoga_class.id, utc(11, 16)),
            payload(gym.id, yoga_class.id, utc(4, 16)),
            payload(gym.id, yoga_class.id, utc(4, 8)),
        ])

    def test_find_orders_by_start_and_filters_range(self, db, gym, yoga_class, sessions):
        found = class_session_repository.find(db, gym_id=gym.id, class_id=yoga_class.id)
        assert [ensure_utc(s.start_time) for s in found] == [utc(4, 8), utc(4, 16), utc(11, 16)]

        # Límites inclusivos
        bounded = class_session_repository.find(
            db, gym_id=gym.id, start_from=utc(4, 16), start_to=utc(11, 16)
        )
        assert len(bounded) == 2

    def test_find_is_tenant_scoped(self, db, other_gym, sessions):
        assert class_session_repository.find(db, gym_id=other_gym.id) == []

    def test_get_overlapping_uses_half_open_intervals(self, db, gym, yoga_class, sessions):
        overlapping = class_session_repository.get_overlapping(
            db, gym_id=gym.id, class_id=yoga_class.id, start_time=utc(4, 16, 30), end_time=utc(4, 17, 30)
        )
        assert len(overlapping) == 1

        adjacent = class_session_repository.get_overlapping(
            db, gym_id=gym.id, class_id=yoga_class.id, start_time=utc(4, 17), end_time=utc(4, 18)
        )
        assert adjacent == []

    def test_get_overlapping_can_exclude_a_session(self, db, gym, yoga_class, sessions):
        target = sessions[1]
        overlapping = class_session_repository.get_overlapping(
            db, gym_id=gym.id, class_id=yoga_class.id,
            start_time=utc(4, 16), end_time=utc(4, 17), exclude_id=target.id
        )
        assert overlapping == []

    def test_get_starting_at(self, db, gym, yoga_class, sessions):
        assert class_session_repository.get_starting_at(
            db, gym_id=gym.id, class_id=yoga_class.id, start_time=utc(4, 16)
        ) is not None
        assert class_session_repository.get_starting_at(
            db, gym_id=gym.id, class_id=yoga_class.id, start_time=utc(4, 16, 5)
        ) is None

    def test_remove_many_counts_only_own_tenant(self, db, gym, other_gym, sessions):
        ids = [s.id for s in sessions]
        assert class_session_repository.remove_many(db, ids=ids, gym_id=other_gym.id) == 0
        assert class_session_repository.remove_many(db, ids=ids[:2], gym_id=gym.id) == 2
        assert db.query(ClassSession).count() == 1
        assert class_session_repository.remove_many(db, ids=[], gym_id=gym.id) == 0


class TestClassRepository:
    def test_lock_for_update_is_tenant_scoped(self, db, gym, other_gym, yoga_class):
        assert class_repository.lock_for_update(db, class_id=yoga_class.id, gym_id=gym.id) is not None
        assert class_repository.lock_for_update(db, class_id=yoga_class.id, gym_id=other_gym.id) is None
        db.rollback()
