"""
Tests de los endpoints de clases y sesiones (/api/v1/schedule/classes, /sessions).
"""
from app.models.schedule import ClassSession

API = "/api/v1/schedule"


def session_body(class_id: int, start: str, end: str, **extra) -> dict:
    return {"class_id": class_id, "start_time": start, "end_time": end, **extra}


class TestTenancy:
    def test_missing_gym_header(self, client, gym):
        response = client.get(f"{API}/classes")
        assert response.status_code == 400

    def test_unknown_gym(self, client, gym):
        response = client.get(f"{API}/classes", headers={"X-Gym-ID": "9999"})
        assert response.status_code == 404

    def test_inactive_gym(self, client, db, gym, gym_headers):
        gym.is_active = False
        db.commit()
        response = client.get(f"{API}/classes", headers=gym_headers)
        assert response.status_code == 403

    def test_classes_of_other_gym_are_invisible(self, client, gym_headers, yoga_class, other_gym_class):
        response = client.get(f"{API}/classes", headers=gym_headers)
        assert response.status_code == 200
        assert [c["name"] for c in response.json()] == ["Yoga"]

        response = client.get(f"{API}/classes/{other_gym_class.id}", headers=gym_headers)
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"


class TestClassesApi:
    def test_create_and_update_class(self, client, gym, gym_headers):
        response = client.post(f"{API}/classes", json={"name": "HIIT", "description": "45 min"}, headers=gym_headers)
        assert response.status_code == 201
        created = response.json()
        assert created["gym_id"] == gym.id
        assert created["is_active"] is True

        response = client.put(f"{API}/classes/{created['id']}", json={"is_active": False}, headers=gym_headers)
        assert response.status_code == 200
        assert response.json()["is_active"] is False
        assert response.json()["name"] == "HIIT"

        response = client.get(f"{API}/classes", params={"active_only": True}, headers=gym_headers)
        assert response.json() == []


class TestSessionsApi:
    def test_create_session_returns_utc_and_local_times(self, client, gym_headers, yoga_class):
        response = client.post(
            f"{API}/sessions",
            json=session_body(yoga_class.id, "2024-03-04T10:00:00", "2024-03-04T11:00:00", capacity=12),
            headers=gym_headers,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["start_time"].startswith("2024-03-04T08:00:00")
        assert data["start_time_local"] == "2024-03-04T10:00:00"
        assert data["timezone"] == "Europe/Athens"
        assert data["capacity"] == 12

    def test_overlap_returns_409_with_conflicts(self, client, db, gym_headers, yoga_class):
        first = client.post(
            f"{API}/sessions",
            json=session_body(yoga_class.id, "2024-03-04T10:00:00", "2024-03-04T11:00:00"),
            headers=gym_headers,
        ).json()

        response = client.post(
            f"{API}/sessions",
            json=session_body(yoga_class.id, "2024-03-04T10:30:00", "2024-03-04T11:30:00"),
            headers=gym_headers,
        )
        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "conflict"
        assert [c["id"] for c in body["details"]] == [first["id"]]

        response = client.post(
            f"{API}/sessions",
            json=session_body(yoga_class.id, "2024-03-04T11:00:00", "2024-03-04T12:00:00"),
            headers=gym_headers,
        )
        assert response.status_code == 201
        assert db.query(ClassSession).count() == 2

    def test_aware_datetimes_are_taken_as_given(self, client, gym_headers, yoga_class):
        response = client.post(
            f"{API}/sessions",
            json=session_body(yoga_class.id, "2024-03-04T10:00:00Z", "2024-03-04T11:00:00Z"),
            headers=gym_headers,
        )
        assert response.status_code == 201
        assert response.json()["start_time_local"] == "2024-03-04T12:00:00"

    def test_invalid_interval_is_rejected(self, client, gym_headers, yoga_class):
        response = client.post(
            f"{API}/sessions",
            json=session_body(yoga_class.id, "2024-03-04T11:00:00", "2024-03-04T10:00:00"),
            headers=gym_headers,
        )
        assert response.status_code == 422

    def test_inactive_class_is_rejected(self, client, gym_headers, inactive_class):
        response = client.post(
            f"{API}/sessions",
            json=session_body(inactive_class.id, "2024-03-04T10:00:00", "2024-03-04T11:00:00"),
            headers=gym_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "inactive_class"

    def test_move_update_and_delete(self, client, gym_headers, yoga_class):
        created = client.post(
            f"{API}/sessions",
            json=session_body(yoga_class.id, "2024-03-04T10:00:00", "2024-03-04T11:00:00"),
            headers=gym_headers,
        ).json()
        client.post(
            f"{API}/sessions",
            json=session_body(yoga_class.id, "2024-03-04T12:00:00", "2024-03-04T13:00:00"),
            headers=gym_headers,
        )

        response = client.put(
            f"{API}/sessions/{created['id']}",
            json={"start_time": "2024-03-04T12:30:00", "end_time": "2024-03-04T13:30:00"},
            headers=gym_headers,
        )
        assert response.status_code == 409

        response = client.put(
            f"{API}/sessions/{created['id']}",
            json={"start_time": "2024-03-04T14:00:00", "end_time": "2024-03-04T15:00:00"},
            headers=gym_headers,
        )
        assert response.status_code == 200
        assert response.json()["start_time_local"] == "2024-03-04T14:00:00"

        response = client.delete(f"{API}/sessions/{created['id']}", headers=gym_headers)
        assert response.status_code == 200
        assert client.get(f"{API}/sessions/{created['id']}", headers=gym_headers).status_code == 404

    def test_date_range_uses_local_days(self, client, gym_headers, yoga_class):
        # 00:30 del 5 de marzo en Atenas es todavía 4 de marzo en UTC
        for start, end in [
            ("2024-03-04T09:00:00", "2024-03-04T10:00:00"),
            ("2024-03-05T00:30:00", "2024-03-05T01:30:00"),
            ("2024-03-06T09:00:00", "2024-03-06T10:00:00"),
        ]:
            client.post(f"{API}/sessions", json=session_body(yoga_class.id, start, end), headers=gym_headers)

        response = client.get(
            f"{API}/sessions/date-range",
            params={"start_date": "2024-03-05", "end_date": "2024-03-05"},
            headers=gym_headers,
        )
        assert response.status_code == 200
        assert [s["start_time_local"] for s in response.json()] == ["2024-03-05T00:30:00"]

        response = client.get(
            f"{API}/sessions/date-range",
            params={"start_date": "2024-03-04", "end_date": "2024-03-06"},
            headers=gym_headers,
        )
        assert len(response.json()) == 3

    def test_date_range_rejects_inverted_dates(self, client, gym_headers, yoga_class):
        response = client.get(
            f"{API}/sessions/date-range",
            params={"start_date": "2024-03-06", "end_date": "2024-03-05"},
            headers=gym_headers,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_range"

    def test_sessions_of_other_gym_are_invisible(self, client, other_gym, other_gym_class, gym_headers):
        created = client.post(
            f"{API}/sessions",
            json=session_body(other_gym_class.id, "2024-03-04T10:00:00", "2024-03-04T11:00:00"),
            headers={"X-Gym-ID": str(other_gym.id)},
        ).json()

        assert client.get(f"{API}/sessions/{created['id']}", headers=gym_headers).status_code == 404
        assert client.delete(f"{API}/sessions/{created['id']}", headers=gym_headers).status_code == 404
