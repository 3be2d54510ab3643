API = "/api/v1/gyms"


class TestGymsApi:
    def test_create_read_update(self, client):
        response = client.post(API, json={"name": "Lisbon Box", "subdomain": "lisbon-box", "timezone": "Europe/Lisbon"})
        assert response.status_code == 201
        gym = response.json()
        assert gym["is_active"] is True

        response = client.get(f"{API}/{gym['id']}")
        assert response.status_code == 200
        assert response.json()["timezone"] == "Europe/Lisbon"

        response = client.put(f"{API}/{gym['id']}", json={"timezone": "Atlantic/Azores"})
        assert response.status_code == 200
        assert response.json()["timezone"] == "Atlantic/Azores"
        assert response.json()["subdomain"] == "lisbon-box"

    def test_duplicate_subdomain(self, client, gym):
        response = client.post(API, json={"name": "Copy", "subdomain": gym.subdomain})
        assert response.status_code == 400

    def test_invalid_timezone(self, client):
        response = client.post(API, json={"name": "Nowhere", "subdomain": "nowhere", "timezone": "Mars/Base"})
        assert response.status_code == 422

    def test_unknown_gym(self, client, db):
        assert client.get(f"{API}/12345").status_code == 404
        assert client.put(f"{API}/12345", json={"name": "x"}).status_code == 404

    def test_list_only_active_gyms(self, client, db, gym, other_gym):
        other_gym.is_active = False
        db.commit()
        response = client.get(API)
        assert response.status_code == 200
        assert [g["subdomain"] for g in response.json()] == ["athens-fitness"]
