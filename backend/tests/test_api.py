"""
End-to-end tests through the FastAPI app. The `client` fixture is
parametrised over both gateway backends.
"""

import csv
import io

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import auth_header, register
from vault.main import create_app
from vault.services.aviationstack import FlightLookup

TRAVEL = {"date": "2024-05-01", "destination": "Tokyo, Japan"}


class TestAuthRoutes:
    def test_register_returns_user_and_token(self, client):
        body = register(client, "alice", "alice@x.com")

        assert body["token"]
        assert body["user"]["username"] == "alice"
        assert body["user"]["email"] == "alice@x.com"
        assert "password_hash" not in body["user"]
        assert "password" not in body["user"]

    def test_login_and_me(self, client):
        registered = register(client, "alice", "alice@x.com")

        resp = client.post("/auth/login", json={"email": "alice@x.com", "password": "pw123456"})
        assert resp.status_code == 200
        token = resp.json()["token"]

        me = client.get("/auth/me", headers=auth_header(token))
        assert me.status_code == 200
        assert me.json()["user"]["id"] == registered["user"]["id"]

    def test_wrong_password_and_unknown_email_get_same_401(self, client):
        register(client, "alice", "alice@x.com")

        wrong = client.post("/auth/login", json={"email": "alice@x.com", "password": "wrong-pass"})
        unknown = client.post("/auth/login", json={"email": "ghost@x.com", "password": "pw123456"})

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json() == {"message": "Invalid credentials"}

    def test_duplicate_registration_conflicts(self, client):
        register(client, "alice", "alice@x.com")

        resp = client.post("/auth/register", json={"username": "alice", "email": "a2@x.com", "password": "pw123456"})
        assert resp.status_code == 409

    def test_register_validation(self, client):
        resp = client.post("/auth/register", json={"username": "al", "email": "not-an-email", "password": "1"})

        assert resp.status_code == 400
        assert resp.json()["message"] == "Invalid input"
        assert {tuple(e["loc"])[-1] for e in resp.json()["errors"]} >= {"username", "email", "password"}

    @pytest.mark.parametrize(
        "headers",
        [{}, {"Authorization": "Bearer nonsense"}, {"Authorization": "Basic abc"}],
    )
    def test_data_routes_require_token(self, client, headers):
        for path in ["/auth/me", "/travel-history", "/export/json", "/stats", "/flights/autofill/UA837"]:
            resp = client.get(path, headers=headers)
            assert resp.status_code == 401, path

    def test_password_limited_to_72_bytes(self, client):
        # 36 characters but 72 bytes: accepted
        register(client, "alice", "alice@x.com", password="é" * 36)
        resp = client.post("/auth/login", json={"email": "alice@x.com", "password": "é" * 36})
        assert resp.status_code == 200

        too_long = client.post(
            "/auth/register", json={"username": "bob", "email": "bob@x.com", "password": "é" * 37}
        )
        assert too_long.status_code == 400
        assert [tuple(e["loc"])[-1] for e in too_long.json()["errors"]] == ["password"]

    def test_me_for_deleted_user_is_404(self, client, gateway, alice):
        gateway.delete_user(alice["id"])
        assert client.get("/auth/me", headers=alice["headers"]).status_code == 404


class TestRecordRoutes:
    def test_travel_lifecycle(self, client, alice):
        created = client.post("/travel-history", json=TRAVEL, headers=alice["headers"])
        assert created.status_code == 200
        entry = created.json()
        assert entry["id"]
        assert entry["user_id"] == alice["id"]
        assert "kind" not in entry

        updated = client.put(f"/travel-history/{entry['id']}", json={"notes": "sakura"}, headers=alice["headers"])
        assert updated.status_code == 200
        assert updated.json()["notes"] == "sakura"
        assert updated.json()["date"] == "2024-05-01"
        assert updated.json()["destination"] == "Tokyo, Japan"

        listed = client.get("/travel-history", headers=alice["headers"]).json()
        assert [e["id"] for e in listed] == [entry["id"]]

        deleted = client.delete(f"/travel-history/{entry['id']}", headers=alice["headers"])
        assert deleted.status_code == 200
        assert deleted.json() == {"message": "Travel entry deleted"}
        assert client.get("/travel-history", headers=alice["headers"]).json() == []

    def test_patch_is_accepted(self, client, alice):
        entry = client.post("/travel-history", json=TRAVEL, headers=alice["headers"]).json()

        resp = client.patch(f"/travel-history/{entry['id']}", json={"destination": "Kyoto, Japan"}, headers=alice["headers"])

        assert resp.status_code == 200
        assert resp.json()["destination"] == "Kyoto, Japan"
        assert resp.json()["date"] == "2024-05-01"

    def test_client_user_id_is_ignored(self, client, alice, bob):
        resp = client.post("/travel-history", json={**TRAVEL, "user_id": bob["id"]}, headers=alice["headers"])

        assert resp.json()["user_id"] == alice["id"]
        assert client.get("/travel-history", headers=bob["headers"]).json() == []

    def test_cross_user_access_is_not_found(self, client, alice, bob):
        entry = client.post("/travel-history", json=TRAVEL, headers=alice["headers"]).json()

        assert client.get("/travel-history", headers=bob["headers"]).json() == []
        update = client.put(f"/travel-history/{entry['id']}", json={"notes": "x"}, headers=bob["headers"])
        delete = client.delete(f"/travel-history/{entry['id']}", headers=bob["headers"])
        missing = client.delete("/travel-history/does-not-exist", headers=bob["headers"])

        assert update.status_code == delete.status_code == missing.status_code == 404
        assert delete.json() == missing.json()
        assert client.get("/travel-history", headers=alice["headers"]).json()[0]["notes"] is None

    def test_missing_required_field_is_400(self, client, alice):
        resp = client.post("/travel-history", json={"date": "2024-05-01"}, headers=alice["headers"])

        assert resp.status_code == 400
        assert resp.json()["message"] == "Invalid input"

    def test_nulling_required_field_is_400(self, client, alice):
        entry = client.post("/travel-history", json=TRAVEL, headers=alice["headers"]).json()

        resp = client.put(f"/travel-history/{entry['id']}", json={"destination": None}, headers=alice["headers"])
        assert resp.status_code == 400

    @pytest.mark.parametrize(
        "path,payload",
        [
            ("/personal-info", {"full_name": "Alice Example", "passport_number": "X1234567", "dob": "1990-02-03"}),
            ("/employers", {"company_name": "Acme", "role": "Engineer", "start_date": "2020-01-06"}),
            ("/education", {"institution": "MIT", "degree": "BSc", "start_date": "2012-09-01", "end_date": "2016-06-01"}),
            ("/addresses", {"address": "1 Main St", "city": "Boston", "country": "USA", "from_date": "2019-01-01"}),
            ("/flights", {"flight_number": "UA837", "airline": "United", "departure_airport": "SFO", "arrival_airport": "NRT"}),
        ],
    )
    def test_every_category_round_trips(self, client, alice, path, payload):
        created = client.post(path, json=payload, headers=alice["headers"])
        assert created.status_code == 200, created.text
        for key, value in payload.items():
            assert created.json()[key] == value

        listed = client.get(path, headers=alice["headers"]).json()
        assert listed[0]["id"] == created.json()["id"]

    def test_deleted_user_cannot_create(self, client, gateway, alice):
        gateway.delete_user(alice["id"])

        resp = client.post("/travel-history", json=TRAVEL, headers=alice["headers"])

        assert resp.status_code == 404
        assert resp.json() == {"message": "User not found"}
        assert gateway.collection("travel").list(alice["id"]) == []

    def test_second_personal_info_conflicts(self, client, alice):
        client.post("/personal-info", json={"full_name": "Alice"}, headers=alice["headers"])

        resp = client.post("/personal-info", json={"full_name": "Alice again"}, headers=alice["headers"])
        assert resp.status_code == 409


class TestExportRoutes:
    def test_invalid_format(self, client, alice):
        resp = client.get("/export/docx", headers=alice["headers"])
        assert resp.status_code == 400

    def test_unknown_section(self, client, alice):
        resp = client.get("/export/json?sections=travel,secrets", headers=alice["headers"])
        assert resp.status_code == 400

    @pytest.mark.parametrize(
        "fmt,filename,media_type",
        [
            ("pdf", "personal-data-export.pdf", "application/pdf"),
            ("csv", "personal-data-export.csv", "text/csv"),
            ("excel", "personal-data-export.xlsx", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"),
            ("json", "personal-data-export.json", "application/json"),
        ],
    )
    def test_download_headers(self, client, alice, fmt, filename, media_type):
        resp = client.get(f"/export/{fmt}", headers=alice["headers"])

        assert resp.status_code == 200
        assert resp.headers["content-disposition"] == f"attachment; filename={filename}"
        assert resp.headers["content-type"].startswith(media_type)

    def test_json_sections(self, client, alice):
        client.post("/travel-history", json=TRAVEL, headers=alice["headers"])

        data = client.get("/export/json?sections=travel,education", headers=alice["headers"]).json()

        assert data == {"travel": [{"date": "2024-05-01", "destination": "Tokyo, Japan", "notes": None}], "education": []}


def test_register_create_export_delete_scenario(client):
    body = register(client, "alice", "alice@x.com", "pw123456")
    headers = auth_header(body["token"])
    alice_id = body["user"]["id"]

    bad_login = client.post("/auth/login", json={"email": "alice@x.com", "password": "wrong"})
    assert bad_login.status_code == 401
    assert bad_login.json() == {"message": "Invalid credentials"}

    created = client.post("/travel-history", json=TRAVEL, headers=headers)
    assert created.status_code == 200
    entry = created.json()
    assert entry["id"]
    assert entry["user_id"] == alice_id

    export = client.get("/export/csv?sections=travel", headers=headers)
    assert export.status_code == 200
    assert "date,destination,notes" in export.text
    rows = list(csv.reader(io.StringIO(export.text)))
    assert rows[2][1] == "Tokyo, Japan"

    assert client.delete(f"/travel-history/{entry['id']}", headers=headers).status_code == 200

    again = client.get("/export/csv?sections=travel", headers=headers)
    assert again.status_code == 200
    assert again.text == "TRAVEL\n"


class TestStats:
    def test_counts(self, client, alice):
        for destination, day in [("Tokyo, Japan", "2024-05-01"), ("Kyoto, Japan", "2024-05-05"), ("Lisbon, Portugal", "2023-09-12")]:
            client.post("/travel-history", json={"date": day, "destination": destination}, headers=alice["headers"])
        client.post(
            "/flights",
            json={"flight_number": "UA837", "airline": "United", "departure_airport": "SFO", "arrival_airport": "NRT"},
            headers=alice["headers"],
        )
        client.post("/employers", json={"company_name": "Acme", "role": "Engineer", "start_date": "2020-01-06"}, headers=alice["headers"])

        stats = client.get("/stats", headers=alice["headers"]).json()

        assert stats == {"total_trips": 3, "flights_taken": 1, "countries_visited": 2, "career_changes": 1}


class TestFlightAutofill:
    def test_no_api_key_is_404(self, client, alice):
        resp = client.get("/flights/autofill/UA837", headers=alice["headers"])
        assert resp.status_code == 404
        assert resp.json() == {"message": "Flight not found"}

    def _client_with_lookup(self, gateway, handler):
        lookup = FlightLookup(api_key="k", transport=httpx.MockTransport(handler))
        return TestClient(create_app(gateway=gateway, flight_lookup=lookup))

    def test_autofill_and_create_prefill(self, gateway):
        def handler(request):
            return httpx.Response(
                200,
                json={
                    "data": [
                        {
                            "flight": {"iata": "UA837"},
                            "airline": {"name": "United Airlines"},
                            "departure": {"airport": "San Francisco International", "scheduled": "2024-05-01T11:00:00+00:00", "gate": "G5"},
                            "arrival": {"airport": "Narita International", "scheduled": "2024-05-02T14:30:00+00:00"},
                            "flight_status": "scheduled",
                        }
                    ]
                },
            )

        with self._client_with_lookup(gateway, handler) as client:
            headers = auth_header(register(client, "alice")["token"])

            found = client.get("/flights/autofill/ua837", headers=headers)
            assert found.status_code == 200
            assert found.json()["airline"] == "United Airlines"
            assert found.json()["gate"] == "G5"

            created = client.post("/flights", json={"flight_number": "UA837", "gate": "G7"}, headers=headers)
            assert created.status_code == 200, created.text
            flight = created.json()
            assert flight["airline"] == "United Airlines"
            assert flight["departure_airport"] == "San Francisco International"
            # Client-sent values win over looked-up ones
            assert flight["gate"] == "G7"
            assert flight["departure_time"] == "2024-05-01T11:00:00"

    def test_upstream_failure_degrades_to_404(self, gateway):
        with self._client_with_lookup(gateway, lambda request: httpx.Response(500)) as client:
            headers = auth_header(register(client, "alice")["token"])

            assert client.get("/flights/autofill/UA837", headers=headers).status_code == 404
            # Without lookup data the flight is still validated normally
            resp = client.post("/flights", json={"flight_number": "UA837"}, headers=headers)
            assert resp.status_code == 400
