# tests/test_signup.py

"""
Tests for POST /api/signup and GET /api/signup-count.
"""

import csv
import logging
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from core.errors import DuplicateError, StorageError
from models.signup import SignupCreate
from services.signup_service import submit_signup
from services.signup_store import CsvSignupStore


def read_rows(path):
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))


def test_signup_success_then_count(client: TestClient):
    """Valid signup is accepted and counted."""
    response = client.post("/api/signup", json={"email": "a@x.com", "role": "aspiring"})

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert "waitlist" in data["message"]

    assert client.get("/api/signup-count").json() == {"count": 1}


def test_duplicate_email_rejected(client: TestClient, signups_path):
    """Same email again (any case) → 409, still one record."""
    first = client.post("/api/signup", json={"email": "a@x.com", "role": "aspiring"})
    assert first.status_code == 200

    second = client.post("/api/signup", json={"email": "A@X.COM", "role": "licensed"})

    assert second.status_code == 409
    body = second.json()
    assert body["success"] is False
    assert "already on the waitlist" in body["message"]

    assert client.get("/api/signup-count").json() == {"count": 1}
    assert len(read_rows(signups_path)) == 1


def test_invalid_role_rejected(client: TestClient):
    response = client.post(
        "/api/signup",
        json={"email": "a@x.com", "role": "not-a-real-role"},
    )

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    fields = [e["field"] for e in body["errors"]]
    assert fields == ["role"]
    assert body["errors"][0]["message"] == "Invalid role"


def test_invalid_email_rejected(client: TestClient):
    response = client.post("/api/signup", json={"email": "not-an-email", "role": ""})

    assert response.status_code == 400
    errors = response.json()["errors"]
    assert errors[0]["field"] == "email"
    assert errors[0]["message"] == "Valid email required"


def test_missing_fields_listed(client: TestClient):
    response = client.post("/api/signup", json={})

    assert response.status_code == 400
    fields = {e["field"] for e in response.json()["errors"]}
    assert fields == {"email", "role"}


def test_non_object_body_rejected(client: TestClient):
    response = client.post(
        "/api/signup",
        content=b"[1, 2, 3]",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "body"


def test_empty_role_allowed(client: TestClient, signups_path):
    response = client.post("/api/signup", json={"email": "b@x.com", "role": ""})

    assert response.status_code == 200
    assert read_rows(signups_path)[0]["Role"] == ""


def test_form_encoded_signup(client: TestClient, signups_path):
    """The waitlist form may post urlencoded data instead of JSON."""
    response = client.post(
        "/api/signup",
        data={"email": "form@x.com", "role": "provider", "name": "Dr. Form"},
    )

    assert response.status_code == 200
    row = read_rows(signups_path)[0]
    assert row["Email"] == "form@x.com"
    assert row["Role"] == "provider"
    assert row["Name"] == "Dr. Form"


def test_record_fields_stored(client: TestClient, signups_path):
    """Server assigns timestamp + IP; free text is trimmed and escaped."""
    response = client.post(
        "/api/signup",
        json={
            "email": "Jane.Doe@Example.com",
            "role": "licensed",
            "name": "  Jane <b>Doe</b>  ",
            "accreditation": "LIC-123",
            "comments": "Tom & Jerry, \"quoted\", café ☕",
        },
    )
    assert response.status_code == 200

    rows = read_rows(signups_path)
    assert len(rows) == 1
    row = rows[0]

    assert list(row.keys()) == [
        "Timestamp", "Email", "Name", "Role",
        "Accreditation Number", "Comments", "IP Address",
    ]
    assert row["Email"] == "jane.doe@example.com"
    assert row["Name"] == "Jane &lt;b&gt;Doe&lt;&#x2F;b&gt;"
    assert row["Accreditation Number"] == "LIC-123"
    assert row["Comments"] == "Tom &amp; Jerry, &quot;quoted&quot;, café ☕"
    assert row["IP Address"] == "testclient"
    assert row["Timestamp"].endswith("Z")


def test_gmail_variants_are_duplicates(client: TestClient):
    first = client.post("/api/signup", json={"email": "john.smith@gmail.com", "role": ""})
    assert first.status_code == 200

    second = client.post("/api/signup", json={"email": "JohnSmith+waitlist@googlemail.com", "role": ""})
    assert second.status_code == 409


@pytest.mark.parametrize("n", [0, 1, 4])
def test_count_matches_distinct_signups(client: TestClient, n):
    for i in range(n):
        response = client.post("/api/signup", json={"email": f"user{i}@x.com", "role": "aspiring"})
        assert response.status_code == 200

    assert client.get("/api/signup-count").json() == {"count": n}


def test_storage_failure_returns_500(client: TestClient):
    with patch.object(CsvSignupStore, "append", side_effect=StorageError("disk full")):
        response = client.post("/api/signup", json={"email": "a@x.com", "role": "aspiring"})

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert "disk full" not in body["message"]

    assert client.get("/api/signup-count").json() == {"count": 0}


def test_count_is_zero_when_store_unreadable(client: TestClient):
    with patch.object(CsvSignupStore, "list_all", side_effect=StorageError("boom")):
        response = client.get("/api/signup-count")

    assert response.status_code == 200
    assert response.json() == {"count": 0}


def test_signup_rate_limited(client: TestClient):
    """11th submission from the same origin inside the window → 429."""
    for i in range(10):
        response = client.post("/api/signup", json={"email": f"r{i}@x.com", "role": ""})
        assert response.status_code == 200

    response = client.post("/api/signup", json={"email": "r10@x.com", "role": ""})

    assert response.status_code == 429
    assert "Too many submissions" in response.json()["detail"]
    assert response.headers["Retry-After"] == "900"


def test_rate_limit_does_not_apply_to_count(client: TestClient):
    for _ in range(12):
        assert client.get("/api/signup-count").status_code == 200


def test_forwarded_ip_used_when_trusted(settings, signups_path):
    from main import create_app

    settings.TRUST_FORWARDED_FOR = True
    with TestClient(create_app(settings)) as client:
        response = client.post(
            "/api/signup",
            json={"email": "p@x.com", "role": ""},
            headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"},
        )

    assert response.status_code == 200
    assert read_rows(signups_path)[0]["IP Address"] == "203.0.113.7"


def test_sql_backend_end_to_end(tmp_path):
    from core.config import Settings
    from main import create_app

    settings = Settings(
        SIGNUP_STORE_BACKEND="sql",
        DATABASE_URL=f"sqlite:///{tmp_path / 'signups.db'}",
        EXPORT_KEY="k",
    )
    with TestClient(create_app(settings)) as client:
        assert client.get("/api/health").json() == {"status": "OK", "signups_file": True}
        assert client.get("/api/download-signups", params={"key": "k"}).status_code == 404

        assert client.post("/api/signup", json={"email": "a@x.com", "role": "aspiring"}).status_code == 200
        assert client.post("/api/signup", json={"email": "A@x.com", "role": ""}).status_code == 409
        assert client.get("/api/signup-count").json() == {"count": 1}

        export = client.get("/api/download-signups", params={"key": "k"})
        assert export.status_code == 200
        assert "a@x.com" in export.text


def test_display_name_email_rejected(client: TestClient, signups_path):
    """Only a bare address is accepted, not "Name <address>"."""
    response = client.post("/api/signup", json={"email": "Jane <jane@x.com>", "role": ""})

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "email"
    assert read_rows(signups_path) == []


def test_concurrent_duplicates_store_one_record(tmp_path):
    """Same new email from many threads at once → exactly one accepted."""
    store = CsvSignupStore(tmp_path / "signups.csv")
    store.ensure_exists()
    payload = SignupCreate(email="race@x.com", role="aspiring")

    def attempt(_):
        try:
            submit_signup(store, payload, "127.0.0.1")
            return "accepted"
        except DuplicateError:
            return "duplicate"

    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(attempt, range(8)))

    assert outcomes.count("accepted") == 1
    assert outcomes.count("duplicate") == 7
    assert [r.email for r in store.list_all()] == ["race@x.com"]


def test_accepted_signup_is_logged(tmp_path, caplog):
    caplog.set_level(logging.INFO, logger="waitlist")
    store = CsvSignupStore(tmp_path / "signups.csv")

    submit_signup(store, SignupCreate(email="log@x.com", role="provider"), "127.0.0.1")

    accepted = [r for r in caplog.records if r.getMessage().startswith("New signup")]
    assert len(accepted) == 1
    assert accepted[0].levelno == logging.INFO
    assert accepted[0].getMessage() == "New signup: log@x.com (provider)"


def test_storage_failure_logged_with_traceback(client: TestClient, caplog):
    caplog.set_level(logging.INFO, logger="waitlist")

    with patch.object(CsvSignupStore, "append", side_effect=StorageError("disk full")):
        response = client.post("/api/signup", json={"email": "tb@x.com", "role": ""})

    assert response.status_code == 500
    errors = [r for r in caplog.records if r.levelno == logging.ERROR and "disk full" in r.getMessage()]
    assert len(errors) == 1
    assert errors[0].exc_info is not None
