import asyncio
import json
from unittest import mock

from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from main import duplicate_key_handler


def test_root_and_health(client):
    for path in ("/", "/health"):
        res = client.get(path)
        assert res.status_code == 200
        body = res.json()
        assert body["success"] is True
        assert body["data"]["database"] == "connected"
        assert body["data"]["version"] == "1.0.0"


def test_health_reports_unreachable_database(client, db):
    with mock.patch.object(type(db), "command", side_effect=ServerSelectionTimeoutError("no servers")):
        res = client.get("/health")
    assert res.json()["data"]["database"] == "disconnected"


def test_unknown_route_uses_envelope(client):
    res = client.get("/nowhere")
    assert res.status_code == 404
    assert res.json() == {"success": False, "message": "Not Found", "data": None}


def test_validation_errors_use_envelope(client):
    res = client.post("/users/register", json={"name": "", "password": "x"})
    assert res.status_code == 400
    body = res.json()
    assert body["success"] is False
    assert body["message"] == "Validation failed"
    assert {err["field"] for err in body["data"]} == {"name", "password"}


def test_duplicate_key_becomes_conflict():
    error = DuplicateKeyError("E11000 duplicate key error", 11000, {"keyValue": {"email": "dup@example.com"}})
    res = asyncio.run(duplicate_key_handler(None, error))
    assert res.status_code == 400
    assert json.loads(res.body) == {"success": False, "message": "email already exists", "data": None}
