from datetime import date, datetime, timezone
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from backend.tpi_sync.config import AccessConfig, ServiceConfig
from backend.tpi_sync.repository import TpiRecordRepository
from backend.tpi_sync.server import create_app
from backend.tpi_sync.service import TpiSyncService


def _client(repository, **access) -> TestClient:
    config = ServiceConfig(environment="test", access=AccessConfig(**access))
    service = TpiSyncService(repository, environment=config.environment)
    return TestClient(create_app(service=service, config=config))


@pytest.fixture
def client(repository):
    return _client(repository)


def test_time_reports_environment(client):
    response = client.get("/api/time")

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "TPI Backend is running"
    assert body["env"] == "test"
    assert datetime.fromisoformat(body["time"]).tzinfo is not None


def test_time_does_not_need_storage():
    response = _client(None).get("/api/time")
    assert response.status_code == 200


def test_sync_then_history(client):
    response = client.post("/api/tpi", json={"date": "2024-01-02", "data": {"tpi": 87.456}})
    assert response.status_code == 200
    assert "message" in response.json()

    client.post("/api/tpi", json={"date": "2024-01-03", "data": {"tpi": 90}})
    client.post("/api/tpi", json={"date": "2024-01-02", "data": {"tpi": 88}})

    history = client.get("/api/tpi/history")
    assert history.status_code == 200
    body = history.json()
    assert list(body) == ["2024-01-03", "2024-01-02"]
    assert body["2024-01-02"] == {"tpi": 88}


def test_empty_history(client):
    response = client.get("/api/tpi/history")
    assert response.status_code == 200
    assert response.json() == {}


@pytest.mark.parametrize(
    "body",
    [
        {"data": {"tpi": 1}},
        {"date": "2024-01-02"},
        {"date": None, "data": {"tpi": 1}},
        {"date": "2024-01-02", "data": None},
        {},
    ],
)
def test_missing_field_is_rejected_without_writing(client, repository, body):
    response = client.post("/api/tpi", json=body)

    assert response.status_code == 400
    assert "error" in response.json()
    assert repository.history() == {}


def test_malformed_date_is_a_bad_request(client, repository):
    response = client.post("/api/tpi", json={"date": "yesterday", "data": {"tpi": 1}})

    assert response.status_code == 400
    assert repository.history() == {}


def test_storage_failures_return_500():
    repository = MagicMock(spec=TpiRecordRepository)
    failure = OperationalError("SELECT", {}, Exception("database is down"))
    repository.upsert.side_effect = failure
    repository.history.side_effect = failure
    client = _client(repository)

    write = client.post("/api/tpi", json={"date": "2024-01-02", "data": {"tpi": 1}})
    read = client.get("/api/tpi/history")

    assert write.status_code == 500
    assert write.json() == {"error": "Database write failed"}
    assert read.status_code == 500
    assert read.json() == {"error": "Database read failed"}


def test_unconfigured_storage_returns_500():
    client = _client(None)

    assert client.post("/api/tpi", json={"date": "2024-01-02", "data": {}}).status_code == 500
    assert client.get("/api/tpi/history").status_code == 500


def test_bearer_write_policy(repository):
    client = _client(repository, write_policy="bearer", api_tokens=["secret"])
    body = {"date": "2024-01-02", "data": {"tpi": 1}}

    assert client.post("/api/tpi", json=body).status_code == 401
    wrong = client.post("/api/tpi", json=body, headers={"Authorization": "Bearer nope"})
    assert wrong.status_code == 401
    assert repository.history() == {}

    ok = client.post("/api/tpi", json=body, headers={"Authorization": "Bearer secret"})
    assert ok.status_code == 200
    # reads stay public
    assert client.get("/api/tpi/history").json() == {"2024-01-02": {"tpi": 1}}


def test_bearer_read_policy(repository):
    repository.upsert(date(2024, 1, 2), {"tpi": 1})
    client = _client(repository, read_policy="bearer", api_tokens=["secret"])

    denied = client.get("/api/tpi/history")
    assert denied.status_code == 401
    assert "error" in denied.json()

    allowed = client.get("/api/tpi/history", headers={"Authorization": "Bearer secret"})
    assert allowed.json() == {"2024-01-02": {"tpi": 1}}


def test_startup_checks_storage(repository):
    service = TpiSyncService(repository, environment="test")
    service.check_storage = MagicMock(wraps=service.check_storage)

    with TestClient(create_app(service=service, config=ServiceConfig(environment="test"))) as client:
        assert client.get("/api/time").status_code == 200

    service.check_storage.assert_called_once()


def test_health_check_uses_clock():
    moment = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    service = TpiSyncService(None, environment="production", clock=lambda: moment)

    assert service.health_check().as_dict() == {
        "message": "TPI Backend is running",
        "time": "2024-05-01T12:00:00+00:00",
        "env": "production",
    }


def test_unreachable_database_does_not_block_startup(tmp_path, monkeypatch):
    monkeypatch.setenv("TPI_DATABASE_URL", f"sqlite:///{tmp_path / 'missing_dir' / 'tpi.db'}")

    app = create_app(config=ServiceConfig(environment="test"))

    with TestClient(app) as client:
        assert client.get("/api/time").status_code == 200
        history = client.get("/api/tpi/history")
        assert history.status_code == 500
        assert history.json() == {"error": "Database read failed"}
        write = client.post("/api/tpi", json={"date": "2024-01-02", "data": {"tpi": 1}})
        assert write.status_code == 500


@pytest.mark.parametrize("raw_date", [0, 20240102, "20240102", "2024-1-2", "2024-13-45", True])
def test_only_iso_dates_are_accepted(client, repository, raw_date):
    response = client.post("/api/tpi", json={"date": raw_date, "data": {"tpi": 1}})

    assert response.status_code == 400
    assert "error" in response.json()
    assert repository.history() == {}
