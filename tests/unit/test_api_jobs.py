"""
Unit tests for job trigger endpoints.
"""

import pytest
from unittest.mock import AsyncMock

# Skip tests if fastapi is not installed
pytest.importorskip("fastapi")

from fastapi.testclient import TestClient

from prtrigger.main import app
from prtrigger.services.trigger_service import TriggerService, get_trigger_service

from conftest import RecordingScheduler


@pytest.fixture
def scheduler():
    return RecordingScheduler()


@pytest.fixture
def client(scheduler):
    """Test client with a trigger service over an in-memory store double."""
    store = AsyncMock()
    store.load.return_value = None
    service = TriggerService(store, scheduler=scheduler, key_prefix="test")
    app.dependency_overrides[get_trigger_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def registration():
    return {
        "job": {
            "name": "demo",
            "full_name": "folder/demo",
            "github_project_url": "https://github.com/org/demo",
            "parameter_definitions": [{"name": "sha1", "default_value": "master"}],
        },
        "trigger": {"admin_list": "alice", "whitelist": None, "permit_all": None},
    }


def _event(**overrides):
    payload = {
        "kind": "new_commit",
        "pull_id": 7,
        "head_sha": "abc123",
        "author_login": "alice",
        "source_branch": "feature",
        "target_branch": "master",
        "author_email": None,
        "url": None,
    }
    payload.update(overrides)
    return payload


def test_health(client):
    response = client.get("/health")
    
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_register_job(client, registration):
    response = client.put("/jobs/folder/demo/trigger", json=registration)
    
    assert response.status_code == 200
    assert response.json() == {"job_full_name": "folder/demo", "bound": True}


def test_register_job_name_mismatch(client, registration):
    response = client.put("/jobs/other/trigger", json=registration)
    
    assert response.status_code == 400


def test_event_schedules_build(client, registration, scheduler):
    client.put("/jobs/folder/demo/trigger", json=registration)
    
    response = client.post("/jobs/folder/demo/events", json=_event())
    
    assert response.status_code == 200
    assert response.json()["status"] == "scheduled"
    parameters = {value.name: value.value for value in scheduler.requests[0].parameters}
    assert parameters["sha1"] == "abc123"
    assert parameters["ghprbPullId"] == "7"
    assert parameters["ghprbPullAuthorEmail"] == ""
    assert parameters["ghprbPullLink"] == "https://github.com/org/demo/pull/7"


def test_unauthorized_event(client, registration, scheduler):
    client.put("/jobs/folder/demo/trigger", json=registration)
    
    response = client.post("/jobs/folder/demo/events", json=_event(author_login="mallory"))
    
    assert response.status_code == 200
    assert response.json()["status"] == "unauthorized"
    assert scheduler.requests == []


def test_event_for_unbound_job(client):
    response = client.post("/jobs/missing/events", json=_event())
    
    assert response.status_code == 404


def test_scheduler_failure_is_bad_gateway(client, registration, scheduler):
    scheduler.fail = True
    client.put("/jobs/folder/demo/trigger", json=registration)
    
    response = client.post("/jobs/folder/demo/events", json=_event())
    
    assert response.status_code == 502
    assert client.get("/jobs/folder/demo/pull-requests").json() == {}


def test_build_completion_and_pull_requests(client, registration):
    client.put("/jobs/folder/demo/trigger", json=registration)
    client.post("/jobs/folder/demo/events", json=_event())
    
    response = client.post(
        "/jobs/folder/demo/builds",
        json={"pull_id": 7, "number": 3, "result": "success"},
    )
    
    assert response.status_code == 200
    assert response.json() == {"pull_id": 7, "auto_close": False}
    pulls = client.get("/jobs/folder/demo/pull-requests").json()
    assert pulls["7"]["last_result"] == "success"
    assert pulls["7"]["last_build_number"] == 3


def test_poll_without_event_source(client, registration):
    client.put("/jobs/folder/demo/trigger", json=registration)
    
    response = client.post("/jobs/folder/demo/poll")
    
    assert response.status_code == 200
    assert response.json() == []


def test_unregister_job(client, registration):
    client.put("/jobs/folder/demo/trigger", json=registration)
    
    assert client.delete("/jobs/folder/demo/trigger").status_code == 204
    assert client.delete("/jobs/folder/demo/trigger").status_code == 404


def test_background_event_is_acknowledged(client, registration):
    client.put("/jobs/folder/demo/trigger", json=registration)
    
    response = client.post("/jobs/folder/demo/events?wait=false", json=_event())
    
    assert response.status_code == 200
    assert response.json()["status"] == "accepted"


def test_background_event_for_unbound_job(client):
    response = client.post("/jobs/missing/events?wait=false", json=_event())
    
    assert response.status_code == 404
