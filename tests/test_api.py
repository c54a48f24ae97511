import pytest
from fastapi.testclient import TestClient

from clinical_automation.api.app import create_app
from clinical_automation.config.settings import Settings
from clinical_automation.scheduler import VirtualClock


@pytest.fixture
def clock():
    return VirtualClock()


@pytest.fixture
def client(clock):
    app = create_app(clock=clock, settings=Settings())
    with TestClient(app) as c:
        yield c


def _statuses(workflow):
    return {s["id"]: s["status"] for s in workflow["steps"]}


def _start(client, workflow_id="wf-1"):
    resp = client.post(
        "/api/workflows",
        json={"template_id": "clinical-doc-workflow", "workflow_id": workflow_id},
    )
    assert resp.status_code == 200
    return resp.json()


def test_list_templates(client):
    resp = client.get("/api/templates")
    assert resp.status_code == 200
    assert [t["id"] for t in resp.json()] == ["clinical-doc-workflow"]


def test_create_workflow_starts_first_auto_step(client):
    workflow = _start(client)
    assert workflow["id"] == "wf-1"
    assert _statuses(workflow)["patient-verification"] == "in-progress"

    resp = client.get("/api/workflows")
    assert [w["id"] for w in resp.json()] == ["wf-1"]


def test_unknown_template_and_workflow(client):
    resp = client.post("/api/workflows", json={"template_id": "missing"})
    assert resp.status_code == 404
    assert client.get("/api/workflows/nope").status_code == 404
    assert client.post("/api/workflows/nope/complete").status_code == 404


def test_automation_runs_until_manual_step(client, clock):
    _start(client)
    clock.run_until_idle()

    workflow = client.get("/api/workflows/wf-1").json()
    statuses = _statuses(workflow)
    assert statuses["patient-verification"] == "completed"
    assert statuses["form-selection"] == "completed"
    assert statuses["ai-assistance"] == "pending"
    assert workflow["completion_rate"] == 29

    resp = client.post("/api/workflows/wf-1/steps/ai-assistance/complete")
    assert resp.status_code == 200
    assert _statuses(resp.json())["compliance-check"] == "in-progress"


def test_complete_unknown_step_is_rejected(client):
    before = _start(client)
    resp = client.post("/api/workflows/wf-1/steps/bogus/complete")
    assert resp.status_code == 400
    assert "bogus" in resp.json()["detail"]
    assert client.get("/api/workflows/wf-1").json() == before


def test_disable_automation_cancels_pending_completion(client, clock):
    _start(client)
    resp = client.post("/api/workflows/wf-1/automation", json={"enabled": False})
    assert resp.status_code == 200
    assert resp.json()["automation_enabled"] is False
    assert clock.pending == 0

    clock.advance(10_000)
    workflow = client.get("/api/workflows/wf-1").json()
    assert _statuses(workflow)["patient-verification"] == "in-progress"


def test_complete_workflow_and_stream(client):
    _start(client)
    resp = client.post("/api/workflows/wf-1/complete")
    assert resp.status_code == 200
    assert resp.json()["completion_rate"] == 100

    resp = client.get("/api/workflows/wf-1/stream")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/event-stream")
    assert resp.text.startswith("data: ")
    assert '"completion_rate": 100' in resp.text
    assert client.app.state.channel.subscriber_count("wf-1") == 0


def test_changes_are_published(client, clock):
    _start(client)
    seen = []
    client.app.state.channel.subscribe("wf-1", seen.append)
    clock.run_until_idle()
    assert [w["completion_rate"] for w in seen] == [14, 29]


def test_validate_record(client):
    resp = client.post("/api/records/validate", json={"patient_id": "P-1"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["passed"] is False
    kinds = {i["kind"] for i in data["issues"]}
    assert "missing_required_field" in kinds
    assert all(i["component"] != "patient_id" for i in data["issues"])


def test_health_report(client):
    resp = client.post("/api/health-report", json={})
    assert resp.status_code == 200
    data = resp.json()
    assert len(data["categories"]) == 6
    assert data["categories"]["workflow_robustness"]["score"] == 70
    assert isinstance(data["display_score"], int)
