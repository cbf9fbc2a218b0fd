import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from novaflow.db import Base
from novaflow.server import app, get_db
from novaflow.services import project_service
from novaflow.utils.config import settings


test_engine = create_engine(
    "sqlite+pysqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=test_engine, autocommit=False, autoflush=False)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def setup_database(monkeypatch):
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    app.dependency_overrides[get_db] = override_get_db
    monkeypatch.setattr(settings, "llm_api_key", "")
    monkeypatch.setattr(settings, "renderer_backend", "preview")
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


def _create_project(client, **overrides):
    payload = {"name": "Launch", "description": "Q3 launch", "startDate": "2024-07-01", "endDate": "2024-09-30"}
    payload.update(overrides)
    response = client.post("/api/projects", json=payload)
    assert response.status_code == 201
    return response.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_project_crud(client):
    project = _create_project(client)
    assert project["startDate"] == "2024-07-01"
    assert "createdAt" in project

    listed = client.get("/api/projects").json()
    assert [p["id"] for p in listed] == [project["id"]]

    updated = client.put(f"/api/projects/{project['id']}", json={"name": "Launch v2"}).json()
    assert updated["name"] == "Launch v2"
    assert updated["description"] == "Q3 launch"

    assert client.delete(f"/api/projects/{project['id']}").status_code == 204
    assert client.get(f"/api/projects/{project['id']}").status_code == 404


def test_missing_project_returns_404(client):
    assert client.get("/api/projects/999").status_code == 404
    assert client.put("/api/projects/999", json={"name": "x"}).status_code == 404
    assert client.delete("/api/projects/999").status_code == 404
    assert client.post("/api/projects/999/tasks", json={"title": "T"}).status_code == 404


def test_invalid_project_payload_returns_400(client):
    response = client.post("/api/projects", json={"description": "no name"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid request data"


def test_tasks_and_reorder(client):
    project = _create_project(client)
    ids = []
    for order, title in enumerate(["Plan", "Build", "Ship"]):
        response = client.post(
            f"/api/projects/{project['id']}/tasks",
            json={"title": title, "startDate": "2024-07-01", "endDate": "2024-07-05", "order": order},
        )
        assert response.status_code == 201
        ids.append(response.json()["id"])

    moved = client.put(f"/api/tasks/{ids[2]}/order", json={"order": 0}).json()
    assert moved["order"] == 0
    titles = [t["title"] for t in client.get(f"/api/projects/{project['id']}/tasks").json()]
    assert titles == ["Ship", "Plan", "Build"]

    updated = client.put(f"/api/tasks/{ids[0]}", json={"description": "Scope it"}).json()
    assert updated["description"] == "Scope it"
    assert updated["projectId"] == project["id"]

    assert client.delete(f"/api/tasks/{ids[1]}").status_code == 204
    assert client.delete(f"/api/tasks/{ids[1]}").status_code == 404


def test_chart_crud(client):
    project = _create_project(client)
    created = client.post(
        f"/api/projects/{project['id']}/charts",
        json={"mermaidCode": "gantt\n    dateFormat YYYY-MM-DD"},
    )
    assert created.status_code == 201
    chart = created.json()
    assert chart["chartType"] == "gantt"

    updated = client.put(f"/api/charts/{chart['id']}", json={"mermaidCode": "graph TD\n    A --> B", "chartType": "flowchart"})
    assert updated.json()["chartType"] == "flowchart"

    charts = client.get(f"/api/projects/{project['id']}/charts").json()
    assert [c["mermaidCode"] for c in charts] == ["graph TD\n    A --> B"]
    assert client.delete(f"/api/charts/{chart['id']}").status_code == 204
    assert client.put(f"/api/charts/{chart['id']}", json={"chartType": "pie"}).status_code == 404


def test_seed_demo_project_only_on_empty_database():
    db = TestingSessionLocal()
    try:
        project = project_service.seed_demo_project(db)
        assert project is not None
        assert [t.order for t in project.tasks] == [0, 1, 2, 3]
        assert project_service.seed_demo_project(db) is None
    finally:
        db.close()


def test_generate_gantt_without_key_uses_fallback(client):
    response = client.post(
        "/api/generate-gantt",
        json={
            "projectName": "Launch",
            "tasks": [{"title": "Plan", "startDate": "2024-07-01", "endDate": "2024-07-05"}],
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["mermaidCode"].startswith("gantt")
    assert "Plan :task1, 2024-07-01, 2024-07-05" in body["mermaidCode"]
    assert body["warning"]


def test_generate_gantt_rejects_missing_tasks(client):
    response = client.post("/api/generate-gantt", json={"projectName": "Launch"})
    assert response.status_code == 400


def test_generate_from_prompt_errors(client):
    assert client.post("/api/generate-from-prompt", json={"prompt": ""}).status_code == 400
    response = client.post("/api/generate-from-prompt", json={"prompt": "Show the release flow"})
    assert response.status_code == 500
    assert "LLM API key" in response.json()["detail"]


def test_sanitize_endpoint(client):
    response = client.post("/api/sanitize", json={"mermaidCode": "```mermaid\ngraph LR_A[Start]\n```"})
    assert response.json() == {"sanitized": "graph LR\n    A[Start]"}


def test_render_endpoint_success(client):
    response = client.post("/api/render", json={"mermaidCode": "```\ngraph TD\n  A[Start] --> B[End]\n```"})
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["sanitized"] == "graph TD\n  A[Start] --> B[End]"
    assert body["svg"].startswith("<svg")
    assert body["exportReady"] is True
    assert body["width"] > 0 and body["height"] > 0


def test_render_endpoint_invalid_markup(client):
    body = client.post("/api/render", json={"mermaidCode": "grph TD\n    A --> B"}).json()
    assert body["status"] == "error"
    assert body["message"].startswith("Invalid syntax:")
    assert body["svg"] is None
    assert body["exportReady"] is False


def test_render_endpoint_empty_markup(client):
    body = client.post("/api/render", json={"mermaidCode": "   "}).json()
    assert body["status"] == "empty"
    assert body["sanitized"] == ""
