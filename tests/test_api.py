"""End-to-end tests of the HTTP API against an in-memory store."""
from types import SimpleNamespace
import pytest
from fastapi.testclient import TestClient
from apiforge.api import routes_projects
from apiforge.api.errors import status_code_for
from apiforge.core.errors import ConflictError, LedgerIntegrityError
from apiforge.main import app


@pytest.fixture
def client(store):
    # no context manager: the lifespan (database wait, migrations) is skipped
    app.state.store = store
    yield TestClient(app)
    app.state.store = None


def _create(client, spec, **overrides):
    payload = {"name": "Blog", "description": "posts", "specification": spec, "tags": ["cms"]}
    payload.update(overrides)
    response = client.post("/v1/projects", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client):
    response = client.get("/v1/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "apiforge", "store": "ready"}


def test_generate_and_deploy_flow(client, blog_payload):
    project = _create(client, blog_payload)
    assert project["version"] == 1
    assert project["has_output"] is False

    response = client.post(f"/v1/projects/{project['id']}/generate")
    assert response.status_code == 200
    bundle = response.json()
    paths = [f["path"] for f in bundle["files"]]
    assert "src/models/post.model.js" in paths

    output = client.get(f"/v1/projects/{project['id']}/output").json()
    assert output["spec_fingerprint"] == bundle["spec_fingerprint"]

    response = client.post(
        f"/v1/projects/{project['id']}/deployments",
        json={"platform": "vercel", "projectName": "Blog", "environmentVariables": {"NODE_ENV": "production"}},
    )
    assert response.status_code == 200, response.text
    record = response.json()
    assert record["status"] == "deployed"
    assert record["url"] == "https://blog.vercel.app"

    history = client.get(f"/v1/projects/{project['id']}/deployments").json()
    assert [r["id"] for r in history] == [record["id"]]
    assert client.get(f"/v1/projects/{project['id']}/deployments/{record['id']}").json()["url"] == record["url"]
    assert client.get(f"/v1/deployments/{record['id']}").json()["status"] == "deployed"

    detail = client.get(f"/v1/projects/{project['id']}").json()
    assert detail["last_deployment_status"] == "deployed"
    assert detail["deployment_count"] == 1


def test_specification_versions(client, blog_payload):
    project = _create(client, blog_payload)
    revised = {**blog_payload, "description": "second draft"}

    response = client.put(
        f"/v1/projects/{project['id']}/specification",
        json={"specification": revised, "description": "rewrite"},
    )
    assert response.status_code == 200
    assert response.json()["version"] == 2

    versions = client.get(f"/v1/projects/{project['id']}/versions").json()
    assert [(v["version"], v["description"]) for v in versions] == [(1, "rewrite")]
    assert client.get(f"/v1/projects/{project['id']}/versions/1").json()["specification"]["description"] == blog_payload["description"]

    restored = client.post(f"/v1/projects/{project['id']}/versions/1/restore").json()
    assert restored["version"] == 3
    assert restored["specification"]["description"] == blog_payload["description"]


def test_list_update_and_delete(client, blog_payload):
    first = _create(client, blog_payload, name="Alpha", tags=["demo"])
    _create(client, blog_payload, name="beta", tags=[])

    listed = client.get("/v1/projects", params={"sort_by": "name", "sort_direction": "asc"}).json()
    assert [p["name"] for p in listed] == ["Alpha", "beta"]
    tagged = client.get("/v1/projects", params={"tags": ["demo"]}).json()
    assert [p["name"] for p in tagged] == ["Alpha"]

    response = client.patch(f"/v1/projects/{first['id']}", json={"description": "renamed"})
    assert response.status_code == 200
    assert response.json()["description"] == "renamed"
    assert response.json()["version"] == 1

    assert client.delete(f"/v1/projects/{first['id']}").status_code == 204
    assert client.get(f"/v1/projects/{first['id']}").status_code == 404


def test_error_codes(client, blog_payload):
    assert client.get("/v1/projects/missing").status_code == 404

    response = client.post("/v1/projects", json={"name": "Bad", "specification": {"name": "Bad", "framework": "rails"}})
    assert response.status_code == 422
    body = response.json()
    assert body["error"] == "ValidationError"
    assert body["violations"]

    project = _create(client, blog_payload)
    response = client.get(f"/v1/projects/{project['id']}/output")
    assert response.status_code == 409
    assert response.json()["error"] == "NoOutputError"

    response = client.post(f"/v1/projects/{project['id']}/deployments", json={"platform": "vercel", "projectName": "Blog"})
    assert response.status_code == 409

    assert client.get(f"/v1/projects/{project['id']}/versions/7").status_code == 404
    assert client.get("/v1/deployments/deploy-missing").status_code == 404


def test_spec_without_framework_cannot_generate(client, blog_payload):
    project = _create(client, blog_payload, specification={"name": "Blog"})
    response = client.post(f"/v1/projects/{project['id']}/generate")
    assert response.status_code == 422
    assert response.json()["error"] == "InvalidSpecError"


def test_background_generation_is_queued(client, blog_payload, monkeypatch):
    queued = []

    def delay(*args):
        queued.append(args)
        return SimpleNamespace(id="task-1")

    monkeypatch.setattr(routes_projects, "generate_project", SimpleNamespace(delay=delay))
    project = _create(client, blog_payload)

    response = client.post(f"/v1/projects/{project['id']}/generate", params={"background": "true"})
    assert response.status_code == 202
    assert response.json() == {"task_id": "task-1", "project_id": project["id"], "status": "queued"}
    assert queued == [(project["id"],)]

    assert client.post("/v1/projects/missing/generate", params={"background": "true"}).status_code == 404
    assert len(queued) == 1


def test_background_deployment_is_queued(client, blog_payload, monkeypatch):
    queued = []

    def delay(*args):
        queued.append(args)
        return SimpleNamespace(id="task-2")

    monkeypatch.setattr(routes_projects, "deploy_project", SimpleNamespace(delay=delay))
    project = _create(client, blog_payload)
    client.post(f"/v1/projects/{project['id']}/generate")

    response = client.post(
        f"/v1/projects/{project['id']}/deployments",
        params={"background": "true"},
        json={"platform": "aws", "projectName": "Blog"},
    )
    assert response.status_code == 202
    (project_id, config), = queued
    assert project_id == project["id"]
    assert config["platform"] == "aws"
    assert config["project_name"] == "Blog"


def test_concurrency_errors_are_conflicts():
    assert status_code_for(ConflictError("project moved on")) == 409
    assert status_code_for(LedgerIntegrityError("ledger is inconsistent")) == 409
