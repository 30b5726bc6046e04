from pathlib import Path

from fastapi.testclient import TestClient

from tests.support.api_helpers import build_app
from tests.support.fakes import write_project


def test_project_crud(tmp_path: Path) -> None:
    harness = build_app(tmp_path)
    client = TestClient(harness.app)
    root = write_project(tmp_path / "project")

    create = client.post("/api/v1/projects", json={"name": "demo", "path": str(root)})
    assert create.status_code == 201
    project_id = create.json()["id"]

    listing = client.get("/api/v1/projects")
    assert listing.status_code == 200
    assert len(listing.json()["items"]) == 1

    fetched = client.get(f"/api/v1/projects/{project_id}")
    assert fetched.status_code == 200
    assert fetched.json()["project"]["name"] == "demo"

    deleted = client.delete(f"/api/v1/projects/{project_id}")
    assert deleted.status_code == 204
    assert client.get(f"/api/v1/projects/{project_id}").status_code == 404


def test_create_rejects_missing_directory(tmp_path: Path) -> None:
    client = TestClient(build_app(tmp_path).app)

    response = client.post("/api/v1/projects", json={"path": str(tmp_path / "missing")})

    assert response.status_code == 422
    assert "does not exist" in response.json()["detail"]


def test_load_analyze_and_unload(tmp_path: Path) -> None:
    harness = build_app(tmp_path)
    client = TestClient(harness.app)
    root = write_project(
        tmp_path / "shop",
        dependencies={"react": "^18.2.0", "express": "^4.18.0"},
        dev_dependencies={"vite": "^5.0.0"},
    )
    project_id = client.post("/api/v1/projects", json={"path": str(root)}).json()["id"]

    assert client.get(f"/api/v1/projects/{project_id}/analysis").status_code == 409

    loaded = client.post(f"/api/v1/projects/{project_id}/load")
    assert loaded.status_code == 200
    body = loaded.json()
    assert body["status"] == "idle"
    assert body["analysis"]["kind"] == "fullstack"
    assert body["analysis"]["ports"] == [5173, 5000]

    dependencies = client.get(f"/api/v1/projects/{project_id}/dependencies").json()
    assert [item["name"] for item in dependencies["items"]] == ["react", "express", "vite"]
    assert dependencies["progress"]["total"] == 3

    unloaded = client.post(f"/api/v1/projects/{project_id}/unload")
    assert unloaded.json() == {"unloaded": True}
    assert client.get(f"/api/v1/projects/{project_id}/dependencies").status_code == 409


def test_load_malformed_manifest(tmp_path: Path) -> None:
    client = TestClient(build_app(tmp_path).app)
    root = tmp_path / "broken"
    root.mkdir()
    (root / "package.json").write_text("{oops", encoding="utf-8")
    project_id = client.post("/api/v1/projects", json={"path": str(root)}).json()["id"]

    response = client.post(f"/api/v1/projects/{project_id}/load")

    assert response.status_code == 422
    assert "not valid JSON" in response.json()["detail"]


def test_unknown_project_is_404(tmp_path: Path) -> None:
    client = TestClient(build_app(tmp_path).app)

    assert client.post("/api/v1/projects/nope/load").status_code == 404
    assert client.get("/api/v1/projects/nope/setup/status").status_code == 404
