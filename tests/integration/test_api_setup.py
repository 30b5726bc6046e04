import time
from collections.abc import Callable
from pathlib import Path

import yaml
from fastapi.testclient import TestClient

from tests.support.api_helpers import build_app
from tests.support.fakes import BlockingRunner, write_project


def _loaded_project(client: TestClient, root: Path) -> str:
    project_id = client.post("/api/v1/projects", json={"path": str(root)}).json()["id"]
    assert client.post(f"/api/v1/projects/{project_id}/load").status_code == 200
    return project_id


def test_run_stop_and_complete(tmp_path: Path) -> None:
    harness = build_app(tmp_path)
    client = TestClient(harness.app)
    root = write_project(tmp_path / "web", dependencies={"react": "^18.2.0"})
    project_id = _loaded_project(client, root)
    base = f"/api/v1/projects/{project_id}/setup"

    run = client.post(f"{base}/run")
    assert run.status_code == 200
    assert run.json()["mode"] == "direct"
    assert run.json()["install_strategy"] == "per-package"
    assert run.json()["env"]["created"] is True

    status = client.get(f"{base}/status").json()
    assert status["status"] == "running"
    assert status["progress"]["percentage"] == 100
    assert status["environment"]["runtime_version"] == "v20.11.0"
    assert len(status["processes"]) == 1

    rejected = client.post(f"{base}/run")
    assert rejected.status_code == 409
    assert "already in progress" in rejected.json()["detail"]

    stopped = client.post(f"{base}/stop").json()
    assert stopped["status"] == "idle"
    assert len(stopped["stopped"]) == 1
    assert client.post(f"{base}/complete").json() == {"completed": False, "status": "idle"}

    assert client.post(f"{base}/run").status_code == 200
    assert client.post(f"{base}/complete").json() == {"completed": True, "status": "completed"}


def test_run_failure_maps_to_500(tmp_path: Path) -> None:
    harness = build_app(tmp_path, tools={})
    client = TestClient(harness.app)
    project_id = _loaded_project(client, write_project(tmp_path / "web"))

    response = client.post(f"/api/v1/projects/{project_id}/setup/run")

    assert response.status_code == 500
    assert response.json()["detail"].startswith("Node.js is not installed")
    status = client.get(f"/api/v1/projects/{project_id}/setup/status").json()
    assert status["status"] == "error"


def test_background_run(tmp_path: Path) -> None:
    harness = build_app(tmp_path)
    root = write_project(tmp_path / "server", scripts={"start": "node index.js"})
    with TestClient(harness.app) as client:
        project_id = _loaded_project(client, root)

        started = client.post(f"/api/v1/projects/{project_id}/setup/run?background=true")
        assert started.status_code == 200
        assert started.json()["started"] is True

        status = "checking"
        for _ in range(100):
            status = client.get(f"/api/v1/projects/{project_id}/setup/status").json()["status"]
            if status == "running":
                break
            time.sleep(0.01)
        assert status == "running"
        assert harness.runners[0].spawned == ["npm run start"]


def test_env_and_compose(tmp_path: Path) -> None:
    client = TestClient(build_app(tmp_path).app)
    root = write_project(
        tmp_path / "api",
        dependencies={"express": "^4.18.0", "pg": "^8.11.0"},
        scripts={"start": "node server.js"},
        files={".env.example": "DATABASE_URL=postgres://localhost\n"},
    )
    project_id = _loaded_project(client, root)
    base = f"/api/v1/projects/{project_id}/setup"

    env = client.post(f"{base}/env").json()
    assert env == {"created": True, "from_example": True, "error": None}
    assert (root / ".env").read_text(encoding="utf-8") == "DATABASE_URL=PLACEHOLDER_DATABASE_URL\n"

    preview = client.post(f"{base}/compose").json()
    assert preview["written"] is False
    assert list(yaml.safe_load(preview["content"])["services"]) == ["backend", "postgres"]
    assert not (root / "docker-compose.yml").exists()

    written = client.post(f"{base}/compose?write=true").json()
    assert written["written"] is True
    assert (root / "docker-compose.yml").exists()
    analysis = client.get(f"/api/v1/projects/{project_id}/analysis").json()
    assert analysis["has_compose"] is True


def test_logs_and_terminal(tmp_path: Path) -> None:
    harness = build_app(tmp_path)
    client = TestClient(harness.app)
    project_id = _loaded_project(client, write_project(tmp_path / "web"))
    base = f"/api/v1/projects/{project_id}"

    logs = client.get(f"{base}/logs").json()["items"]
    assert [entry["message"] for entry in logs][-1] == "Project loaded successfully"
    assert len(client.get(f"{base}/logs?limit=1").json()["items"]) == 1

    client.post(f"{base}/setup/run")
    session = harness.registry.get(project_id)
    assert session is not None
    handle = session.context.handles.frontend
    assert handle is not None
    harness.runners[0].emit_output(handle.process_id, "VITE ready in 300 ms")

    terminal = client.get(f"{base}/terminal").json()["items"]
    assert terminal[-1]["data"] == "VITE ready in 300 ms"

    assert client.delete(f"{base}/logs").status_code == 204
    assert client.delete(f"{base}/terminal").status_code == 204
    assert client.get(f"{base}/logs").json()["items"] == []
    assert client.get(f"{base}/terminal").json()["items"] == []


def _wait_for(predicate: Callable[[], bool], attempts: int = 300) -> bool:
    for _ in range(attempts):
        if predicate():
            return True
        time.sleep(0.01)
    return False


def test_load_and_run_rejected_during_background_run(tmp_path: Path) -> None:
    harness = build_app(tmp_path, runner_type=BlockingRunner)
    root = write_project(
        tmp_path / "server",
        dependencies={"express": "^4.18.0"},
        scripts={"start": "node index.js"},
    )
    with TestClient(harness.app) as client:
        project_id = _loaded_project(client, root)
        base = f"/api/v1/projects/{project_id}/setup"
        runner = harness.runners[0]
        assert isinstance(runner, BlockingRunner)

        assert client.post(f"{base}/run?background=true").status_code == 200
        assert _wait_for(lambda: runner.active == 1)

        reload = client.post(f"/api/v1/projects/{project_id}/load")
        assert reload.status_code == 409
        assert "installing" in reload.json()["detail"]

        second = client.post(f"{base}/run?background=true")
        assert second.status_code == 409
        assert client.get(f"{base}/status").json()["status"] == "installing"

        runner.release.set()
        assert _wait_for(
            lambda: client.get(f"{base}/status").json()["status"] == "running"
        )
        assert runner.max_active == 1
        assert len(harness.runners) == 1
        assert client.post(f"/api/v1/projects/{project_id}/load").status_code == 409
