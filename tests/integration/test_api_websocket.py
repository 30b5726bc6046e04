from pathlib import Path

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from tests.support.api_helpers import build_app
from tests.support.fakes import write_project


def test_websocket_streams_context_events(tmp_path: Path) -> None:
    harness = build_app(tmp_path)
    root = write_project(tmp_path / "web")
    with TestClient(harness.app) as client:
        project_id = client.post("/api/v1/projects", json={"path": str(root)}).json()["id"]
        client.post(f"/api/v1/projects/{project_id}/load")

        with client.websocket_connect(f"/api/v1/projects/{project_id}/ws") as websocket:
            assert websocket.receive_json() == {
                "kind": "status",
                "status": "idle",
                "message": None,
            }

            client.post(f"/api/v1/projects/{project_id}/setup/env")
            event = websocket.receive_json()

    assert event["kind"] == "log"
    assert event["type"] == "success"
    assert event["message"] == "Created minimal .env file"


def test_websocket_closes_for_unloaded_project(tmp_path: Path) -> None:
    client = TestClient(build_app(tmp_path).app)

    with client.websocket_connect("/api/v1/projects/unknown/ws") as websocket:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            websocket.receive_json()

    assert exc_info.value.code == 4404
