"""FastAPI app entrypoint."""

from __future__ import annotations

import asyncio
import contextlib

import uvicorn
from fastapi import Depends, FastAPI, WebSocket, WebSocketDisconnect

from launchpad.api.deps import get_session_registry
from launchpad.api.routes.chat import router as chat_router
from launchpad.api.routes.chat import status_router as chat_status_router
from launchpad.api.routes.logs import router as logs_router
from launchpad.api.routes.projects import router as projects_router
from launchpad.api.routes.setup import router as setup_router
from launchpad.config import get_settings
from launchpad.core.sessions import SessionRegistry
from launchpad.logging_setup import configure_logging
from launchpad.models.events import SetupEvent, StatusEvent

WS_CLOSE_NOT_LOADED = 4404


def create_app() -> FastAPI:
    app = FastAPI(title="launchpad API", version="0.1.0")
    app.include_router(projects_router)
    app.include_router(setup_router)
    app.include_router(logs_router)
    app.include_router(chat_router)
    app.include_router(chat_status_router)

    @app.get("/api/v1/health", tags=["system"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.websocket("/api/v1/projects/{project_id}/ws")
    async def project_events(
        project_id: str,
        websocket: WebSocket,
        sessions: SessionRegistry = Depends(get_session_registry),
    ) -> None:
        await websocket.accept()
        session = sessions.get(project_id)
        if session is None:
            await websocket.close(code=WS_CLOSE_NOT_LOADED, reason="Project is not loaded")
            return

        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[SetupEvent] = asyncio.Queue()

        def enqueue(event: SetupEvent) -> None:
            # Events may be published from another thread's loop.
            loop.call_soon_threadsafe(queue.put_nowait, event)

        unsubscribe = session.context.subscribe(enqueue)
        receiver = asyncio.create_task(_drain_client(websocket))
        try:
            await websocket.send_json(
                StatusEvent(status=session.context.status).model_dump(mode="json")
            )
            while not receiver.done():
                getter = asyncio.create_task(queue.get())
                done, _ = await asyncio.wait(
                    {getter, receiver}, return_when=asyncio.FIRST_COMPLETED
                )
                if getter not in done:
                    getter.cancel()
                    break
                await websocket.send_json(getter.result().model_dump(mode="json"))
        except WebSocketDisconnect:
            return
        finally:
            unsubscribe()
            receiver.cancel()
            with contextlib.suppress(asyncio.CancelledError, WebSocketDisconnect):
                await receiver

    return app


async def _drain_client(websocket: WebSocket) -> None:
    """Consume client frames until the socket disconnects."""
    with contextlib.suppress(WebSocketDisconnect):
        while True:
            await websocket.receive_text()


app = create_app()


def run() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run("launchpad.api.app:app", host="0.0.0.0", port=8000, reload=False)
