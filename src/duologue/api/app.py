"""HTTP and WebSocket surface of Duologue.

All routes live under ``/api/v1/brainstorm`` and answer with the
envelope ``{"success", "data", "error"}``. Authentication is handled
upstream; the caller's identity arrives in the ``X-User-Id`` header
(or the ``userId`` query parameter on the live channel). Sessions of
other users answer as not found.
"""

import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import (
    APIRouter,
    Depends,
    FastAPI,
    Header,
    Query,
    Request,
    WebSocket,
    WebSocketDisconnect,
)
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from duologue import __version__
from duologue.api.schemas import (
    SendMessageRequest,
    StartSessionRequest,
    failure,
    success,
)
from duologue.execution.turn_scheduler import TurnScheduler
from duologue.utils.exceptions import DuologueError, SessionNotFoundError, ValidationError
from duologue.utils.logging import get_logger

logger = get_logger(__name__)

API_PREFIX = "/api/v1/brainstorm"
DEFAULT_USER_ID = "anonymous"

router = APIRouter(prefix=API_PREFIX)


def get_scheduler(request: Request) -> TurnScheduler:
    return request.app.state.scheduler


def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    return (x_user_id or "").strip() or DEFAULT_USER_ID


@router.post("/start")
async def start_session(
    body: StartSessionRequest,
    scheduler: TurnScheduler = Depends(get_scheduler),
    user_id: str = Depends(get_user_id),
):
    session = await scheduler.start(
        user_id=user_id,
        topic=body.topic,
        description=body.description,
        participants=body.participant_config,
        settings=body.settings,
        chat_id=body.chat_id,
    )
    return success({"session": session.to_document()}, status_code=201)


@router.get("/sessions")
async def list_sessions(
    scheduler: TurnScheduler = Depends(get_scheduler),
    user_id: str = Depends(get_user_id),
):
    sessions = await scheduler.list_sessions(user_id)
    return success({"sessions": [s.to_document() for s in sessions]})


@router.get("/{session_id}")
async def get_session(
    session_id: str,
    scheduler: TurnScheduler = Depends(get_scheduler),
    user_id: str = Depends(get_user_id),
):
    session = await scheduler.get(session_id, user_id=user_id)
    return success({"session": session.to_document()})


@router.delete("/{session_id}")
async def delete_session(
    session_id: str,
    scheduler: TurnScheduler = Depends(get_scheduler),
    user_id: str = Depends(get_user_id),
):
    await scheduler.delete(session_id, user_id=user_id)
    return success({"deleted": session_id})


@router.post("/{session_id}/message")
async def send_message(
    session_id: str,
    body: SendMessageRequest,
    scheduler: TurnScheduler = Depends(get_scheduler),
    user_id: str = Depends(get_user_id),
):
    message, session = await scheduler.submit_user_message(
        session_id, body.content, body.attachments, user_id=user_id
    )
    return success(
        {
            "userMessage": message.model_dump(mode="json", by_alias=True),
            "session": session.to_document(),
        }
    )


@router.post("/{session_id}/pause")
async def pause_session(
    session_id: str,
    scheduler: TurnScheduler = Depends(get_scheduler),
    user_id: str = Depends(get_user_id),
):
    session = await scheduler.pause(session_id, user_id=user_id)
    return success({"session": session.to_document()})


@router.post("/{session_id}/resume")
async def resume_session(
    session_id: str,
    scheduler: TurnScheduler = Depends(get_scheduler),
    user_id: str = Depends(get_user_id),
):
    session = await scheduler.resume(session_id, user_id=user_id)
    return success({"session": session.to_document()})


@router.post("/{session_id}/stop")
async def stop_session(
    session_id: str,
    scheduler: TurnScheduler = Depends(get_scheduler),
    user_id: str = Depends(get_user_id),
):
    session = await scheduler.stop(session_id, user_id=user_id)
    return success({"session": session.to_document()})


@router.get("/{session_id}/summary")
async def get_summary(
    session_id: str,
    scheduler: TurnScheduler = Depends(get_scheduler),
    user_id: str = Depends(get_user_id),
):
    return success(await scheduler.summary(session_id, user_id=user_id))


@router.get("/{session_id}/export")
async def export_session(
    session_id: str,
    format: str = "json",
    scheduler: TurnScheduler = Depends(get_scheduler),
    user_id: str = Depends(get_user_id),
):
    result = await scheduler.export(session_id, format, user_id=user_id)
    if result.media_type == "application/json":
        return success(result.content)
    return Response(
        content=result.text(),
        media_type=result.media_type,
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )


@router.websocket("/{session_id}/live")
async def live_channel(
    websocket: WebSocket,
    session_id: str,
    x_user_id: Optional[str] = Header(default=None),
    user_id_param: Optional[str] = Query(default=None, alias="userId"),
):
    # Browsers cannot set headers on a WebSocket handshake
    user_id = get_user_id(x_user_id or user_id_param)
    scheduler: TurnScheduler = websocket.app.state.scheduler
    try:
        await scheduler.get(session_id, user_id=user_id)
    except SessionNotFoundError as e:
        await websocket.accept()
        await websocket.send_json(
            {"event": "error", "sessionId": session_id, "error": e.to_dict()}
        )
        await websocket.close(code=1008)
        return

    await websocket.accept()
    subscriber_id = uuid.uuid4().hex
    await websocket.send_json(
        {"event": "connected", "sessionId": session_id, "subscriberId": subscriber_id}
    )
    scheduler.broadcaster.join(session_id, subscriber_id, websocket.send_json)
    logger.info(f"Live subscriber {subscriber_id} connected to session {session_id}")
    try:
        while True:
            # Clients only listen; incoming frames are read to notice disconnects
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        scheduler.broadcaster.leave(session_id, subscriber_id)
        logger.info(f"Live subscriber {subscriber_id} left session {session_id}")


async def handle_duologue_error(request: Request, exc: DuologueError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.code} {exc.message}")
    return failure(exc)


async def handle_request_validation(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        f"{' -> '.join(str(x) for x in err['loc'])}: {err['msg']}" for err in exc.errors()
    ]
    return failure(
        ValidationError(
            "Invalid request: " + "; ".join(errors), details={"errors": errors}
        )
    )


def create_app(scheduler: TurnScheduler) -> FastAPI:
    """Create the FastAPI application around a scheduler."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await scheduler.shutdown()

    app = FastAPI(title="Duologue", version=__version__, lifespan=lifespan)
    app.state.scheduler = scheduler
    app.add_exception_handler(DuologueError, handle_duologue_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.include_router(router)

    @app.get("/health")
    async def health():
        return success({"status": "ok", "version": __version__})

    return app
