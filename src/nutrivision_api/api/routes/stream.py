"""WebSocket endpoint for streamed image analysis.

Frames are JSON objects `{"event": <name>, "data": {...}}` in both
directions, sent as text or UTF-8 binary frames. The token is checked during the handshake; a connection with a
missing or invalid token is closed with 1008 before any frame is read.

Client events:
    analyze-image   {imageUrl, imageId, fileName, fileType, fileSize}
    heartbeat       {}

Server events:
    welcome, heartbeat, analysis-start, analysis-progress,
    analysis-complete, analysis-error, error
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Annotated, Any
from uuid import uuid4

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError

from nutrivision_api.core.config import Settings, get_settings
from nutrivision_api.core.exceptions import AuthenticationError
from nutrivision_api.core.security import UserPayload, decode_token, extract_bearer
from nutrivision_api.models.analysis import AnalysisEvent, AnalyzeImageRequest, StreamFrame
from nutrivision_api.services.analysis import AnalysisService, AnalysisSession

router = APIRouter()
logger = logging.getLogger(__name__)


def handshake_token(websocket: WebSocket) -> str | None:
    """Token from the `token` query param, a `token` header, or a Bearer header."""
    return (
        websocket.query_params.get("token")
        or websocket.headers.get("token")
        or extract_bearer(websocket.headers.get("authorization"))
    )


class AnalysisConnection:
    """
    One authenticated WebSocket connection.

    Reads frames until the client disconnects, running each analyze request
    as its own task so heartbeats are answered while a session is in flight.
    At most `max_sessions` sessions run at once; extra requests are refused
    with `analysis-error`. Sessions still running when the client goes away
    are cancelled.
    """

    def __init__(
        self,
        websocket: WebSocket,
        user: UserPayload,
        service: AnalysisService,
        max_sessions: int = 1,
    ):
        self.websocket = websocket
        self.user = user
        self.service = service
        self.max_sessions = max(1, max_sessions)
        self.connection_id = uuid4().hex
        self._tasks: set[asyncio.Task] = set()
        self._send_lock = asyncio.Lock()

    @property
    def active_sessions(self) -> int:
        return len(self._tasks)

    async def send(self, event: AnalysisEvent | str, data: dict[str, Any]) -> None:
        name = event.value if isinstance(event, AnalysisEvent) else event
        async with self._send_lock:
            await self.websocket.send_json({"event": name, "data": data})

    async def serve(self) -> None:
        """Main receive loop; returns when the client disconnects."""
        logger.info(f"Socket {self.connection_id} connected for user {self.user.uuid}")
        await self.send(
            AnalysisEvent.WELCOME,
            {
                "message": f"Welcome {self.user.email or 'user'}",
                "connectionId": self.connection_id,
            },
        )
        try:
            while True:
                text = await self.receive_frame()
                if text is None:
                    await self.send(AnalysisEvent.ERROR, {"message": "Malformed frame"})
                    continue
                await self.dispatch(text)
        except WebSocketDisconnect as e:
            logger.info(f"Socket {self.connection_id} disconnected, code: {e.code}")
        finally:
            await self._cancel_sessions()

    async def receive_frame(self) -> str | None:
        """
        Next inbound frame as text. Binary frames are decoded as UTF-8;
        None means the frame could not be decoded.

        Raises:
            WebSocketDisconnect: When the client closes the connection
        """
        message = await self.websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", status.WS_1000_NORMAL_CLOSURE))
        if message.get("text") is not None:
            return message["text"]
        try:
            return (message.get("bytes") or b"").decode("utf-8")
        except UnicodeDecodeError:
            return None

    async def dispatch(self, text: str) -> None:
        """Handle one inbound frame."""
        try:
            frame = StreamFrame.model_validate(json.loads(text))
        except (ValueError, ValidationError):
            # json.JSONDecodeError is a ValueError
            await self.send(AnalysisEvent.ERROR, {"message": "Malformed frame"})
            return

        if frame.event == AnalysisEvent.HEARTBEAT.value:
            await self.send(
                AnalysisEvent.HEARTBEAT,
                {"time": datetime.now(timezone.utc).isoformat()},
            )
        elif frame.event == AnalysisEvent.ANALYZE_IMAGE.value:
            await self.start_analysis(frame.data)
        else:
            await self.send(AnalysisEvent.ERROR, {"message": f"Unknown event: {frame.event}"})

    async def start_analysis(self, data: dict[str, Any]) -> None:
        """Validate an analyze request and run it in the background."""
        try:
            request = AnalyzeImageRequest.model_validate(data)
        except ValidationError as e:
            await self.send(
                AnalysisEvent.ANALYSIS_ERROR,
                {
                    "message": "Invalid analysis request",
                    "details": e.errors(include_url=False, include_context=False),
                },
            )
            return

        if self.active_sessions >= self.max_sessions:
            logger.warning(
                f"Socket {self.connection_id} refused analysis of {request.image_id}: "
                f"{self.active_sessions} already running"
            )
            await self.send(
                AnalysisEvent.ANALYSIS_ERROR,
                {
                    "message": "An analysis is already in progress on this connection",
                    "details": {"imageId": request.image_id},
                },
            )
            return

        session = self.service.open_session(request, self.user)
        task = asyncio.create_task(self._run(session))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, session: AnalysisSession) -> None:
        try:
            async for event in session.events():
                await self.send(event.event, event.data)
        except (WebSocketDisconnect, RuntimeError) as e:
            # Client went away mid-session; nothing left to notify
            logger.info(f"Socket {self.connection_id} dropped during analysis: {e!r}")

    async def _cancel_sessions(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"Socket {self.connection_id} abandoned {len(tasks)} in-flight analyses")


@router.websocket("/ws")
async def analysis_socket(
    websocket: WebSocket,
    settings: Annotated[Settings, Depends(get_settings)],
):
    """Authenticated analysis stream."""
    try:
        user = decode_token(handshake_token(websocket), settings)
    except AuthenticationError as e:
        logger.warning(f"Rejected socket connection: {e.message}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.message)
        return

    await websocket.accept()
    service = AnalysisService(websocket.app.state.vlm_client, websocket.app.state.collections)
    connection = AnalysisConnection(
        websocket,
        user,
        service,
        max_sessions=settings.max_analyses_per_connection,
    )
    await connection.serve()
