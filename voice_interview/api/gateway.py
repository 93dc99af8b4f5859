"""
Voice Interview - WebSocket Session Gateway.

One long-lived socket per candidate browser tab. Text frames carry JSON
envelopes ``{"event": ..., "data": ...}``; binary frames are audio chunks
for the STT relay. Every outbound event goes back to the same socket.

Inbound events:
    user-message, end-interview,
    start-sarvam-stt, audio-chunk, stop-sarvam-stt
"""

import asyncio
import logging
from collections import defaultdict
from typing import Any

from fastapi import APIRouter, WebSocket
from pydantic import ValidationError as PydanticValidationError

from voice_interview.api.schemas import EventEnvelope
from voice_interview.app.orchestrator import InterviewOrchestrator
from voice_interview.app.stt_relay import SttRelay
from voice_interview.core.config import get_settings
from voice_interview.core.domain.models import CandidateIdentity, FinalFeedback, SttRelaySession
from voice_interview.core.exceptions import InterviewAIError
from voice_interview.infra.auth import extract_token


logger = logging.getLogger(__name__)

router = APIRouter()


class ConnectionRegistry:
    """Routing groups of live connections, keyed by candidate id."""

    def __init__(self):
        self._rooms: dict[str, set["InterviewConnection"]] = defaultdict(set)

    def join(self, room: str, connection: "InterviewConnection") -> None:
        self._rooms[room].add(connection)

    def leave(self, room: str, connection: "InterviewConnection") -> None:
        members = self._rooms.get(room)
        if members is None:
            return
        members.discard(connection)
        if not members:
            del self._rooms[room]

    def members(self, room: str) -> set["InterviewConnection"]:
        return set(self._rooms.get(room, ()))


class InterviewConnection:
    """
    Connection-scoped handler.

    Owns the connection's SttRelaySession and routes inbound events to the
    STT relay (inline, in arrival order) or the orchestrator (as background
    tasks so audio keeps flowing while the model thinks).
    """

    def __init__(
        self,
        websocket: WebSocket,
        orchestrator: InterviewOrchestrator,
        stt_connector,
        registry: ConnectionRegistry,
        identity: CandidateIdentity | None = None,
    ):
        self._websocket = websocket
        self._orchestrator = orchestrator
        self._registry = registry
        self._send_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()
        self.identity = identity
        self.stt_session = SttRelaySession()
        self.relay = SttRelay(stt_connector, emit=self.emit)

    # -------------------------------------------------------------------------
    # Outbound
    # -------------------------------------------------------------------------

    async def emit(self, event: str, data: Any = None) -> None:
        """Send one event to this client; send failures are logged, not raised."""
        try:
            async with self._send_lock:
                await self._websocket.send_json({"event": event, "data": data})
        except Exception as e:
            logger.warning(f"emit {event} failed: {e}")

    async def emit_error(self, message: str) -> None:
        await self.emit("error", {"message": message})

    # -------------------------------------------------------------------------
    # Inbound
    # -------------------------------------------------------------------------

    async def run(self) -> None:
        if self.identity is not None:
            self._registry.join(self.identity.room, self)

        try:
            while True:
                message = await self._websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break

                if message.get("bytes") is not None:
                    await self.relay.send_audio(self.stt_session, message["bytes"])
                elif message.get("text") is not None:
                    await self._handle_text(message["text"])
        finally:
            await self.on_disconnect()

    async def _handle_text(self, text: str) -> None:
        try:
            envelope = EventEnvelope.model_validate_json(text)
        except PydanticValidationError:
            logger.warning("Malformed event frame ignored")
            await self.emit_error("Malformed event")
            return
        await self.dispatch(envelope.event, envelope.data)

    async def dispatch(self, event: str, data: Any) -> None:
        payload = data if isinstance(data, dict) else {}

        if event == "user-message":
            self._spawn(self.on_user_message(payload))
        elif event == "end-interview":
            self._spawn(self.on_end_interview(payload))
        elif event == "start-sarvam-stt":
            await self.relay.start(self.stt_session, payload)
        elif event == "audio-chunk":
            await self.relay.send_audio(self.stt_session, data)
        elif event == "stop-sarvam-stt":
            await self.relay.stop(self.stt_session)
        else:
            logger.warning(f"Unknown event: {event}")
            await self.emit_error(f"Unknown event: {event}")

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    async def on_user_message(self, payload: dict[str, Any]) -> None:
        try:
            reply = await self._orchestrator.handle_user_message(self.identity, payload)
        except InterviewAIError as e:
            logger.info(f"user-message rejected: {e}")
            await self.emit_error(e.message)
            return
        except Exception:
            logger.exception("socket user-message error")
            await self.emit_error("Failed to process your message. Please try again.")
            return

        await self.emit("ai-response", {"response": reply})

    async def on_end_interview(self, payload: dict[str, Any]) -> None:
        async def deliver(feedback: FinalFeedback, updated_details: dict) -> None:
            await self.emit("final-feedback", {
                "feedback": feedback.to_dict(),
                "updatedDetails": updated_details,
            })

        try:
            await self._orchestrator.end_interview(self.identity, payload, on_complete=deliver)
        except InterviewAIError as e:
            logger.info(f"end-interview rejected: {e}")
            await self.emit_error(e.message)
        except Exception:
            logger.exception("socket end-interview error")
            await self.emit_error("Failed to end interview. Please try again.")

    async def on_disconnect(self) -> None:
        """Tear down the STT relay only; session state survives for reconnection."""
        if self.identity is not None:
            self._registry.leave(self.identity.room, self)
        await self.relay.disconnect(self.stt_session)
        logger.info("socket disconnected")


@router.websocket("/ws/interview")
async def interview_socket(websocket: WebSocket):
    """
    Interview socket.

    The credential comes from the auth cookie or the ``token`` query
    parameter. A missing or invalid credential does not refuse the
    connection; identity-gated events are rejected individually.
    """
    services = websocket.app.state.services
    settings = get_settings()

    token = extract_token(websocket.cookies, websocket.query_params, settings.AUTH_COOKIE_NAME)
    try:
        identity = await services.authenticator.resolve(token)
    except Exception as e:
        logger.error(f"Socket auth error: {e}")
        identity = None

    await websocket.accept()
    logger.info(
        f"✅ Socket connected (candidate: {identity.candidate_id if identity else 'unauthenticated'})"
    )

    connection = InterviewConnection(
        websocket,
        orchestrator=services.orchestrator,
        stt_connector=services.stt_connector,
        registry=services.registry,
        identity=identity,
    )
    await connection.run()
