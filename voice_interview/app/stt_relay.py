"""
Voice Interview - STT Relay.

Bridges one client connection to the upstream streaming speech-to-text
service. The relay itself is stateless; all per-connection state lives in
the SttRelaySession the gateway connection owns and passes in.

State Flow:
IDLE -> OPENING -> OPEN -> CLOSING -> CLOSED -> IDLE

Outbound events:
    sarvam-ready, sarvam-transcript-interim, sarvam-transcript-final,
    sarvam-event, sarvam-error, sarvam-data, sarvam-raw, sarvam-closed
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable

import websockets

from voice_interview.core.config import get_settings
from voice_interview.core.domain.models import SttRelaySession, SttRelayState
from voice_interview.core.exceptions import AudioChunkError
from voice_interview.infra.speech.sarvam import (
    FLUSH_MESSAGE,
    SttData,
    SttError,
    SttEvent,
    SttUnrecognized,
    build_audio_message,
    decode_stt_message,
    normalize_audio_chunk,
)


logger = logging.getLogger(__name__)


Emitter = Callable[[str, Any], Awaitable[None]]


class SttRelay:
    """
    Per-connection speech-to-text relay.

    Usage:
        relay = SttRelay(connector, emit=connection.emit)
        session = SttRelaySession()

        await relay.start(session, {"languageCode": "en-IN"})
        await relay.send_audio(session, pcm_bytes)
        await relay.stop(session)      # flush, then close within the timeout
        await relay.disconnect(session)
    """

    def __init__(
        self,
        connector,
        emit: Emitter,
        flush_timeout: float | None = None,
    ):
        self._connector = connector
        self._emit = emit
        self._flush_timeout = (
            flush_timeout if flush_timeout is not None
            else get_settings().STT_FLUSH_TIMEOUT_SECONDS
        )

    # -------------------------------------------------------------------------
    # Client Signals
    # -------------------------------------------------------------------------

    async def start(self, session: SttRelaySession, options: dict[str, Any] | None = None) -> None:
        """Open the upstream session; a no-op while one is already live."""
        if session.is_live:
            logger.info("STT session already open for this connection")
            return

        session.state = SttRelayState.OPENING
        session.transcript_buffer = ""
        session.flush_pending = False

        try:
            upstream = await self._connector.connect(options or {})
        except Exception as e:
            logger.error(f"Failed to open STT session: {e}")
            session.state = SttRelayState.IDLE
            await self._emit("sarvam-error", {"error": str(e)})
            return

        session.upstream = upstream
        session.state = SttRelayState.OPEN
        logger.info("✅ STT session opened")
        await self._emit("sarvam-ready", {"ok": True})

        session.reader_task = asyncio.create_task(self._read_upstream(session, upstream))

    async def send_audio(self, session: SttRelaySession, chunk: Any) -> bool:
        """Forward one audio frame upstream. Frames outside OPEN are dropped."""
        if not session.is_open:
            logger.warning("audio-chunk received but STT session not open")
            return False

        try:
            pcm = normalize_audio_chunk(chunk)
        except AudioChunkError as e:
            logger.error(f"Failed to normalize audio chunk: {e}")
            return False

        try:
            await session.upstream.send(build_audio_message(pcm))
        except Exception as e:
            logger.error(f"Failed to send audio chunk upstream: {e}")
            return False
        return True

    async def stop(self, session: SttRelaySession) -> None:
        """Request a flush, then force-close after the flush timeout."""
        if not session.is_open:
            logger.info("stop-sarvam-stt but STT session not open")
            final_text = session.take_transcript()
            if final_text:
                await self._emit("sarvam-transcript-final", {"text": final_text})
            return

        upstream = session.upstream
        session.flush_pending = True
        try:
            await upstream.send(FLUSH_MESSAGE)
        except Exception as e:
            logger.error(f"Failed to send flush upstream: {e}")
            await self._close_upstream(session)
            return

        self._cancel_timer(session)
        session.close_timer = asyncio.create_task(self._close_after_timeout(session, upstream))

    async def disconnect(self, session: SttRelaySession) -> None:
        """Tear down on client disconnect. Buffered text is not flushed."""
        self._cancel_timer(session)

        upstream = session.upstream
        reader = session.reader_task

        session.upstream = None
        session.reader_task = None
        session.flush_pending = False
        session.transcript_buffer = ""
        session.state = SttRelayState.IDLE

        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
        if upstream is not None:
            try:
                await upstream.close()
            except Exception as e:
                logger.warning(f"Error closing STT session on disconnect: {e}")

    # -------------------------------------------------------------------------
    # Upstream Messages
    # -------------------------------------------------------------------------

    async def handle_message(self, session: SttRelaySession, raw: str | bytes) -> None:
        message = decode_stt_message(raw)

        if isinstance(message, SttError):
            logger.error(f"STT upstream error: {message.data}")
            await self._emit("sarvam-error", message.data)

        elif isinstance(message, SttEvent):
            await self._emit("sarvam-event", message.data)
            if message.is_end_of_speech:
                final_text = session.take_transcript()
                if final_text:
                    await self._emit("sarvam-transcript-final", {"text": final_text})
                if session.flush_pending:
                    await self._close_upstream(session)

        elif isinstance(message, SttData):
            if message.transcript:
                session.append_transcript(message.transcript)
                await self._emit("sarvam-transcript-interim", {
                    "text": message.transcript,
                    "request_id": message.request_id,
                    "metrics": message.metrics,
                })
            else:
                await self._emit("sarvam-data", message.data)

        elif isinstance(message, SttUnrecognized):
            # Shown as interim text only; never part of the final transcript
            if message.transcript:
                await self._emit("sarvam-transcript-interim", {"text": message.transcript})
            else:
                await self._emit("sarvam-raw", message.raw)

    async def _read_upstream(self, session: SttRelaySession, upstream) -> None:
        try:
            async for raw in upstream:
                await self.handle_message(session, raw)
        except websockets.ConnectionClosed as e:
            logger.info(f"STT upstream closed with error: {e}")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"STT upstream read failed: {e}", exc_info=True)
            await self._emit("sarvam-error", {"error": str(e)})

        await self._on_upstream_closed(session, upstream)

    async def _on_upstream_closed(self, session: SttRelaySession, upstream) -> None:
        if session.upstream is not upstream:
            # Already torn down by a client disconnect
            return

        session.state = SttRelayState.CLOSED
        code = getattr(upstream, "close_code", None)
        reason = getattr(upstream, "close_reason", None) or ""
        logger.info(f"⛔ STT session closed ({code})")

        final_text = session.take_transcript()
        if final_text:
            await self._emit("sarvam-transcript-final", {"text": final_text})
        await self._emit("sarvam-closed", {"code": code, "reason": reason})

        self._cancel_timer(session)
        session.upstream = None
        session.reader_task = None
        session.flush_pending = False
        session.state = SttRelayState.IDLE

    # -------------------------------------------------------------------------
    # Closing
    # -------------------------------------------------------------------------

    async def _close_upstream(self, session: SttRelaySession) -> None:
        if session.upstream is None or session.state != SttRelayState.OPEN:
            return
        session.state = SttRelayState.CLOSING
        try:
            await session.upstream.close()
        except Exception as e:
            logger.warning(f"Error closing STT session: {e}")

    async def _close_after_timeout(self, session: SttRelaySession, upstream) -> None:
        await asyncio.sleep(self._flush_timeout)
        if session.close_timer is asyncio.current_task():
            session.close_timer = None
        if session.upstream is upstream and session.state == SttRelayState.OPEN:
            logger.info("STT flush not acknowledged in time; closing upstream")
            await self._close_upstream(session)

    def _cancel_timer(self, session: SttRelaySession) -> None:
        timer = session.close_timer
        session.close_timer = None
        if timer is not None and timer is not asyncio.current_task():
            timer.cancel()
