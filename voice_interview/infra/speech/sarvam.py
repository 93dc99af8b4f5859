"""
Voice Interview - Sarvam Streaming STT Adapter.

Wire format of the Sarvam realtime speech-to-text socket:
connection URL, audio envelope, flush instruction and the decoding of
upstream messages into a small tagged variant.
"""

from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass
from typing import Any, Union
from urllib.parse import urlencode

import websockets

from voice_interview.core.config import get_settings
from voice_interview.core.exceptions import AudioChunkError, SttConnectionError


logger = logging.getLogger(__name__)


AUDIO_SAMPLE_RATE = "16000"
AUDIO_ENCODING = "audio/wav"
AUDIO_CODEC = "pcm_s16le"

END_SPEECH_SIGNAL = "END_SPEECH"

FLUSH_MESSAGE = json.dumps({"type": "flush"})


# -----------------------------------------------------------------------------
# Connection Parameters
# -----------------------------------------------------------------------------

def _flag(value: Any) -> str:
    if value is None:
        return "false"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_stt_url(base_url: str, options: dict[str, Any] | None = None) -> str:
    """Build the upstream socket URL carrying the client's session options."""
    options = options or {}
    params = {
        "language-code": options.get("languageCode") or "en-IN",
        "model": options.get("model") or "saarika:v2.5",
        "input_audio_codec": options.get("input_audio_codec") or AUDIO_CODEC,
        "sample_rate": str(options.get("sample_rate") or AUDIO_SAMPLE_RATE),
        "vad_signals": _flag(options.get("vad_signals")),
        "high_vad_sensitivity": _flag(options.get("high_vad_sensitivity")),
        "flush_signal": "true",
    }
    return f"{base_url}?{urlencode(params)}"


# -----------------------------------------------------------------------------
# Audio Frames
# -----------------------------------------------------------------------------

def normalize_audio_chunk(chunk: Any) -> bytes:
    """
    Flatten whatever the transport delivered into raw bytes.

    Accepts bytes-like objects, lists of byte values, base64 strings and
    objects wrapping any of those under a ``data`` key.
    """
    if isinstance(chunk, dict):
        if "data" not in chunk:
            raise AudioChunkError("Audio chunk object has no data field")
        chunk = chunk["data"]

    try:
        if isinstance(chunk, (bytes, bytearray)):
            return bytes(chunk)
        if isinstance(chunk, memoryview):
            return chunk.tobytes()
        if isinstance(chunk, str):
            return base64.b64decode(chunk, validate=True)
        if isinstance(chunk, list):
            return bytes(chunk)
    except (ValueError, TypeError) as e:
        raise AudioChunkError("Unreadable audio chunk", details=str(e))

    raise AudioChunkError(f"Unsupported audio chunk type: {type(chunk).__name__}")


def build_audio_message(pcm: bytes) -> str:
    """Wrap 16 kHz signed 16-bit little-endian PCM in the upstream envelope."""
    return json.dumps({
        "audio": {
            "data": base64.b64encode(pcm).decode("ascii"),
            "sample_rate": AUDIO_SAMPLE_RATE,
            "encoding": AUDIO_ENCODING,
            "input_audio_codec": AUDIO_CODEC,
        }
    })


# -----------------------------------------------------------------------------
# Upstream Messages
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class SttError:
    data: Any


@dataclass(frozen=True)
class SttEvent:
    data: dict[str, Any]

    @property
    def is_end_of_speech(self) -> bool:
        return self.data.get("signal_type") == END_SPEECH_SIGNAL


@dataclass(frozen=True)
class SttData:
    data: Any
    transcript: str = ""
    request_id: str | None = None
    metrics: Any = None


@dataclass(frozen=True)
class SttUnrecognized:
    raw: Any
    transcript: str = ""


SttMessage = Union[SttError, SttEvent, SttData, SttUnrecognized]


def decode_stt_message(raw: str | bytes) -> SttMessage:
    """Decode one upstream frame into its tagged variant."""
    try:
        msg = json.loads(raw)
    except (ValueError, TypeError):
        text = raw.decode("utf-8", "replace") if isinstance(raw, bytes) else str(raw)
        return SttUnrecognized(raw=text)

    if not isinstance(msg, dict):
        return SttUnrecognized(raw=msg)

    msg_type = msg.get("type")
    data = msg.get("data")

    if msg_type == "error" and data:
        return SttError(data=data)

    if msg_type == "events" and isinstance(data, dict):
        return SttEvent(data=data)

    if msg_type == "data" and data:
        transcript = ""
        if isinstance(data, dict) and data.get("transcript"):
            transcript = str(data["transcript"]).strip()
        return SttData(
            data=data,
            transcript=transcript,
            request_id=data.get("request_id") if isinstance(data, dict) else None,
            metrics=data.get("metrics") if isinstance(data, dict) else None,
        )

    # Best effort for shapes outside the documented schema
    transcript = str(msg.get("transcript") or "").strip()
    return SttUnrecognized(raw=msg, transcript=transcript)


# -----------------------------------------------------------------------------
# Connector
# -----------------------------------------------------------------------------

class SarvamConnector:
    """Opens upstream STT sockets with the subscription key attached."""

    def __init__(self, api_key: str | None = None, base_url: str | None = None):
        settings = get_settings()
        self._api_key = api_key if api_key is not None else settings.SARVAM_API_KEY
        self._base_url = base_url or settings.SARVAM_STT_URL
        if not self._api_key:
            logger.warning("⚠️ SARVAM_API_KEY not set; upstream STT will reject connections")

    async def connect(self, options: dict[str, Any] | None = None):
        url = build_stt_url(self._base_url, options)
        logger.info(f"🌐 Opening Sarvam STT socket ({(options or {}).get('languageCode') or 'en-IN'})")
        try:
            return await websockets.connect(
                url,
                additional_headers={"Api-Subscription-Key": self._api_key},
                max_size=2**20,
            )
        except Exception as e:
            raise SttConnectionError(str(e))
