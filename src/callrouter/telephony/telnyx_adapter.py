"""
Telnyx telephony provider adapter.

Inbound webhooks are JSON call-control events; responses are a JSON list of
call-control commands.
"""

import json
import time
from base64 import b64decode
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from callrouter.shared.logging import get_logger
from callrouter.telephony.commands import (
    Answer,
    Bridge,
    Command,
    Hangup,
    Playback,
    RecordStart,
    Speak,
    Transfer,
)
from callrouter.telephony.config import ProviderType
from callrouter.telephony.interface import (
    CallStatus,
    CanonicalCallEvent,
    TelephonyProvider,
    WireResponse,
)

logger = get_logger(__name__)

TELNYX_STATUS_MAP: dict[str, CallStatus] = {
    "call.initiated": CallStatus.RINGING,
    "call.ringing": CallStatus.RINGING,
    "call.answered": CallStatus.ANSWERED,
    "call.bridged": CallStatus.ANSWERED,
    "call.machine.detection.ended": CallStatus.ANSWERED,
}

# call.hangup carries the reason the leg ended.
TELNYX_HANGUP_CAUSE_MAP: dict[str, CallStatus] = {
    "user_busy": CallStatus.BUSY,
    "busy": CallStatus.BUSY,
    "timeout": CallStatus.NO_ANSWER,
    "no_answer": CallStatus.NO_ANSWER,
}


def _dumps(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))


class TelnyxAdapter(TelephonyProvider):
    """Telnyx (JSON call-control) provider adapter."""

    provider_type = ProviderType.TELNYX.value

    @property
    def media_type(self) -> str:
        return "application/json"

    def parse_webhook_event(self, payload: dict[str, Any]) -> CanonicalCallEvent | None:
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            return None

        event_type = data.get("event_type")
        if not isinstance(event_type, str) or not event_type.startswith("call."):
            logger.info("Telnyx non-call webhook ignored", extra={"event_type": event_type})
            return None

        body = data.get("payload")
        if not isinstance(body, dict):
            return None

        call_id = body.get("call_control_id") or body.get("call_session_id")
        if not call_id or not isinstance(call_id, str):
            return None

        if event_type == "call.hangup":
            cause = str(body.get("hangup_cause") or "").lower()
            status = TELNYX_HANGUP_CAUSE_MAP.get(cause, CallStatus.OTHER)
        else:
            status = TELNYX_STATUS_MAP.get(event_type, CallStatus.OTHER)

        return CanonicalCallEvent(
            call_id=call_id,
            from_number=str(body.get("from") or ""),
            to_number=str(body.get("to") or ""),
            status=status,
            raw_payload=dict(payload),
        )

    def normalize(self, commands: list[Command]) -> list[Command]:
        # Call control needs the leg answered before it can be bridged.
        if commands and isinstance(commands[0], Bridge):
            return [Answer(), *commands]
        return list(commands)

    def serialize(self, commands: list[Command]) -> str:
        return _dumps({"commands": [self._command(c) for c in commands]})

    def _command(self, command: Command) -> dict[str, Any]:
        match command:
            case Answer():
                return {"type": "answer"}
            case Transfer(to=to):
                return {"type": "transfer", "payload": {"to": to}}
            case Bridge(to=to, timeout_secs=timeout):
                return {"type": "bridge", "payload": {"to": to, "timeout_secs": timeout}}
            case Speak(text=text):
                return {"type": "speak", "payload": text}
            case Playback(audio_url=url):
                return {"type": "playback_start", "payload": {"audio_url": url}}
            case RecordStart(format=fmt, max_length_secs=max_length, transcribe=transcribe):
                payload: dict[str, Any] = {"format": fmt}
                if max_length is not None:
                    payload["max_length"] = max_length
                if transcribe is not None:
                    payload["transcribe"] = transcribe
                return {"type": "record_start", "payload": payload}
            case Hangup():
                return {"type": "hangup"}
        raise TypeError(f"Unsupported command: {command!r}")

    def render_ignored(self) -> WireResponse:
        return WireResponse(body=_dumps({"status": "ignored"}), media_type=self.media_type)

    def validate_webhook_signature(
        self,
        payload: bytes,
        signature: str,
        url: str,
        timestamp: str | None = None,
    ) -> bool:
        """Validate telnyx-signature-ed25519 over "{telnyx-timestamp}|{raw body}".

        Signatures older than the configured tolerance are rejected.
        """
        public_key = self._config.telnyx_public_key
        if not public_key:
            logger.warning("Telnyx public key not configured, skipping signature validation")
            return True

        if not signature or not timestamp:
            return False
        try:
            sent_at = int(timestamp)
        except ValueError:
            return False
        if abs(time.time() - sent_at) > self._config.telnyx_signature_tolerance_seconds:
            logger.warning("Telnyx webhook timestamp outside tolerance", extra={"timestamp": timestamp})
            return False

        try:
            key = Ed25519PublicKey.from_public_bytes(b64decode(public_key))
            key.verify(b64decode(signature), f"{timestamp}|".encode("utf-8") + payload)
        except (InvalidSignature, ValueError):
            return False
        return True
