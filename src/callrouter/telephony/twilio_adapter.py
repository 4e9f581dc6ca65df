"""
Twilio telephony provider adapter.

Inbound webhooks are form-encoded; responses are TwiML documents.
"""

import hashlib
import hmac
from base64 import b64encode
from typing import Any
from urllib.parse import parse_qsl

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

TWILIO_STATUS_MAP: dict[str, CallStatus] = {
    "queued": CallStatus.RINGING,
    "initiated": CallStatus.RINGING,
    "ringing": CallStatus.RINGING,
    "in-progress": CallStatus.ANSWERED,
    "answered": CallStatus.ANSWERED,
    "busy": CallStatus.BUSY,
    "no-answer": CallStatus.NO_ANSWER,
}

XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>'


def _xml_escape(text: str) -> str:
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def _twiml(s: str) -> str:
    if not s:
        return f"{XML_HEADER}<Response/>"
    return f"{XML_HEADER}<Response>{s}</Response>"


def _attrs(**attrs: Any) -> str:
    parts = [f' {k}="{_xml_escape(str(v))}"' for k, v in attrs.items() if v is not None]
    return "".join(parts)


class TwilioAdapter(TelephonyProvider):
    """Twilio (TwiML) provider adapter."""

    provider_type = ProviderType.TWILIO.value

    @property
    def media_type(self) -> str:
        return "text/xml"

    def parse_webhook_event(self, payload: dict[str, Any]) -> CanonicalCallEvent | None:
        if not isinstance(payload, dict):
            return None

        call_sid = payload.get("CallSid")
        if not call_sid or not isinstance(call_sid, str):
            logger.info(
                "Twilio webhook without CallSid ignored",
                extra={"payload_keys": sorted(str(k) for k in payload.keys())},
            )
            return None

        # <Dial action> callbacks report the outcome of the dialed leg here.
        raw_status = payload.get("DialCallStatus") or payload.get("CallStatus") or ""
        status = TWILIO_STATUS_MAP.get(str(raw_status).lower(), CallStatus.OTHER)

        return CanonicalCallEvent(
            call_id=call_sid,
            from_number=str(payload.get("From") or ""),
            to_number=str(payload.get("To") or ""),
            status=status,
            raw_payload=dict(payload),
        )

    def normalize(self, commands: list[Command]) -> list[Command]:
        # TwiML answers implicitly on the first verb.
        return [c for c in commands if not isinstance(c, Answer)]

    def serialize(self, commands: list[Command]) -> str:
        return _twiml("".join(self._verb(c) for c in commands))

    def _verb(self, command: Command) -> str:
        cfg = self._config
        match command:
            case Speak(text=text):
                return (
                    f"<Say{_attrs(voice=cfg.say_voice, language=cfg.say_language)}>"
                    f"{_xml_escape(text)}</Say>"
                )
            case Playback(audio_url=url):
                return f"<Play>{_xml_escape(url)}</Play>"
            case Transfer(to=to) if to.startswith("sip:"):
                return f"<Dial><Sip>{_xml_escape(to)}</Sip></Dial>"
            case Transfer(to=to, caller_id=caller_id):
                attrs = _attrs(timeout=cfg.default_bridge_timeout_seconds, callerId=caller_id or None)
                return f"<Dial{attrs}><Number>{_xml_escape(to)}</Number></Dial>"
            case Bridge(to=to, timeout_secs=timeout):
                attrs = _attrs(timeout=timeout, action=cfg.status_callback_url, method="POST")
                return f"<Dial{attrs}><Number>{_xml_escape(to)}</Number></Dial>"
            case RecordStart(max_length_secs=max_length, transcribe=transcribe):
                attrs = _attrs(
                    maxLength=max_length,
                    transcribe="true" if transcribe is not False else None,
                    action=cfg.recording_callback_url,
                    method="POST",
                )
                return f"<Record{attrs}/>"
            case Hangup():
                return "<Hangup/>"
            case Answer():
                return ""
        raise TypeError(f"Unsupported command: {command!r}")

    def render_ignored(self) -> WireResponse:
        return WireResponse(body=_twiml(""), media_type=self.media_type)

    def validate_webhook_signature(
        self,
        payload: bytes,
        signature: str,
        url: str,
        timestamp: str | None = None,
    ) -> bool:
        """Validate X-Twilio-Signature (HMAC-SHA1 over URL + sorted form params)."""
        auth_token = self._config.twilio_auth_token
        if not auth_token:
            logger.warning("Twilio auth token not configured, skipping signature validation")
            return True

        params = parse_qsl(payload.decode("utf-8"), keep_blank_values=True) if payload else []
        data = url + "".join(f"{k}{v}" for k, v in sorted(params))

        expected = b64encode(
            hmac.new(auth_token.encode("utf-8"), data.encode("utf-8"), hashlib.sha1).digest()
        ).decode("utf-8")

        return hmac.compare_digest(expected, signature or "")
