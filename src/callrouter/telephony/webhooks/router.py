"""
FastAPI router for inbound voice webhooks.

Constraints:
- vendors expect an answer within a few seconds, so no retries anywhere
- every request gets HTTP 200 with a renderable body (except rejected signatures)
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from callrouter.routing.dispatcher import ActionDispatcher
from callrouter.routing.matcher import RuleMatcher, TriggerCounter
from callrouter.routing.repository import (
    AIProviderRepository,
    PhoneLineRepository,
    RoutingRuleRepository,
    increment_rule_trigger,
)
from callrouter.shared.database import get_db_session
from callrouter.shared.logging import get_logger
from callrouter.telephony.config import ProviderType, TelephonyConfig, get_telephony_config
from callrouter.telephony.factory import get_telephony_provider
from callrouter.telephony.interface import TelephonyProvider, WireResponse
from callrouter.telephony.webhooks.handler import InboundCallHandler

logger = get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

WebhookCall = Callable[[TelephonyProvider, dict[str, Any]], Awaitable[WireResponse]]

_trigger_counter: TriggerCounter | None = None


def get_trigger_counter() -> TriggerCounter:
    """Process-wide trigger counter; drained on application shutdown."""
    global _trigger_counter
    if _trigger_counter is None:
        _trigger_counter = TriggerCounter(increment=increment_rule_trigger)
    return _trigger_counter


def get_inbound_call_handler(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> InboundCallHandler:
    return InboundCallHandler(
        phone_lines=PhoneLineRepository(session),
        matcher=RuleMatcher(RoutingRuleRepository(session)),
        dispatcher=ActionDispatcher(AIProviderRepository(session)),
        trigger_counter=get_trigger_counter(),
    )


def _to_response(wire: WireResponse, status_code: int | None = None) -> Response:
    return Response(
        content=wire.body,
        media_type=wire.media_type,
        status_code=status_code or wire.status_code,
    )


def _signed_url(request: Request, cfg: TelephonyConfig) -> str:
    # Twilio signs the public URL it called, not the one behind the proxy.
    url = cfg.get_webhook_url(request.url.path)
    if request.url.query:
        url = f"{url}?{request.url.query}"
    return url


async def _read_form(request: Request) -> dict[str, Any]:
    try:
        form = await request.form()
    except Exception:
        logger.warning("Unreadable form webhook body", exc_info=True)
        return {}
    return {k: str(v) for k, v in form.items()}


async def _twilio_webhook(request: Request, handle: WebhookCall) -> Response:
    provider = get_telephony_provider(ProviderType.TWILIO)
    cfg = get_telephony_config()

    if cfg.validate_signatures:
        raw = await request.body()
        signature = request.headers.get("X-Twilio-Signature", "")
        if not provider.validate_webhook_signature(raw, signature, _signed_url(request, cfg)):
            logger.warning("Rejected Twilio webhook with invalid signature", extra={"path": request.url.path})
            return _to_response(provider.render_ignored(), status_code=status.HTTP_403_FORBIDDEN)

    payload = await _read_form(request)
    return _to_response(await handle(provider, payload))


@router.post("/twilio/voice")
async def twilio_voice(
    request: Request,
    handler: Annotated[InboundCallHandler, Depends(get_inbound_call_handler)],
) -> Response:
    return await _twilio_webhook(request, handler.handle_voice)


@router.post("/twilio/voice/status")
async def twilio_voice_status(
    request: Request,
    handler: Annotated[InboundCallHandler, Depends(get_inbound_call_handler)],
) -> Response:
    return await _twilio_webhook(request, handler.handle_status)


@router.post("/twilio/voice/recording")
async def twilio_voice_recording(
    request: Request,
    handler: Annotated[InboundCallHandler, Depends(get_inbound_call_handler)],
) -> Response:
    return await _twilio_webhook(request, handler.handle_recording)


@router.post("/telnyx/voice")
async def telnyx_voice(
    request: Request,
    handler: Annotated[InboundCallHandler, Depends(get_inbound_call_handler)],
) -> Response:
    provider = get_telephony_provider(ProviderType.TELNYX)
    cfg = get_telephony_config()

    if cfg.validate_signatures:
        raw = await request.body()
        signature = request.headers.get("telnyx-signature-ed25519", "")
        timestamp = request.headers.get("telnyx-timestamp")
        if not provider.validate_webhook_signature(raw, signature, _signed_url(request, cfg), timestamp=timestamp):
            logger.warning("Rejected Telnyx webhook with invalid signature", extra={"path": request.url.path})
            return _to_response(provider.render_ignored(), status_code=status.HTTP_403_FORBIDDEN)

    try:
        payload = await request.json()
    except ValueError:
        logger.warning("Telnyx webhook body is not JSON")
        payload = {}
    if not isinstance(payload, dict):
        payload = {}
    return _to_response(await handler.handle_voice(provider, payload))
