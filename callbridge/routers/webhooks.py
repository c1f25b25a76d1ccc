import json
from functools import partial
from typing import Any, Callable, Mapping, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from callbridge.config import Settings, get_settings
from callbridge.logging_config import get_logger
from callbridge.schemas.events import SourcePlatform
from callbridge.services.classifier import classify
from callbridge.services.errors import BadPayload, UnhandledEventType
from callbridge.services.relay_service import RelayEngine
from callbridge.services.webhook_security import (
    WebhookVerification,
    verify_openphone_signature,
    verify_plain_signature,
)

logger = get_logger("webhooks")

router = APIRouter()

Verifier = Callable[[Optional[str], bytes, Mapping[str, str]], WebhookVerification]


def get_relay_engine(settings: Settings = Depends(get_settings)) -> RelayEngine:
    return RelayEngine.from_settings(settings)


def decode_envelope(raw: bytes) -> Any:
    """Decode a webhook body, tolerating non-utf-8 bytes in string fields."""
    try:
        return json.loads(raw.decode("utf-8", errors="replace"))
    except ValueError as e:
        raise BadPayload(f"Webhook body is not valid JSON: {e}") from e


async def relay_webhook(
    source: SourcePlatform,
    request: Request,
    engine: RelayEngine,
    secret: Optional[str],
    verify: Verifier,
) -> PlainTextResponse:
    """
    Shared webhook flow for both platforms:
    - dispatched, unhandled type, no-op, malformed -> 200 "OK" (sender must not retry)
    - anything else that fails -> 500 so the sender's own retry policy applies
    """
    try:
        raw = await request.body()

        verification = verify(secret, raw, request.headers)
        if not verification.verified:
            logger.warning(f"Rejected {source.value} webhook signature: {verification.reason}")
            return PlainTextResponse("Unauthorized", status_code=401)

        envelope = decode_envelope(raw)
        logger.debug(f"{source.value} webhook received: {envelope}")

        event = classify(source, envelope)
        outcome = await engine.dispatch(event)
        logger.info(
            f"{source.value} webhook handled: {outcome.status.value}",
            extra={"context": outcome.as_context()},
        )
        return PlainTextResponse("OK")

    except (BadPayload, UnhandledEventType) as e:
        logger.warning(f"Acknowledged {source.value} webhook without relaying: {e.message}")
        return PlainTextResponse("OK")

    except Exception as e:
        logger.error(f"Error handling {source.value} webhook: {e}", exc_info=True)
        return PlainTextResponse("Internal server error", status_code=500)


@router.post("/webhooks/telephony")
async def handle_telephony_webhook(
    request: Request,
    engine: RelayEngine = Depends(get_relay_engine),
    settings: Settings = Depends(get_settings),
):
    """OpenPhone events: call.completed, call.transcript.completed, message.received."""
    return await relay_webhook(
        SourcePlatform.TELEPHONY,
        request,
        engine,
        settings.openphone_webhook_secret,
        partial(verify_openphone_signature, max_age_seconds=settings.webhook_signature_max_age_seconds),
    )


@router.post("/webhooks/ticketing")
async def handle_ticketing_webhook(
    request: Request,
    engine: RelayEngine = Depends(get_relay_engine),
    settings: Settings = Depends(get_settings),
):
    """Plain events: thread.chat_sent."""
    return await relay_webhook(
        SourcePlatform.TICKETING, request, engine, settings.plain_webhook_secret, verify_plain_signature
    )


# Provider-named aliases, matching the URLs configured in the OpenPhone and Plain dashboards
@router.post("/webhooks/openphone")
async def handle_openphone_webhook(
    request: Request,
    engine: RelayEngine = Depends(get_relay_engine),
    settings: Settings = Depends(get_settings),
):
    return await handle_telephony_webhook(request, engine, settings)


@router.post("/webhooks/plain")
async def handle_plain_webhook(
    request: Request,
    engine: RelayEngine = Depends(get_relay_engine),
    settings: Settings = Depends(get_settings),
):
    return await handle_ticketing_webhook(request, engine, settings)
