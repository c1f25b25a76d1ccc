from typing import Any, Callable, Union

from pydantic import BaseModel, ValidationError

from callbridge.logging_config import get_logger
from callbridge.schemas.events import (
    CallCompleted,
    CallTranscriptCompleted,
    EventType,
    InboundEvent,
    MessageReceived,
    SourcePlatform,
    ThreadChatSent,
    UnhandledEvent,
)
from callbridge.schemas.openphone import OpenPhoneCall, OpenPhoneCallTranscript, OpenPhoneMessage, OpenPhoneWebhook
from callbridge.schemas.plain import PlainChatSentPayload, PlainWebhook
from callbridge.services.errors import BadPayload

logger = get_logger("classifier")

# event type -> (payload model, event constructor)
TELEPHONY_EVENTS: dict[str, tuple[type[BaseModel], Callable[..., InboundEvent]]] = {
    EventType.CALL_COMPLETED.value: (OpenPhoneCall, CallCompleted),
    EventType.CALL_TRANSCRIPT_COMPLETED.value: (OpenPhoneCallTranscript, CallTranscriptCompleted),
    EventType.MESSAGE_RECEIVED.value: (OpenPhoneMessage, MessageReceived),
}

TICKETING_EVENTS: dict[str, tuple[type[BaseModel], Callable[..., InboundEvent]]] = {
    EventType.THREAD_CHAT_SENT.value: (PlainChatSentPayload, ThreadChatSent),
}


def _describe(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors()[:3]:
        location = ".".join(str(part) for part in error.get("loc", ())) or "<root>"
        problems.append(f"{location}: {error.get('msg')}")
    return "; ".join(problems)


def _parse(model: type[BaseModel], data: Any, what: str) -> BaseModel:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise BadPayload(f"Invalid {what}: {_describe(exc)}") from exc


def classify(source: SourcePlatform, envelope: Any) -> Union[InboundEvent, UnhandledEvent]:
    """
    Turn a raw webhook envelope into exactly one typed event.

    - Known type, valid object -> InboundEvent variant
    - Unknown type -> UnhandledEvent (caller acknowledges and stops)
    - Missing/invalid required fields -> BadPayload
    """
    if not isinstance(envelope, dict):
        raise BadPayload("Webhook envelope must be a JSON object")

    if source == SourcePlatform.TELEPHONY:
        webhook = _parse(OpenPhoneWebhook, envelope, "OpenPhone envelope")
        registry = TELEPHONY_EVENTS
        body = webhook.data.object if webhook.data else None
    else:
        webhook = _parse(PlainWebhook, envelope, "Plain envelope")
        registry = TICKETING_EVENTS
        body = webhook.payload

    entry = registry.get(webhook.type)
    if entry is None:
        logger.info(f"Unhandled {source.value} webhook type: {webhook.type}")
        return UnhandledEvent(source=source, event_type=webhook.type, event_id=webhook.id)

    if body is None:
        raise BadPayload(f"{webhook.type} webhook has no event object")

    model, build = entry
    parsed = _parse(model, body, f"{webhook.type} payload")
    return build(parsed, webhook.id)
