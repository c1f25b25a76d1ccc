from typing import Awaitable, Callable, Optional, Union

from callbridge.config import Settings
from callbridge.logging_config import bind_logger, get_logger
from callbridge.schemas.events import (
    CallCompleted,
    CallTranscriptCompleted,
    EventType,
    InboundEvent,
    MessageReceived,
    ThreadChatSent,
    UnhandledEvent,
)
from callbridge.schemas.openphone import OpenPhoneCall, OpenPhoneCallTranscript, OpenPhoneMedia
from callbridge.services.continuity_service import ThreadContinuityPolicy
from callbridge.services.echo_guard import RELAY_ACTOR_TYPE, is_relay_origin
from callbridge.services.errors import InvalidIdentity, UnhandledEventType
from callbridge.services.hubspot_service import HubSpotService
from callbridge.services.identity_service import HubSpotEnrichment, IdentityResolver, NoEnrichment
from callbridge.services.openphone_service import OpenPhoneService
from callbridge.services.outcome import RelayOutcome
from callbridge.services.plain_service import PlainService

logger = get_logger("relay_service")


def format_call_title(direction: str, phone_number: str) -> str:
    return f"Call {'from' if direction == 'incoming' else 'to'} {phone_number}"


def format_call_summary(call: OpenPhoneCall) -> str:
    minutes, seconds = divmod(call.duration, 60)
    lines = [
        f"Call Duration: {minutes}m {seconds}s",
        f"Direction: {call.direction}",
        f"Status: {call.status}",
        f"Started: {call.createdAt}",
    ]
    if call.completedAt:
        lines.append(f"Ended: {call.completedAt}")
    return "\n".join(lines)


def format_transcript(transcript: OpenPhoneCallTranscript) -> str:
    return "\n".join(f"{line.identifier}: {line.content}" for line in transcript.dialogue)


def format_sms_thread_title(phone_number: str) -> str:
    return f"SMS conversation with {phone_number}"


def flatten_media(body: Optional[str], media: list[OpenPhoneMedia]) -> str:
    """Plain chats take text only, so attachments go in as `type: url` lines."""
    text = body or ""
    if not media:
        return text
    media_lines = "\n".join(f"{item.type}: {item.url}" for item in media)
    return f"{text}\n\n{media_lines}" if text else media_lines


Handler = Callable[..., Awaitable[None]]


class RelayEngine:
    """Routes classified webhook events to the handler for their direction."""

    def __init__(
        self,
        plain: PlainService,
        openphone: OpenPhoneService,
        identity: IdentityResolver,
        continuity: ThreadContinuityPolicy,
        relay_actor_type: str = RELAY_ACTOR_TYPE,
    ):
        self.plain = plain
        self.openphone = openphone
        self.identity = identity
        self.continuity = continuity
        self.relay_actor_type = relay_actor_type
        self._handlers: dict[EventType, Handler] = {
            EventType.CALL_COMPLETED: self.handle_call_completed,
            EventType.CALL_TRANSCRIPT_COMPLETED: self.handle_call_transcript,
            EventType.MESSAGE_RECEIVED: self.handle_message_received,
            EventType.THREAD_CHAT_SENT: self.handle_thread_chat_sent,
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "RelayEngine":
        plain = PlainService(settings.plain_api_key, settings.plain_api_url, settings.http_timeout_seconds)
        openphone = OpenPhoneService(
            settings.openphone_api_key,
            settings.openphone_from_number,
            settings.openphone_api_url,
            settings.http_timeout_seconds,
        )
        if settings.enrichment_enabled:
            enrichment = HubSpotEnrichment(
                HubSpotService(settings.hubspot_api_key, settings.hubspot_api_url, settings.hubspot_timeout_seconds)
            )
        else:
            enrichment = NoEnrichment()

        identity = IdentityResolver(
            plain,
            enrichment,
            placeholder_email_domain=settings.placeholder_email_domain,
            default_region=settings.default_phone_region,
        )
        continuity = ThreadContinuityPolicy(
            plain,
            window=settings.continuity_window,
            lookup_limit=settings.thread_lookup_limit,
        )
        return cls(plain, openphone, identity, continuity, relay_actor_type=settings.relay_actor_type)

    async def dispatch(self, event: Union[InboundEvent, UnhandledEvent]) -> RelayOutcome:
        """Run the handler for one event and report what it did.

        Handler failures propagate unchanged; the steps completed before the
        failure are logged so partial writes can be traced.
        """
        if isinstance(event, UnhandledEvent):
            return RelayOutcome.unhandled(event.event_type)

        log = bind_logger("relay", event_type=event.event_type.value, event_id=event.event_id)
        outcome = RelayOutcome(event_type=event.event_type.value)
        handler = self._handlers.get(event.event_type)
        if handler is None:
            raise UnhandledEventType(event.event_type.value)

        try:
            await handler(event, outcome)
        except Exception as e:
            log.error(
                f"Relay failed: {e}",
                context={"completed_steps": list(outcome.steps), "error_code": getattr(e, "code", "unknown")},
            )
            raise

        log.info("Relay finished", context=outcome.as_context())
        return outcome

    async def handle_call_completed(self, event: CallCompleted, outcome: RelayOutcome) -> None:
        """Every completed call gets its own new thread with a summary event."""
        call = event.call
        customer = await self.identity.resolve(call.counterparty)
        outcome.customer_id = customer.id
        outcome.record("customer_upserted")

        title = format_call_title(call.direction, customer.external_id)
        thread = await self.plain.create_thread(customer.id, title)
        outcome.thread_id = thread.id
        outcome.record("thread_created")

        await self.plain.create_thread_event(thread.id, "Call Completed", format_call_summary(call))
        outcome.record("call_summary_added")

    async def handle_call_transcript(self, event: CallTranscriptCompleted, outcome: RelayOutcome) -> None:
        # Logged only; transcripts are not written into threads.
        transcript = event.transcript
        logger.info(
            f"Call transcript ready for call {transcript.callId}:\n{format_transcript(transcript)}",
            extra={"context": {"call_id": transcript.callId, "lines": len(transcript.dialogue)}},
        )
        outcome.record("transcript_logged")

    async def handle_message_received(self, event: MessageReceived, outcome: RelayOutcome) -> None:
        message = event.message
        text = flatten_media(message.body, message.media)
        if not text:
            outcome.skip("empty_message")
            return

        logger.info(f"Processing message from {message.from_number}")

        customer = await self.identity.resolve(message.from_number)
        outcome.customer_id = customer.id
        outcome.record("customer_upserted")

        thread = await self.continuity.find_reusable_thread(customer.id)
        if thread is None:
            thread = await self.plain.create_thread(customer.id, format_sms_thread_title(customer.external_id))
            outcome.record("thread_created")
            logger.info(f"New thread created: {thread.id}")
        else:
            outcome.record("thread_reused")
            logger.info(f"Using existing thread: {thread.id}")
        outcome.thread_id = thread.id

        # send_chat, not send_customer_chat: relayed SMS must be authored by the
        # relay actor so the echo guard recognizes it on the thread.chat_sent echo.
        await self.plain.send_chat(thread.id, text, customer.id)
        outcome.record("message_relayed")

    async def handle_thread_chat_sent(self, event: ThreadChatSent, outcome: RelayOutcome) -> None:
        """Agent reply in Plain -> SMS to the customer, unless we wrote it ourselves."""
        if not event.phone_number or not event.text:
            logger.info("Missing phone number or message in Plain webhook")
            outcome.skip("missing_phone_or_text")
            return

        if is_relay_origin(event.actor_type, self.relay_actor_type):
            logger.info("Skipping message created by relay actor (avoiding echo loop)")
            outcome.skip("echo_suppressed")
            return

        try:
            to_number = self.identity.normalize(event.phone_number)
        except InvalidIdentity:
            # Customers created outside this relay may carry non-phone external ids
            logger.warning(f"Thread customer external id is not a phone number: {event.phone_number!r}")
            outcome.skip("external_id_not_a_phone")
            return

        await self.openphone.send_sms(to_number, event.text)
        outcome.record("sms_sent")
