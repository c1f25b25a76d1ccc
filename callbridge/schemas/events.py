from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from callbridge.schemas.openphone import OpenPhoneCall, OpenPhoneCallTranscript, OpenPhoneMessage
from callbridge.schemas.plain import PlainChatSentPayload


class SourcePlatform(str, Enum):
    TELEPHONY = "telephony"
    TICKETING = "ticketing"


class EventType(str, Enum):
    CALL_COMPLETED = "call.completed"
    CALL_TRANSCRIPT_COMPLETED = "call.transcript.completed"
    MESSAGE_RECEIVED = "message.received"
    THREAD_CHAT_SENT = "thread.chat_sent"


@dataclass(frozen=True)
class CallCompleted:
    call: OpenPhoneCall
    event_id: Optional[str] = None
    source = SourcePlatform.TELEPHONY
    event_type = EventType.CALL_COMPLETED


@dataclass(frozen=True)
class CallTranscriptCompleted:
    transcript: OpenPhoneCallTranscript
    event_id: Optional[str] = None
    source = SourcePlatform.TELEPHONY
    event_type = EventType.CALL_TRANSCRIPT_COMPLETED


@dataclass(frozen=True)
class MessageReceived:
    message: OpenPhoneMessage
    event_id: Optional[str] = None
    source = SourcePlatform.TELEPHONY
    event_type = EventType.MESSAGE_RECEIVED


@dataclass(frozen=True)
class ThreadChatSent:
    payload: PlainChatSentPayload
    event_id: Optional[str] = None
    source = SourcePlatform.TICKETING
    event_type = EventType.THREAD_CHAT_SENT

    @property
    def phone_number(self) -> Optional[str]:
        customer = self.payload.thread.customer
        return customer.externalId if customer else None

    @property
    def text(self) -> Optional[str]:
        return self.payload.chat.text

    @property
    def actor_type(self) -> Optional[str]:
        created_by = self.payload.chat.createdBy
        return created_by.actorType if created_by else None


@dataclass(frozen=True)
class UnhandledEvent:
    """Well-formed envelope with a type we do not relay. Acknowledged, no work."""

    source: SourcePlatform
    event_type: str
    event_id: Optional[str] = None


InboundEvent = Union[CallCompleted, CallTranscriptCompleted, MessageReceived, ThreadChatSent]
