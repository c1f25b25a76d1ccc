from callbridge.schemas.events import (
    CallCompleted,
    CallTranscriptCompleted,
    InboundEvent,
    MessageReceived,
    SourcePlatform,
    ThreadChatSent,
    UnhandledEvent,
)
from callbridge.schemas.records import ConversationThread, Customer, Enrichment

__all__ = [
    "CallCompleted",
    "CallTranscriptCompleted",
    "ConversationThread",
    "Customer",
    "Enrichment",
    "InboundEvent",
    "MessageReceived",
    "SourcePlatform",
    "ThreadChatSent",
    "UnhandledEvent",
]
