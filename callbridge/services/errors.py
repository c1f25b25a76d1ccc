from typing import Optional


class RelayError(Exception):
    """Base class for failures raised while relaying one webhook event."""

    code = "relay_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class BadPayload(RelayError):
    """Envelope is malformed for its claimed type. Acknowledged, never retried here."""

    code = "bad_payload"


class UnhandledEventType(RelayError):
    """Envelope is well formed but no handler exists for its type."""

    code = "unhandled_event_type"

    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(f"Unhandled event type: {event_type}")


class InvalidIdentity(RelayError):
    code = "invalid_identity"

    def __init__(self, raw_number: Optional[str], reason: str = "not a phone number"):
        self.raw_number = raw_number
        super().__init__(f"Invalid phone number {raw_number!r}: {reason}")


class UpstreamUnavailable(RelayError):
    """Telephony or ticketing call failed. Surfaced as 500 so the sender retries."""

    code = "upstream_unavailable"

    def __init__(self, service: str, message: str, status_code: Optional[int] = None):
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service} API error: {message}")


class UpstreamRejected(UpstreamUnavailable):
    """The platform answered but refused the write (GraphQL mutation `error`)."""

    def __init__(self, service: str, message: str, error_code: Optional[str] = None):
        self.error_code = error_code
        super().__init__(service, message)


class EnrichmentUnavailable(RelayError):
    """CRM lookup failed. Absorbed by the identity resolver."""

    code = "enrichment_unavailable"
