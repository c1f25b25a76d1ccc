from callbridge.services.classifier import classify
from callbridge.services.continuity_service import ThreadContinuityPolicy
from callbridge.services.echo_guard import is_relay_origin
from callbridge.services.errors import (
    BadPayload,
    EnrichmentUnavailable,
    InvalidIdentity,
    RelayError,
    UnhandledEventType,
    UpstreamRejected,
    UpstreamUnavailable,
)
from callbridge.services.identity_service import (
    EnrichmentProvider,
    HubSpotEnrichment,
    IdentityResolver,
    NoEnrichment,
)
from callbridge.services.outcome import OutcomeStatus, RelayOutcome
from callbridge.services.relay_service import RelayEngine
