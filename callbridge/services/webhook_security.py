import base64
import binascii
import hashlib
import hmac
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Mapping, Optional

OPENPHONE_SIGNATURE_HEADER = "openphone-signature"
PLAIN_SIGNATURE_HEADER = "Plain-Request-Signature"
DEFAULT_MAX_AGE_SECONDS = 300


@dataclass(frozen=True)
class WebhookVerification:
    verified: bool
    reason: Optional[str] = None


def _header(headers: Mapping[str, str], key: str) -> Optional[str]:
    value = headers.get(key)
    if value is None:
        lowered_key = key.lower()
        for header_key, header_value in headers.items():
            if header_key.lower() == lowered_key:
                value = header_value
                break
    if value is None:
        return None
    normalized = value.strip()
    return normalized or None


def verify_openphone_signature(
    secret: Optional[str],
    body: bytes,
    headers: Mapping[str, str],
    max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
    now: Optional[datetime] = None,
) -> WebhookVerification:
    """Check `openphone-signature: hmac;<version>;<timestamp>;<base64 digest>`.

    The digest is HMAC-SHA256 over `<timestamp>.<body>` keyed with the
    base64-decoded signing secret. The timestamp is in milliseconds and must be
    within `max_age_seconds` of `now`. No secret configured means no check.
    """
    if not secret:
        return WebhookVerification(verified=True)

    provided = _header(headers, OPENPHONE_SIGNATURE_HEADER)
    if provided is None:
        return WebhookVerification(verified=False, reason="signature_missing")

    parts = provided.split(";")
    if len(parts) != 4 or parts[0] != "hmac":
        return WebhookVerification(verified=False, reason="signature_malformed")
    _, _version, timestamp, digest = parts

    try:
        timestamp_ms = int(timestamp)
    except ValueError:
        return WebhookVerification(verified=False, reason="timestamp_invalid")

    current_time = now or datetime.now(timezone.utc)
    age_seconds = abs(current_time.timestamp() - timestamp_ms / 1000)
    if age_seconds > max(0, max_age_seconds):
        return WebhookVerification(verified=False, reason="timestamp_out_of_window")

    try:
        key = base64.b64decode(secret)
    except (binascii.Error, ValueError):
        return WebhookVerification(verified=False, reason="secret_malformed")

    signed = timestamp.encode("utf-8") + b"." + body
    expected = base64.b64encode(hmac.new(key, signed, hashlib.sha256).digest()).decode("ascii")
    if not hmac.compare_digest(expected, digest):
        return WebhookVerification(verified=False, reason="signature_mismatch")
    return WebhookVerification(verified=True)


def verify_plain_signature(secret: Optional[str], body: bytes, headers: Mapping[str, str]) -> WebhookVerification:
    """Check Plain's hex HMAC-SHA256 of the raw body."""
    if not secret:
        return WebhookVerification(verified=True)

    provided = _header(headers, PLAIN_SIGNATURE_HEADER)
    if provided is None:
        return WebhookVerification(verified=False, reason="signature_missing")

    expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    if not hmac.compare_digest(expected, provided.lower()):
        return WebhookVerification(verified=False, reason="signature_mismatch")
    return WebhookVerification(verified=True)
