from typing import Optional

import phonenumbers

from callbridge.services.errors import InvalidIdentity


def normalize_phone(raw: Optional[str], default_region: Optional[str] = "US") -> str:
    """Return the E.164 form of a phone number or raise InvalidIdentity.

    Only checks that the number is possible (length/prefix), not that it is
    assigned.
    """
    if raw is None or not str(raw).strip():
        raise InvalidIdentity(raw, "empty")

    try:
        parsed = phonenumbers.parse(str(raw).strip(), default_region)
    except phonenumbers.NumberParseException as exc:
        raise InvalidIdentity(raw, str(exc)) from exc

    if not phonenumbers.is_possible_number(parsed):
        raise InvalidIdentity(raw, "not a possible number")

    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)


def placeholder_email(phone_number: str, domain: str) -> str:
    """Deterministic email for customers the ticketing platform requires one for."""
    return f"{phone_number.lstrip('+')}@{domain}"


def national_number(phone_number: str) -> str:
    """Digits without country code or formatting, e.g. `5551234567`."""
    return phonenumbers.national_significant_number(phonenumbers.parse(phone_number, None))


def phone_search_variants(phone_number: str) -> list[str]:
    """Forms a CRM may have stored a number in, E.164 first.

    `+15551234567` -> `+15551234567`, `(555) 123-4567`, `+1 555-123-4567`, `5551234567`.
    """
    parsed = phonenumbers.parse(phone_number, None)
    variants = [
        phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164),
        phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.NATIONAL),
        phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.INTERNATIONAL),
        national_number(phone_number),
    ]
    return list(dict.fromkeys(variants))
