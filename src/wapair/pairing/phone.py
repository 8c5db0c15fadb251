"""Phone number validation at the HTTP boundary.

Numbers are normalized to E.164-style ``+<digits>``. Local numbers (a
leading 0, or a bare 9-digit subscriber number) get the configured default
calling code. Country is resolved from the calling code by longest prefix.
"""

import re
from dataclasses import dataclass
from typing import Optional

from wapair.errors import PhoneValidationError

MIN_DIGITS = 9
MAX_DIGITS = 15
NATIONAL_DIGITS = 9  # Subscriber number without trunk prefix, e.g. 723278526

INVALID_FORMAT_MESSAGE = "Invalid phone number format. Use: 723278526 or +254723278526"

_STRIP_PATTERN = re.compile(r"[^\d+]")

# Calling code -> ISO 3166-1 alpha-2. Shared codes (1, 7) map to the
# largest member.
CALLING_CODES = {
    "1": "US",
    "7": "RU",
    "20": "EG",
    "27": "ZA",
    "31": "NL",
    "33": "FR",
    "34": "ES",
    "39": "IT",
    "44": "GB",
    "49": "DE",
    "52": "MX",
    "55": "BR",
    "61": "AU",
    "62": "ID",
    "63": "PH",
    "81": "JP",
    "86": "CN",
    "90": "TR",
    "91": "IN",
    "92": "PK",
    "234": "NG",
    "233": "GH",
    "250": "RW",
    "251": "ET",
    "252": "SO",
    "254": "KE",
    "255": "TZ",
    "256": "UG",
    "257": "BI",
    "260": "ZM",
    "263": "ZW",
    "971": "AE",
    "966": "SA",
}


@dataclass(frozen=True)
class PhoneValidation:
    """Result of validating a phone number."""

    is_valid: bool
    formatted: Optional[str] = None
    country: Optional[str] = None
    error: Optional[str] = None


def country_for(digits: str, default: Optional[str] = None) -> Optional[str]:
    """Resolve a country from a digit string by longest calling-code prefix."""
    for length in (3, 2, 1):
        country = CALLING_CODES.get(digits[:length])
        if country:
            return country
    return default


def validate_phone_number(
    raw: object,
    default_calling_code: str = "254",
    default_country: Optional[str] = "KE",
) -> PhoneValidation:
    """Validate and normalize a phone number.

    Args:
        raw: User input. Only strings and integers are accepted.
        default_calling_code: Calling code for local numbers starting with 0.
        default_country: Country used when the calling code is unknown.

    Returns:
        PhoneValidation with ``formatted`` as ``+<digits>`` when valid.
    """
    if raw is None:
        return PhoneValidation(is_valid=False, error="Phone number is required")
    if isinstance(raw, bool) or not isinstance(raw, (str, int)):
        return PhoneValidation(is_valid=False, error=INVALID_FORMAT_MESSAGE)

    clean = _STRIP_PATTERN.sub("", str(raw).strip())
    if not clean:
        return PhoneValidation(is_valid=False, error="Phone number is required")

    if clean.startswith("0") and len(clean) >= MIN_DIGITS:
        clean = f"+{default_calling_code}{clean[1:]}"
    elif not clean.startswith("+") and len(clean) == NATIONAL_DIGITS:
        clean = f"+{default_calling_code}{clean}"
    elif not clean.startswith("+") and len(clean) >= MIN_DIGITS:
        clean = f"+{clean}"

    digits = re.sub(r"\D", "", clean)
    if not MIN_DIGITS <= len(digits) <= MAX_DIGITS:
        return PhoneValidation(is_valid=False, error=INVALID_FORMAT_MESSAGE)

    return PhoneValidation(
        is_valid=True,
        formatted=f"+{digits}",
        country=country_for(digits, default_country),
    )


def require_phone_number(raw: object, **kwargs) -> PhoneValidation:
    """Like :func:`validate_phone_number` but raises on invalid input.

    Raises:
        PhoneValidationError: With a user-facing message.
    """
    result = validate_phone_number(raw, **kwargs)
    if not result.is_valid:
        raise PhoneValidationError(result.error or INVALID_FORMAT_MESSAGE)
    return result
