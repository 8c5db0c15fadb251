"""Pairing code issuance and phone number validation."""

from wapair.pairing.phone import PhoneValidation, require_phone_number, validate_phone_number
from wapair.pairing.registry import (
    CODE_ALPHABET,
    CODE_LENGTH,
    CodeStatus,
    PairingCodeEntry,
    PairingCodeRegistry,
    format_display_code,
)

__all__ = [
    "CODE_ALPHABET",
    "CODE_LENGTH",
    "CodeStatus",
    "PairingCodeEntry",
    "PairingCodeRegistry",
    "PhoneValidation",
    "format_display_code",
    "require_phone_number",
    "validate_phone_number",
]
