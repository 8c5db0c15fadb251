"""Tests for phone number validation."""

import pytest

from wapair.errors import PhoneValidationError
from wapair.pairing.phone import (
    INVALID_FORMAT_MESSAGE,
    country_for,
    require_phone_number,
    validate_phone_number,
)


class TestValidatePhoneNumber:
    """Tests for normalization rules."""

    def test_international_number(self):
        """Already international numbers are kept."""
        result = validate_phone_number("+254723278526")
        assert result.is_valid
        assert result.formatted == "+254723278526"
        assert result.country == "KE"

    def test_leading_zero_gets_default_calling_code(self):
        """Trunk prefix 0 is replaced by the default calling code."""
        result = validate_phone_number("0723278526")
        assert result.formatted == "+254723278526"
        assert result.country == "KE"

    def test_bare_subscriber_number(self):
        """A 9-digit national number gets the default calling code."""
        result = validate_phone_number("723278526")
        assert result.formatted == "+254723278526"

    def test_missing_plus_is_added(self):
        """Long numbers without a plus are treated as international."""
        result = validate_phone_number("447911123456")
        assert result.formatted == "+447911123456"
        assert result.country == "GB"

    def test_separators_are_stripped(self):
        """Spaces, dashes and parentheses are ignored."""
        result = validate_phone_number(" +254 (723) 278-526 ")
        assert result.formatted == "+254723278526"

    def test_numeric_input(self):
        """Numbers are accepted, not only strings."""
        result = validate_phone_number(254723278526)
        assert result.formatted == "+254723278526"

    def test_custom_default_calling_code(self):
        """Default calling code is configurable."""
        result = validate_phone_number("0803123456", default_calling_code="234")
        assert result.formatted == "+234803123456"
        assert result.country == "NG"

    @pytest.mark.parametrize("raw", ["12345", "+1234567890123456", "abc-def"])
    def test_invalid_numbers(self, raw):
        """Too short, too long or non-numeric input is rejected."""
        result = validate_phone_number(raw)
        assert not result.is_valid
        assert result.formatted is None
        assert result.error

    @pytest.mark.parametrize(
        "raw", [["254723278526"], {"number": "254723278526"}, 254723278526.0, True]
    )
    def test_non_string_values_rejected(self, raw):
        """Lists, objects, floats and booleans are not phone numbers."""
        result = validate_phone_number(raw)
        assert not result.is_valid
        assert result.formatted is None
        assert result.error == INVALID_FORMAT_MESSAGE

    def test_invalid_message(self):
        """Invalid format message shows the accepted forms."""
        assert validate_phone_number("12345").error == INVALID_FORMAT_MESSAGE

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_missing_number(self, raw):
        """Missing input is reported as required."""
        result = validate_phone_number(raw)
        assert not result.is_valid
        assert result.error == "Phone number is required"


class TestCountryFor:
    """Tests for calling code lookup."""

    def test_longest_prefix_wins(self):
        """Three-digit codes take precedence over shorter ones."""
        assert country_for("254723278526") == "KE"
        assert country_for("255712345678") == "TZ"

    def test_unknown_uses_default(self):
        """Unknown calling codes fall back to the default."""
        assert country_for("999123456", default="KE") == "KE"


class TestRequirePhoneNumber:
    """Tests for the raising variant."""

    def test_returns_result_when_valid(self):
        assert require_phone_number("+254723278526").formatted == "+254723278526"

    def test_raises_when_invalid(self):
        with pytest.raises(PhoneValidationError, match="Invalid phone number format"):
            require_phone_number("123")
