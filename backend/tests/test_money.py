# Overview: Pytest coverage for cent rounding, currency display and the legacy notes codec.

from decimal import Decimal

import pytest

from shopsettle.money import bps_fraction, format_currency, fraction_to_bps, round_cents
from shopsettle.services.legacy_notes import (
    append_settlement_tokens,
    decode_settlement_tokens,
    encode_settlement_tokens,
    strip_settlement_tokens,
)


class TestRounding:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (Decimal("0.5"), 1),
            (Decimal("1.5"), 2),
            (Decimal("2.5"), 3),
            (Decimal("2.4999"), 2),
            (Decimal("-0.4"), 0),
            (Decimal("359.9999"), 360),
            (900, 900),
        ],
    )
    def test_round_cents_half_up(self, value, expected):
        assert round_cents(value) == expected

    def test_bps_conversions(self):
        assert bps_fraction(1000) == Decimal("0.1")
        assert fraction_to_bps("0.125") == 1250
        assert fraction_to_bps(0.1) == 1000
        assert fraction_to_bps(1) == 10000

    @pytest.mark.parametrize("subtotal", [0, 1, 99, 10000, 12345, 999_999])
    @pytest.mark.parametrize("bps", [0, 1, 333, 1000, 5000, 9999, 10000])
    def test_discount_never_exceeds_subtotal(self, subtotal, bps):
        discount = round_cents(Decimal(subtotal) * bps_fraction(bps))
        total = round_cents(max(subtotal - discount, 0))
        assert 0 <= discount <= subtotal
        assert 0 <= total <= subtotal


class TestFormatCurrency:
    def test_known_symbols(self):
        assert format_currency(123456, "USD") == "$1,234.56"
        assert format_currency(5, "GBP") == "£0.05"
        assert format_currency(-250, "EUR") == "-€2.50"

    def test_unknown_currency_uses_code(self):
        assert format_currency(1000, "cad") == "10.00 CAD"


class TestLegacyNotes:
    def test_encode_formats_two_decimals(self):
        text = encode_settlement_tokens(
            profit_total_cents=12050,
            commission_total_cents=1205,
            commission_base_cents=12050,
        )
        assert text == "profit_total=120.50 commission_total=12.05 commission_base=120.50"

    def test_decode_reads_tokens_from_free_text(self):
        notes = "Paint job for the blue Sultan\nprofit_total=120.50 commission_total=12.05 commission_base=120.5"
        assert decode_settlement_tokens(notes) == {
            "profit_total": 12050,
            "commission_total": 1205,
            "commission_base": 12050,
        }

    def test_decode_ignores_lookalike_words(self):
        assert decode_settlement_tokens("my_profit_total=5 and profit_total=abc") == {}
        assert decode_settlement_tokens(None) == {}

    def test_append_replaces_existing_tokens(self):
        notes = "Customer paid cash\nprofit_total=1.00 commission_total=0.10"
        updated = append_settlement_tokens(
            notes,
            profit_total_cents=500,
            commission_total_cents=50,
            commission_base_cents=500,
        )
        assert updated == "Customer paid cash\nprofit_total=5.00 commission_total=0.50 commission_base=5.00"
        assert strip_settlement_tokens(updated) == "Customer paid cash"

    def test_append_to_empty_notes(self):
        assert append_settlement_tokens(None, profit_total_cents=0) == "profit_total=0.00"
