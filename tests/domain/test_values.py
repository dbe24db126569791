"""
Unit tests for pt-BR amount and date handling.

Verifies:
- Thousands/decimal separator parsing
- Blank and garbage input coerce to zero
- R$ formatting with grouping and sign
- Store timestamps parse to dates
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from capex_kernel.domain.values import (
    format_brl,
    format_date,
    iso_date,
    parse_brl,
    parse_date,
)


class TestParseBrl:
    """Tests for parse_brl."""

    def test_thousands_and_decimal_separators(self):
        assert parse_brl("1.234.567,89") == Decimal("1234567.89")

    def test_currency_symbol_is_stripped(self):
        assert parse_brl("R$ 400.000,00") == Decimal("400000.00")

    def test_plain_integer_string(self):
        assert parse_brl("1200000") == Decimal("1200000")

    @pytest.mark.parametrize("value", [None, "", "   ", "abc", "R$"])
    def test_blank_or_non_numeric_is_zero(self, value):
        assert parse_brl(value) == Decimal("0")

    def test_numbers_pass_through(self):
        assert parse_brl(1500) == Decimal("1500")
        assert parse_brl(12.5) == Decimal("12.5")
        assert parse_brl(Decimal("3.14")) == Decimal("3.14")

    def test_dot_is_a_thousands_separator(self):
        """A dot never marks decimals in pt-BR input."""
        assert parse_brl("12.5") == Decimal("125")

    @pytest.mark.parametrize("value, expected", [
        ("-500,00", Decimal("-500.00")),
        (" -1.200.000", Decimal("-1200000")),
        ("R$ -400,00", Decimal("-400.00")),
        ("-R$ 400,00", Decimal("-400.00")),
    ])
    def test_leading_minus_is_kept(self, value, expected):
        assert parse_brl(value) == expected

    def test_inner_hyphen_is_not_a_sign(self):
        assert parse_brl("1.000-00") == Decimal("100000")


class TestFormatBrl:
    """Tests for format_brl."""

    def test_grouping_and_decimals(self):
        assert format_brl(Decimal("1234567.891")) == "R$ 1.234.567,89"

    def test_small_amount(self):
        assert format_brl(Decimal("5")) == "R$ 5,00"

    def test_zero(self):
        assert format_brl(0) == "R$ 0,00"

    def test_negative_prefix(self):
        assert format_brl(Decimal("-1000")) == "-R$ 1.000,00"

    def test_rounds_half_up(self):
        assert format_brl(Decimal("0.005")) == "R$ 0,01"


class TestDates:
    """Tests for parse_date / format_date / iso_date."""

    def test_iso_string(self):
        assert parse_date("2024-03-01") == date(2024, 3, 1)

    def test_store_timestamp(self):
        assert parse_date("2024-03-01T03:00:00Z") == date(2024, 3, 1)

    def test_datetime_and_date_pass_through(self):
        assert parse_date(datetime(2024, 3, 1, 15, 30)) == date(2024, 3, 1)
        assert parse_date(date(2024, 3, 1)) == date(2024, 3, 1)

    @pytest.mark.parametrize("value", [None, "", "01/03/2024", "2024-13-45"])
    def test_blank_or_invalid_is_none(self, value):
        assert parse_date(value) is None

    def test_format_date(self):
        assert format_date("2026-01-15") == "15/01/2026"
        assert format_date(None) == ""
        assert format_date("garbage") == ""

    def test_iso_date(self):
        assert iso_date(date(2025, 6, 1)) == "2025-06-01"
        assert iso_date(None) is None
