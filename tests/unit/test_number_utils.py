"""Unit tests for amount normalization and date parsing"""

import pytest
from datetime import date, datetime
from decimal import Decimal
from payroll_recon.utils.number_utils import normalize_amount
from payroll_recon.utils.date_utils import parse_entry_date


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1 234,56", "1234.56"),  # Norwegian, regular space
        ("1\u00a0234,56", "1234.56"),  # non-breaking space
        ("1.234,56", "1234.56"),  # continental thousands dot
        ("1,234.56", "1234.56"),  # US notation
        ("1.234.567", "1234567"),
        ("1,234,567", "1234567"),
        ("(500,00)", "-500.00"),
        ("-42,5", "-42.5"),
        ("\u221242,5", "-42.5"),  # unicode minus
        ("1 000-", "-1000"),  # trailing minus
        ("kr 1 250,00", "1250.00"),
        ("1 234,50 kr.", "1234.50"),
        ("NOK 99.95", "99.95"),
        ("0,50", "0.50"),
        ("kr 1 000,-", "1000"),  # whole kroner, not a minus
        ("1 000,- kr", "1000"),
        ("1000.--", "1000"),
        ("(1 000,-)", "-1000"),
        ("kr (500)", "-500"),  # parentheses inside currency text
        ("(500) kr", "-500"),
        ("kr -1 000,-", "-1000"),
    ],
)
def test_normalize_amount_locale_strings(raw, expected):
    """Test locale-formatted strings parse to the canonical decimal"""
    assert normalize_amount(raw) == Decimal(expected)


def test_normalize_amount_numeric_passthrough():
    """Test numbers keep their value without float noise"""
    assert normalize_amount(1500) == Decimal("1500")
    assert normalize_amount(0.1) == Decimal("0.1")
    assert normalize_amount(Decimal("-12.34")) == Decimal("-12.34")


@pytest.mark.parametrize("raw", [None, "", "   ", "abc", "-", "n/a", float("nan"), float("inf"), True])
def test_normalize_amount_invalid_is_zero(raw):
    """Test empty and unparsable input yields zero"""
    assert normalize_amount(raw) == Decimal("0")


def test_normalize_amount_is_deterministic():
    """Test repeated parsing of the same cell gives the same value"""
    assert normalize_amount("1 234,56") == normalize_amount("1 234,56")


def test_parse_entry_date_formats():
    """Test Norwegian, ISO and native date cells"""
    assert parse_entry_date("31.01.2024") == date(2024, 1, 31)
    assert parse_entry_date("2024-01-31") == date(2024, 1, 31)
    assert parse_entry_date(date(2024, 1, 31)) == date(2024, 1, 31)
    assert parse_entry_date(datetime(2024, 1, 31, 12, 30)) == date(2024, 1, 31)


def test_parse_entry_date_excel_serial():
    """Test Excel serial day numbers"""
    assert parse_entry_date(45322) == date(2024, 1, 31)


@pytest.mark.parametrize("raw", [None, "", "not a date", "99.99.2024", -5])
def test_parse_entry_date_unparsable_is_none(raw):
    """Test unparsable dates are discarded without raising"""
    assert parse_entry_date(raw) is None
