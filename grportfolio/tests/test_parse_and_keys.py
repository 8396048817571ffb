from __future__ import annotations

import datetime as dt

import pytest

from grportfolio.etl.keys import client_key
from grportfolio.etl.parse import clean_string, parse_currency, parse_date, parse_revenue_amount


def test_parse_currency_cases():
    assert parse_currency("$1,234.50") == 1234.5
    assert parse_currency("$60,000.0") == 60000.0
    assert parse_currency("(2,000)") == -2000.0
    assert parse_currency(250) == 250.0
    assert parse_currency(None) == 0.0
    assert parse_currency("n/a") == 0.0
    assert parse_currency(float("nan")) == 0.0
    assert parse_currency(True) == 0.0


def test_parse_revenue_amount_never_negative():
    assert parse_revenue_amount("(500)") == 0.0
    assert parse_revenue_amount("-5") == 0.0
    assert parse_revenue_amount("") == 0.0
    assert parse_revenue_amount("€1,000") == 1000.0


@pytest.mark.parametrize(
    "text,expected",
    [
        ("1/2/25", dt.date(2025, 1, 2)),
        ("2/1/2026", dt.date(2026, 2, 1)),
        ("2024-01-31", dt.date(2024, 1, 31)),
        ("2024/03/05", dt.date(2024, 3, 5)),
        ("Jan 5 2025", dt.date(2025, 1, 5)),
        ("garbage", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_date(text, expected):
    assert parse_date(text) == expected


def test_clean_string():
    assert clean_string(" A\nB\t  C ") == "A B C"
    assert clean_string("1/1/25 – 12/31/25") == "1/1/25 - 12/31/25"
    assert clean_string(float("nan")) == ""


def test_client_key_deterministic_per_user():
    k1 = client_key(1, "Acme Corp")
    assert k1 == client_key("1", "  acme   CORP ")
    assert k1.startswith("client_") and len(k1) == len("client_") + 24
    assert k1 != client_key(2, "Acme Corp")
    with pytest.raises(ValueError):
        client_key(1, "   ")


@pytest.mark.parametrize("text", ["1e400", "-1e400", "(1e400)", "Infinity", "NaN"])
def test_out_of_range_amounts_collapse_to_zero(text):
    assert parse_currency(text) == 0.0
    assert parse_revenue_amount(text) == 0.0
