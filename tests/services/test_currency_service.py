"""
Tests for currency reconciliation.

Covers:
- Rate lookups (identity, missing pairs)
- Merging per-currency balances into one target currency
- Drift bound and absorption
- Reconciled payment plans
"""
from decimal import Decimal
from unittest.mock import patch

import pytest

from groupsettle.core.errors import InvariantViolation, MissingExchangeRate
from groupsettle.services.currency_service import (
    RateTable,
    base_currency_amount,
    get_rate_table,
    reconcile,
    reconciled_plan,
)


@pytest.fixture
def rates():
    return RateTable({"EUR": {"USD": 1.1}, "usd": {"eur": 0.9}, "JPY": {"USD": 0.0067}})


def test_same_currency_rate_is_one(rates):
    assert rates.rate("GBP", "gbp") == Decimal("1")


def test_missing_rate_raises(rates):
    with pytest.raises(MissingExchangeRate) as exc_info:
        rates.rate("GBP", "USD")

    assert exc_info.value.from_currency == "GBP"
    assert exc_info.value.to_currency == "USD"


def test_rates_are_case_insensitive(rates):
    assert rates.rate("usd", "EUR") == Decimal("0.9")
    assert rates.convert(10, "eur", "usd") == Decimal("11.0")
    assert rates.currencies() == ["EUR", "JPY", "USD"]


def test_base_currency_amount_rounds_half_up(rates):
    assert base_currency_amount(100, "EUR", "USD", rates) == Decimal("110.00")
    assert base_currency_amount(10, "JPY", "USD", rates) == Decimal("0.07")


def test_get_rate_table_reads_settings():
    with patch("groupsettle.services.currency_service.settings") as mock_settings:
        mock_settings.EXCHANGE_RATES = {"CHF": {"USD": 1.12}}
        table = get_rate_table()

    assert table.rate("CHF", "USD") == Decimal("1.12")


def test_reconcile_merges_currencies(rates, users):
    alice, bob, carol = users["alice"], users["bob"], users["carol"]
    balances = {
        "USD": {alice: Decimal("60"), bob: Decimal("-30"), carol: Decimal("-30")},
        "EUR": {bob: Decimal("20"), carol: Decimal("-20")},
    }

    unified = reconcile(balances, "usd", rates)

    assert unified == {alice: Decimal("60"), bob: Decimal("-8"), carol: Decimal("-52")}
    # Per-currency input is left untouched
    assert balances["EUR"] == {bob: Decimal("20"), carol: Decimal("-20")}


def test_reconcile_is_additive(rates, users):
    alice, bob = users["alice"], users["bob"]
    usd = {alice: Decimal("12.5"), bob: Decimal("-12.5")}
    eur = {alice: Decimal("-4"), bob: Decimal("4")}

    merged = reconcile({"USD": usd, "EUR": eur}, "USD", rates)
    separate_usd = reconcile({"USD": usd}, "USD", rates)
    separate_eur = reconcile({"EUR": eur}, "USD", rates)

    for user_id in (alice, bob):
        assert merged[user_id] == separate_usd[user_id] + separate_eur[user_id]


def test_reconcile_fails_whole_request_on_missing_rate(rates, users):
    alice, bob = users["alice"], users["bob"]
    balances = {
        "USD": {alice: Decimal("5"), bob: Decimal("-5")},
        "GBP": {alice: Decimal("1"), bob: Decimal("-1")},
    }

    with pytest.raises(MissingExchangeRate) as exc_info:
        reconcile(balances, "USD", rates)

    assert exc_info.value.from_currency == "GBP"


def test_reconcile_absorbs_small_drift(rates, users):
    alice, bob = users["alice"], users["bob"]
    balances = {"USD": {alice: Decimal("100"), bob: Decimal("-99.995")}}

    unified = reconcile(balances, "USD", rates)

    assert sum(unified.values()) == Decimal("0")
    assert unified[bob] == Decimal("-99.995")


def test_reconcile_rejects_drift_beyond_bound(rates, users):
    alice, bob = users["alice"], users["bob"]
    balances = {"USD": {alice: Decimal("100"), bob: Decimal("-50")}}

    with pytest.raises(InvariantViolation) as exc_info:
        reconcile(balances, "USD", rates, drift_tolerance=0.01)

    assert exc_info.value.currency == "USD"
    assert exc_info.value.drift == Decimal("50")


def test_reconciled_plan_simplifies_once(rates, users):
    alice, bob, carol = users["alice"], users["bob"], users["carol"]
    balances = {
        "USD": {alice: Decimal("60"), bob: Decimal("-30"), carol: Decimal("-30")},
        "EUR": {bob: Decimal("20"), carol: Decimal("-20")},
    }

    plan = reconciled_plan(balances, "USD", rates)

    assert [(p.from_user_id, p.to_user_id, p.amount, p.currency) for p in plan] == [
        (carol, alice, Decimal("52.00"), "USD"),
        (bob, alice, Decimal("8.00"), "USD"),
    ]
