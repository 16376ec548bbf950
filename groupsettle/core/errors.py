"""Settlement engine error taxonomy."""


class SettlementError(Exception):
    """Base class for ledger and settlement errors."""
    pass


class InvariantViolation(SettlementError):
    """Balances for a currency do not sum to zero beyond tolerance."""

    def __init__(self, message: str, currency: str | None = None, drift=None):
        super().__init__(message)
        self.currency = currency
        self.drift = drift


class MissingExchangeRate(SettlementError):
    """No rate configured for a currency pair."""

    def __init__(self, from_currency: str, to_currency: str):
        super().__init__(f"No exchange rate configured for {from_currency} -> {to_currency}")
        self.from_currency = from_currency
        self.to_currency = to_currency


class DuplicateSettlementAttempt(SettlementError):
    """
    The payment was already recorded as completed.

    Callers treat this as an idempotent success and answer with
    `existing` instead of creating a second record.
    """

    def __init__(self, existing=None):
        super().__init__("Settlement already recorded")
        self.existing = existing


class InvalidObligationRecord(SettlementError):
    """An expense or settlement failed validation."""
    pass
