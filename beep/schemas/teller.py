"""
Typed models for Teller API payloads, and the parsing boundary.

Teller responses are arbitrary JSON. Everything the rest of the code sees
has been validated here first:

  - `TellerAccount` — one entry from GET /accounts
  - `Transaction` — one entry from GET /accounts/{id}/transactions, with
    `amount` parsed to a Decimal (Teller sends it as a string) and `date`
    parsed to a calendar date

Records that fail validation are quarantined: logged and dropped by
`parse_transactions` / `parse_accounts`, never passed on. A transaction
whose amount is "abc" or "NaN" therefore cannot poison a spending total.
"""

import logging
import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


class TransactionDetails(BaseModel):
    model_config = ConfigDict(extra="ignore")

    processing_status: str | None = None
    category: str | None = None


class Transaction(BaseModel):
    """A single bank transaction as used by spending aggregation."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str | None = None
    account_id: str | None = None
    date: datetime.date
    # Negative = money spent, positive = money received (Teller's convention)
    amount: Decimal
    status: str
    description: str = ""
    details: TransactionDetails = Field(default_factory=TransactionDetails)

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_is_numeric(cls, value: Any) -> Any:
        if isinstance(value, bool) or value is None:
            raise ValueError("amount must be a number")
        if isinstance(value, str):
            value = value.strip()
        return value

    @field_validator("amount")
    @classmethod
    def _amount_is_finite(cls, value: Decimal) -> Decimal:
        if not value.is_finite():
            raise ValueError("amount must be finite")
        return value

    @property
    def category(self) -> str | None:
        return self.details.category


class TellerAccount(BaseModel):
    """An account entry from Teller's account list."""

    model_config = ConfigDict(extra="ignore")

    id: str
    enrollment_id: str | None = None
    name: str
    type: str
    subtype: str | None = None
    last_four: str | None = None
    status: str | None = None
    currency: str = "USD"


def parse_transactions(payload: Any) -> list[Transaction]:
    """
    Convert a raw Teller transactions payload into typed transactions.

    Invalid records are logged at WARNING and skipped. A payload that is not
    a list at all yields an empty list.
    """
    if not isinstance(payload, list):
        logger.warning("Expected a list of transactions, got %s", type(payload).__name__)
        return []

    transactions = []
    for raw in payload:
        try:
            transactions.append(Transaction.model_validate(raw))
        except ValidationError as exc:
            raw_id = raw.get("id") if isinstance(raw, dict) else None
            logger.warning(
                "Quarantined malformed transaction %s: %s",
                raw_id,
                "; ".join(err["msg"] for err in exc.errors()),
            )
    return transactions


def parse_accounts(payload: Any) -> list[TellerAccount]:
    """Convert a raw Teller accounts payload, skipping invalid entries."""
    if not isinstance(payload, list):
        logger.warning("Expected a list of accounts, got %s", type(payload).__name__)
        return []

    accounts = []
    for raw in payload:
        try:
            accounts.append(TellerAccount.model_validate(raw))
        except ValidationError as exc:
            raw_id = raw.get("id") if isinstance(raw, dict) else None
            logger.warning("Skipped malformed account %s: %s", raw_id, exc.error_count())
    return accounts
