"""
Spending service — bucketing transactions into spending windows.

This is the arithmetic behind both the dashboard summary and the report
emails. Given the transactions of a user's linked accounts and a reference
time `now`, it produces five totals:

  daily       yesterday only
  weekly      the trailing 7 days   (date >= today - 7)
  monthly     the trailing 30 days  (date >= today - 30)
  this_week   week-to-date, weeks start on Monday
  this_month  month-to-date

Rules:
  - Posted transactions with a negative amount contribute abs(amount) to
    every window whose lower bound their date satisfies.
  - Pending transactions follow the same rule, except that pending
    transactions dated today are skipped entirely — they are provisional
    and routinely change or vanish before posting.
  - Any other status is counted but never summed.
  - Positive amounts (refunds, deposits) are never spend.

All totals are therefore >= 0.

Timezone:
  "Today" is `now` expressed in REPORT_TIMEZONE. Transaction dates carry no
  time of day and are compared as plain calendar dates, which is the same
  as comparing at local midnight.

Enrollment deduplication:
  Teller returns an enrollment's transactions for each account exposed by
  that enrollment. Only the first account per enrollment is fetched and
  aggregated; the rest would double count.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable, Sequence
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from beep.config import settings
from beep.models.linked_account import LinkedAccount
from beep.schemas.teller import Transaction
from beep.utils.currency import format_currency

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# How far back the on-demand summary fetches; covers the widest window.
SUMMARY_LOOKBACK_DAYS = 30


# ---------------------------------------------------------------------------
# Window boundaries
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SpendingWindows:
    """Lower bounds of each spending window, as calendar dates."""
    today: date
    yesterday: date
    last_7_days: date
    last_30_days: date
    this_week_start: date
    this_month_start: date


def local_today(now: datetime, tz: ZoneInfo | str) -> date:
    """
    Return the calendar date of `now` in timezone `tz`.

    A naive `now` is taken to already be wall-clock time in `tz`.
    """
    if isinstance(tz, str):
        tz = ZoneInfo(tz)
    if now.tzinfo is None:
        return now.date()
    return now.astimezone(tz).date()


def window_bounds(today: date) -> SpendingWindows:
    # weekday() is 0 for Monday, so a Sunday goes back six days
    return SpendingWindows(
        today=today,
        yesterday=today - timedelta(days=1),
        last_7_days=today - timedelta(days=7),
        last_30_days=today - timedelta(days=30),
        this_week_start=today - timedelta(days=today.weekday()),
        this_month_start=today.replace(day=1),
    )


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

@dataclass
class SpendingTotals:
    """Accumulated spend per window plus per-status diagnostics."""

    daily: Decimal = ZERO
    weekly: Decimal = ZERO
    monthly: Decimal = ZERO
    this_week: Decimal = ZERO
    this_month: Decimal = ZERO

    posted_count: int = 0
    pending_count: int = 0
    other_count: int = 0
    skipped_pending_today: int = 0
    posted_spend: Decimal = ZERO
    pending_spend: Decimal = ZERO
    accounts_processed: int = 0
    accounts_failed: int = 0

    def _add_spend(self, spend: Decimal, tx_date: date, windows: SpendingWindows) -> None:
        if tx_date == windows.yesterday:
            self.daily += spend
        if tx_date >= windows.last_7_days:
            self.weekly += spend
        if tx_date >= windows.last_30_days:
            self.monthly += spend
        if tx_date >= windows.this_week_start:
            self.this_week += spend
        if tx_date >= windows.this_month_start:
            self.this_month += spend

    def add(self, tx: Transaction, windows: SpendingWindows) -> None:
        """Apply one transaction to the totals."""
        if tx.status == "posted":
            self.posted_count += 1
            if tx.amount < 0:
                spend = -tx.amount
                self.posted_spend += spend
                self._add_spend(spend, tx.date, windows)
        elif tx.status == "pending":
            self.pending_count += 1
            if tx.date == windows.today:
                self.skipped_pending_today += 1
                return
            if tx.amount < 0:
                spend = -tx.amount
                self.pending_spend += spend
                self._add_spend(spend, tx.date, windows)
        else:
            self.other_count += 1
            logger.debug("Transaction %s has unexpected status %r", tx.id, tx.status)

    def formatted(self) -> dict[str, str]:
        """The five totals as currency strings, keyed by their API field names."""
        return {
            "dailySpend": format_currency(self.daily),
            "weeklySpend": format_currency(self.weekly),
            "monthlySpend": format_currency(self.monthly),
            "thisWeekSpend": format_currency(self.this_week),
            "thisMonthSpend": format_currency(self.this_month),
        }


def dedupe_by_enrollment(accounts: Iterable) -> list:
    """Keep only the first account seen for each enrollment, preserving order."""
    seen = set()
    unique = []
    for account in accounts:
        if account.enrollment_id in seen:
            continue
        seen.add(account.enrollment_id)
        unique.append(account)
    return unique


def aggregate_spending(
    transactions_by_account: Iterable[tuple[object, Sequence[Transaction]]],
    now: datetime,
    tz: ZoneInfo | str | None = None,
) -> SpendingTotals:
    """
    Bucket transactions into the five spending windows.

    Args:
        transactions_by_account: (account, transactions) pairs. Each account
            must expose `enrollment_id`; pairs after the first for a given
            enrollment are ignored.
        now: Reference time for every window.
        tz: Timezone defining "today". Defaults to REPORT_TIMEZONE.

    Returns:
        SpendingTotals with Decimal totals (unrounded) and status counts.
    """
    windows = window_bounds(local_today(now, tz or settings.REPORT_TIMEZONE))
    totals = SpendingTotals()
    seen_enrollments = set()

    for account, transactions in transactions_by_account:
        if account.enrollment_id in seen_enrollments:
            continue
        seen_enrollments.add(account.enrollment_id)
        totals.accounts_processed += 1

        for tx in transactions:
            totals.add(tx, windows)

    return totals


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------

@dataclass
class AccountFetchResult:
    account: LinkedAccount
    transactions: list[Transaction] = field(default_factory=list)
    failed: bool = False


async def fetch_account_transactions(
    teller,
    accounts: Sequence[LinkedAccount],
    from_date: date,
    to_date: date,
) -> list[AccountFetchResult]:
    """
    Fetch transactions for each account concurrently.

    A failure for one account is logged and marks that result as failed;
    it never aborts the others. Results keep the order of `accounts`.
    """

    async def fetch_one(account: LinkedAccount) -> AccountFetchResult:
        try:
            transactions = await teller.list_transactions(
                account.enrollment.access_token,
                account.account_id,
                from_date=from_date,
                to_date=to_date,
            )
        except Exception:
            logger.exception(
                "Error fetching transactions for account %s; skipping it", account.account_id
            )
            return AccountFetchResult(account=account, failed=True)

        logger.info(
            "Found %d transactions for account %s", len(transactions), account.account_id
        )
        return AccountFetchResult(account=account, transactions=transactions)

    return list(await asyncio.gather(*(fetch_one(account) for account in accounts)))


async def get_linked_accounts(db: AsyncSession, user_id: uuid.UUID) -> list[LinkedAccount]:
    """All of a user's linked accounts with their enrollments loaded, oldest first."""
    result = await db.execute(
        select(LinkedAccount)
        .options(selectinload(LinkedAccount.enrollment))
        .where(LinkedAccount.user_id == user_id)
        .order_by(LinkedAccount.created_at.asc())
    )
    return list(result.scalars().all())


async def summarize_accounts(
    teller,
    accounts: Sequence[LinkedAccount],
    now: datetime,
    from_date: date,
    tz: ZoneInfo | str | None = None,
) -> tuple[SpendingTotals, list[AccountFetchResult]]:
    """
    Dedupe, fetch from `from_date` through today, and aggregate.

    Returns the totals together with the raw per-account fetch results, so
    callers that need the transactions themselves (the report job) don't
    fetch twice.
    """
    tz = tz or settings.REPORT_TIMEZONE
    today = local_today(now, tz)
    unique_accounts = dedupe_by_enrollment(accounts)

    results = await fetch_account_transactions(teller, unique_accounts, from_date, today)
    succeeded = [r for r in results if not r.failed]

    totals = aggregate_spending(
        ((r.account, r.transactions) for r in succeeded), now=now, tz=tz
    )
    totals.accounts_failed = len(results) - len(succeeded)

    logger.info(
        "Spending totals: posted=%d pending=%d other=%d skipped_pending_today=%d "
        "posted_spend=%s pending_spend=%s failed_accounts=%d",
        totals.posted_count,
        totals.pending_count,
        totals.other_count,
        totals.skipped_pending_today,
        totals.posted_spend,
        totals.pending_spend,
        totals.accounts_failed,
    )
    return totals, results


async def get_spending_summary(
    db: AsyncSession,
    user_id: uuid.UUID,
    teller,
    now: datetime | None = None,
    tz: ZoneInfo | str | None = None,
) -> SpendingTotals:
    """
    Compute the dashboard spending summary for a user.

    Fetches the trailing 30 days of transactions for each of the user's
    linked accounts (one per enrollment) and aggregates them.
    """
    tz = tz or settings.REPORT_TIMEZONE
    now = now or datetime.now(ZoneInfo(tz) if isinstance(tz, str) else tz)

    accounts = await get_linked_accounts(db, user_id)
    if not accounts:
        return SpendingTotals()

    logger.info("Processing %d accounts", len(accounts))
    from_date = local_today(now, tz) - timedelta(days=SUMMARY_LOOKBACK_DAYS)
    totals, _ = await summarize_accounts(teller, accounts, now, from_date, tz=tz)
    return totals
