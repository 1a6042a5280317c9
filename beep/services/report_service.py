"""
Report service — the scheduled spending-report email job.

For every active user with at least one enrollment:
  1. Load their linked accounts (deduplicated by enrollment)
  2. Fetch transactions covering the report period and every spending window
  3. Aggregate them into the five spending windows
  4. Compute the period's total spend, top categories, and most recent
     spend transactions
  5. Render and send the report email, recording an EmailLog row

Users are processed concurrently, each with its own database session.
A failure for one user is logged and counted; it never stops the batch.

Outcome per user:
  - "skipped": the user has no linked accounts, or none of their accounts
               could be fetched
  - "failed":  anything raised while generating or sending
  - "sent":    the email was accepted by the provider
"""

import asyncio
import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from beep.config import settings
from beep.logging_config import set_user_context
from beep.models.email_log import EmailLog
from beep.models.enrollment import Enrollment
from beep.models.user import User
from beep.schemas.teller import Transaction
from beep.services import spending_service
from beep.services.email_client import render_spending_report
from beep.services.spending_service import SpendingTotals

logger = logging.getLogger(__name__)

PERIODS = ("week", "month", "year")

PERIOD_TEXT = {
    "week": "this week",
    "month": "this month",
    "year": "this year",
}

TOP_CATEGORY_LIMIT = 5
RECENT_TRANSACTION_LIMIT = 10


def period_start(period: str, today: date) -> date:
    """
    First date of a report period ending today.

    week: 7 days back; month: same day last month; year: same day last year.
    Days that don't exist in the target month clamp to its last day.
    """
    if period == "week":
        return today - timedelta(days=7)
    if period == "month":
        year, month = (today.year - 1, 12) if today.month == 1 else (today.year, today.month - 1)
        return _clamped(year, month, today.day)
    if period == "year":
        return _clamped(today.year - 1, today.month, today.day)
    raise ValueError(f"Unknown report period: {period}")


def _clamped(year: int, month: int, day: int) -> date:
    while True:
        try:
            return date(year, month, day)
        except ValueError:
            day -= 1


@dataclass
class SpendingReport:
    first_name: str
    period: str
    totals: SpendingTotals
    total_spent: Decimal
    top_categories: list[tuple[str, Decimal]]
    recent_transactions: list[Transaction]


def spend_transactions(transactions: list[Transaction]) -> list[Transaction]:
    """Transactions that represent money leaving the account."""
    return [tx for tx in transactions if tx.amount < 0]


def top_categories(
    transactions: list[Transaction], limit: int = TOP_CATEGORY_LIMIT
) -> list[tuple[str, Decimal]]:
    """Sum spend by category, largest first. Missing categories are 'Uncategorized'."""
    by_category: dict[str, Decimal] = defaultdict(Decimal)
    for tx in transactions:
        by_category[tx.category or "Uncategorized"] += abs(tx.amount)
    ranked = sorted(by_category.items(), key=lambda item: item[1], reverse=True)
    return ranked[:limit]


def greeting_name(user: User) -> str:
    if user.first_name:
        return user.first_name
    local_part = user.email.split("@")[0]
    return local_part or "there"


async def generate_spending_report(
    db: AsyncSession,
    user: User,
    teller,
    period: str = "week",
    now: datetime | None = None,
) -> SpendingReport | None:
    """
    Build a user's report for `period`.

    Transactions are fetched far enough back to cover every spending window
    shown in the email, not just the report period. The period total, top
    categories and recent transactions use only the period itself.

    Returns None if the user has no linked accounts, or if no account's
    transactions could be fetched.
    """
    tz = ZoneInfo(settings.REPORT_TIMEZONE)
    now = now or datetime.now(tz)
    today = spending_service.local_today(now, tz)

    accounts = await spending_service.get_linked_accounts(db, user.id)
    if not accounts:
        return None

    start = period_start(period, today)
    windows = spending_service.window_bounds(today)
    from_date = min(start, windows.last_30_days, windows.this_month_start)

    totals, results = await spending_service.summarize_accounts(
        teller, accounts, now, from_date, tz=tz
    )
    if totals.accounts_processed == 0:
        logger.warning("No account data could be fetched for %d accounts", len(results))
        return None

    spending = spend_transactions([
        tx
        for r in results if not r.failed
        for tx in r.transactions if tx.date >= start
    ])
    recent = sorted(spending, key=lambda tx: tx.date, reverse=True)

    return SpendingReport(
        first_name=greeting_name(user),
        period=PERIOD_TEXT[period],
        totals=totals,
        total_spent=sum((abs(tx.amount) for tx in spending), Decimal("0")),
        top_categories=top_categories(spending),
        recent_transactions=recent[:RECENT_TRANSACTION_LIMIT],
    )


async def send_report_for_user(
    session_factory: async_sessionmaker,
    user_id: uuid.UUID,
    teller,
    email_client,
    period: str,
    now: datetime | None = None,
) -> str:
    """Generate and send one user's report. Returns "sent", "skipped" or "failed"."""
    set_user_context(user_id)
    async with session_factory() as db:
        user = await db.get(User, user_id)
        try:
            report = await generate_spending_report(db, user, teller, period, now=now)
            if report is None:
                logger.info("No linked or reachable accounts; skipping report")
                return "skipped"

            html = render_spending_report(
                first_name=report.first_name,
                period=report.period,
                totals=report.totals.formatted(),
                total_spent=report.total_spent,
                top_categories=report.top_categories,
                transactions=report.recent_transactions,
            )
            message_id = await email_client.send(
                user.email, f"Your {report.period} Spending Report", html
            )
        except Exception as exc:
            logger.exception("Error sending report")
            db.add(EmailLog(
                user_id=user_id,
                email_type="spending_report",
                status="failed",
                details={"period": period, "error": str(exc)},
            ))
            await db.commit()
            return "failed"

        db.add(EmailLog(
            user_id=user_id,
            email_type="spending_report",
            status="sent",
            details={"period": period, "message_id": message_id},
        ))
        await db.commit()
        return "sent"


async def get_report_recipients(db: AsyncSession) -> list[uuid.UUID]:
    """Ids of active users with at least one enrollment."""
    result = await db.execute(
        select(User.id)
        .where(User.is_active.is_(True))
        .where(User.id.in_(select(Enrollment.user_id)))
        .order_by(User.created_at.asc())
    )
    return list(result.scalars().all())


async def send_all_reports(
    session_factory: async_sessionmaker,
    teller,
    email_client,
    period: str = "week",
    now: datetime | None = None,
    concurrency: int | None = None,
) -> dict[str, int]:
    """
    Run the report job over every eligible user.

    Returns:
        {"total", "sent", "skipped", "failed"} counts.
    """
    concurrency = concurrency or settings.REPORT_CONCURRENCY
    async with session_factory() as db:
        user_ids = await get_report_recipients(db)

    logger.info("Sending %s reports to %d users", period, len(user_ids))

    # Bounded so a large batch doesn't exhaust the connection pool or hit
    # Teller's rate limits
    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def run(user_id: uuid.UUID) -> str:
        async with semaphore:
            return await _run_guarded(user_id)

    async def _run_guarded(user_id: uuid.UUID) -> str:
        try:
            return await send_report_for_user(
                session_factory, user_id, teller, email_client, period, now=now
            )
        except Exception:
            # e.g. the EmailLog write itself failed
            logger.exception("Unexpected error in report for user %s", user_id)
            return "failed"

    outcomes = await asyncio.gather(*(run(user_id) for user_id in user_ids))
    set_user_context(None)

    summary = {
        "total": len(outcomes),
        "sent": outcomes.count("sent"),
        "skipped": outcomes.count("skipped"),
        "failed": outcomes.count("failed"),
    }
    logger.info("Report job finished: %s", summary)
    return summary
