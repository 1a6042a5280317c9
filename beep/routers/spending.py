"""
Spending router — the dashboard's spending summary.

Endpoints:
  GET /spending/summary

Computes yesterday / last 7 days / last 30 days / week-to-date /
month-to-date spend across the authenticated user's linked accounts,
fetching fresh data from Teller on every call.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from beep.database import get_db
from beep.dependencies import get_current_user, get_teller_client
from beep.logging_config import set_user_context
from beep.models.user import User
from beep.schemas.spending import SpendingSummaryResponse
from beep.services import spending_service

router = APIRouter()


@router.get(
    "/summary",
    response_model=SpendingSummaryResponse,
    summary="Get your spending summary",
)
async def get_spending_summary(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    teller=Depends(get_teller_client),
):
    """
    Spending totals for five windows, formatted as USD strings.

    - **dailySpend**: yesterday
    - **weeklySpend** / **monthlySpend**: trailing 7 / 30 days
    - **thisWeekSpend** / **thisMonthSpend**: since Monday / since the 1st

    Accounts whose data can't be fetched are skipped rather than failing
    the request. With no linked accounts every total is "$0.00".
    """
    set_user_context(user.id)
    totals = await spending_service.get_spending_summary(db, user.id, teller)
    return SpendingSummaryResponse(**totals.formatted())
