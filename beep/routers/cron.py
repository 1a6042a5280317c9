"""
Cron router — entry points for the external scheduler.

Endpoints:
  GET /cron/send-reports?secret=...&period=week|month|year

Protected by the CRON_SECRET shared secret instead of a user session.
The job runs inline; the response reports how many users were sent a
report, skipped, or failed.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import async_sessionmaker

from beep.database import get_session_factory
from beep.dependencies import get_email_client, get_teller_client, verify_cron_secret
from beep.schemas.spending import ReportPeriod, ReportRunResponse
from beep.services import report_service

router = APIRouter(dependencies=[Depends(verify_cron_secret)])


@router.get(
    "/send-reports",
    response_model=ReportRunResponse,
    summary="Send spending report emails",
)
async def send_reports(
    period: ReportPeriod = Query(default="week", description="Report period"),
    session_factory: async_sessionmaker = Depends(get_session_factory),
    teller=Depends(get_teller_client),
    email_client=Depends(get_email_client),
):
    """
    Email a spending report to every user with a connected bank.

    One user's failure never stops the batch; it is counted under `failed`.
    """
    summary = await report_service.send_all_reports(
        session_factory, teller, email_client, period=period
    )
    return ReportRunResponse(
        message=f"Processed {summary['total']} users",
        summary=summary,
    )
