"""
Pydantic schemas for spending summaries and the report job.

Field names are camelCase on the wire to match what the dashboard
frontend consumes.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class SpendingSummaryResponse(BaseModel):
    """Five spending totals, each formatted as a USD string (e.g. "$1,234.56")."""

    model_config = ConfigDict(populate_by_name=True)

    daily_spend: str = Field(alias="dailySpend")
    weekly_spend: str = Field(alias="weeklySpend")
    monthly_spend: str = Field(alias="monthlySpend")
    this_week_spend: str = Field(alias="thisWeekSpend")
    this_month_spend: str = Field(alias="thisMonthSpend")


ReportPeriod = Literal["week", "month", "year"]


class ReportRunSummary(BaseModel):
    total: int
    sent: int
    skipped: int
    failed: int


class ReportRunResponse(BaseModel):
    message: str
    summary: ReportRunSummary
