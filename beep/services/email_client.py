"""
Email client — sends mail through the Resend HTTP API.

Also renders the two emails the app sends: the magic-link sign-in email
and the periodic spending report. Rendering is plain HTML with inline
styles; every user- or bank-supplied string is escaped.

Like TellerClient, this is constructed per request through a FastAPI
dependency and is replaced by a recording fake in tests.
"""

import logging
from decimal import Decimal
from html import escape

import httpx

from beep.config import Settings
from beep.exceptions import EmailDeliveryError
from beep.utils.currency import format_currency

logger = logging.getLogger(__name__)


class EmailClient:
    """Minimal async client for Resend's POST /emails endpoint."""

    def __init__(
        self,
        api_key: str,
        sender: str,
        base_url: str = "https://api.resend.com",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.sender = sender
        self._http = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Authorization": f"Bearer {api_key}"},
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailClient":
        return cls(
            api_key=settings.RESEND_API_KEY,
            sender=settings.EMAIL_FROM,
            base_url=settings.RESEND_API_URL,
        )

    async def __aenter__(self) -> "EmailClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def send(self, to: str, subject: str, html: str) -> str | None:
        """
        Send one email.

        Returns:
            The provider's message id, if it returned one.

        Raises:
            EmailDeliveryError: If the request fails or Resend rejects it.
        """
        try:
            response = await self._http.post(
                "/emails",
                json={"from": self.sender, "to": [to], "subject": subject, "html": html},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            message = exc.response.text
            logger.error("Email provider rejected message to %s: %s", to, message)
            raise EmailDeliveryError(f"Failed to send email: {message}") from exc
        except httpx.HTTPError as exc:
            logger.error("Email request to provider failed: %s", exc)
            raise EmailDeliveryError(f"Failed to send email: {exc}") from exc

        # The message is already accepted at this point
        try:
            return response.json().get("id")
        except ValueError:
            logger.warning("Email provider accepted message to %s without a JSON body", to)
            return None


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

_WRAPPER = (
    '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; color: #333;">'
    "{body}"
    '<p style="text-align: center; margin-top: 40px; color: #999; font-size: 14px;">'
    "Beep Money</p></div>"
)


def render_magic_link(link: str) -> str:
    body = (
        '<h1 style="text-align: center;">Sign in to Beep Money</h1>'
        "<p>Click the button below to sign in. This link can only be used once.</p>"
        '<p style="text-align: center; margin: 30px 0;">'
        f'<a href="{escape(link)}" style="background-color: #4CAF50; color: white; '
        'padding: 12px 24px; text-decoration: none; border-radius: 4px;">Sign in</a></p>'
        "<p>If you didn't request this, you can ignore this email.</p>"
    )
    return _WRAPPER.format(body=body)


def render_spending_report(
    first_name: str,
    period: str,
    totals: dict[str, str],
    total_spent: Decimal,
    top_categories: list[tuple[str, Decimal]],
    transactions: list,
) -> str:
    """
    Render the spending report email.

    Args:
        first_name: Greeting name.
        period: Human-readable period ("this week", "this month", ...).
        totals: The five formatted window totals, keyed by their API names.
        total_spent: Total spend over the report period.
        top_categories: (category, amount) pairs, largest first.
        transactions: Recent spend transactions to list.
    """
    summary_rows = "".join(
        f"<tr><td>{escape(label)}</td>"
        f'<td style="text-align: right;">{escape(totals[key])}</td></tr>'
        for key, label in (
            ("dailySpend", "Yesterday"),
            ("thisWeekSpend", "This week"),
            ("thisMonthSpend", "This month"),
            ("weeklySpend", "Last 7 days"),
            ("monthlySpend", "Last 30 days"),
        )
    )

    category_rows = "".join(
        f"<tr><td>{escape(name)}</td>"
        f'<td style="text-align: right;">{format_currency(amount)}</td></tr>'
        for name, amount in top_categories
    ) or '<tr><td colspan="2">No spending recorded.</td></tr>'

    transaction_rows = "".join(
        f"<tr><td>{tx.date:%b} {tx.date.day}</td><td>{escape(tx.description)}</td>"
        f'<td style="text-align: right;">{format_currency(abs(tx.amount))}</td></tr>'
        for tx in transactions
    )

    body = (
        '<h1 style="text-align: center;">Your Spending Report</h1>'
        f"<p>Hi {escape(first_name)},</p>"
        f"<p>Here's a summary of your spending {escape(period)}: "
        f"<strong>{format_currency(total_spent)}</strong>.</p>"
        f'<table style="width: 100%;">{summary_rows}</table>'
        "<h2>Top categories</h2>"
        f'<table style="width: 100%;">{category_rows}</table>'
    )
    if transaction_rows:
        body += (
            "<h2>Recent transactions</h2>"
            f'<table style="width: 100%;">{transaction_rows}</table>'
        )
    return _WRAPPER.format(body=body)
