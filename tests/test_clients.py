"""
Tests for the outbound HTTP clients (Teller and Resend).

Both clients accept an httpx transport, so these tests drive them with
httpx.MockTransport and inspect the requests they make.
"""

import base64
import json
from datetime import date
from decimal import Decimal

import httpx
import pytest

from beep.exceptions import EmailDeliveryError, ProviderError
from beep.services.email_client import EmailClient, render_magic_link, render_spending_report
from beep.services.teller_client import TellerClient, _client_cert
from beep.schemas.teller import Transaction
from helpers import teller_account, teller_txn


def teller_with(handler):
    return TellerClient(base_url="https://teller.test", transport=httpx.MockTransport(handler))


class TestTellerClient:

    async def test_list_accounts_uses_basic_auth(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["Authorization"]
            seen["path"] = request.url.path
            return httpx.Response(200, json=[teller_account("acc_1")])

        async with teller_with(handler) as teller:
            accounts = await teller.list_accounts("tok_abc")

        expected = base64.b64encode(b"tok_abc:").decode()
        assert seen == {"auth": f"Basic {expected}", "path": "/accounts"}
        assert [a.id for a in accounts] == ["acc_1"]
        assert accounts[0].last_four == "1234"

    async def test_list_transactions_sends_date_range(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=[teller_txn(date(2026, 10, 13), "-12.34")])

        async with teller_with(handler) as teller:
            transactions = await teller.list_transactions(
                "tok_abc", "acc_1", from_date=date(2026, 9, 14), to_date=date(2026, 10, 14)
            )

        assert seen["path"] == "/accounts/acc_1/transactions"
        assert seen["params"] == {"from": "2026-09-14", "to": "2026-10-14"}
        assert transactions[0].amount == Decimal("-12.34")
        assert transactions[0].date == date(2026, 10, 13)
        assert transactions[0].category == "dining"

    async def test_quarantines_malformed_transactions(self):
        payload = [
            teller_txn(date(2026, 10, 13), "-1.00"),
            {"id": "txn_bad", "date": "2026-10-13", "amount": "abc", "status": "posted"},
            {"id": "txn_inf", "date": "2026-10-13", "amount": "Infinity", "status": "posted"},
            {"id": "txn_bool", "date": "2026-10-13", "amount": True, "status": "posted"},
            "not an object",
        ]

        async with teller_with(lambda request: httpx.Response(200, json=payload)) as teller:
            transactions = await teller.list_transactions("tok", "acc_1")

        assert len(transactions) == 1

    async def test_numeric_amounts_accepted(self):
        payload = [{"id": "t", "date": "2026-10-13", "amount": -3.5, "status": "posted"}]
        async with teller_with(lambda request: httpx.Response(200, json=payload)) as teller:
            transactions = await teller.list_transactions("tok", "acc_1")
        assert transactions[0].amount == Decimal("-3.5")

    async def test_http_error_raises_provider_error(self):
        async with teller_with(lambda request: httpx.Response(500, text="boom")) as teller:
            with pytest.raises(ProviderError) as excinfo:
                await teller.list_accounts("tok")
        assert excinfo.value.status == 500

    async def test_unauthorized_token(self):
        async with teller_with(lambda request: httpx.Response(401)) as teller:
            with pytest.raises(ProviderError) as excinfo:
                await teller.list_transactions("revoked", "acc_1")
        assert excinfo.value.status == 401

    async def test_connection_error_raises_provider_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with teller_with(handler) as teller:
            with pytest.raises(ProviderError) as excinfo:
                await teller.list_accounts("tok")
        assert excinfo.value.status is None

    async def test_invalid_json(self):
        async with teller_with(lambda request: httpx.Response(200, text="<html>")) as teller:
            with pytest.raises(ProviderError):
                await teller.list_accounts("tok")

    def test_missing_certificate_falls_back_to_default_tls(self, tmp_path):
        assert _client_cert(None, None) is None
        assert _client_cert(str(tmp_path / "cert.pem"), str(tmp_path / "key.pem")) is None

        cert, key = tmp_path / "cert.pem", tmp_path / "key.pem"
        cert.write_text("cert")
        key.write_text("key")
        assert _client_cert(str(cert), str(key)) == (str(cert), str(key))


def email_with(handler):
    return EmailClient(
        api_key="re_test",
        sender="Beep Money <reports@beep.money>",
        base_url="https://resend.test",
        transport=httpx.MockTransport(handler),
    )


class TestEmailClient:

    async def test_send(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["Authorization"]
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "msg_123"})

        async with email_with(handler) as email:
            message_id = await email.send("u@example.com", "Hello", "<p>Hi</p>")

        assert message_id == "msg_123"
        assert seen["auth"] == "Bearer re_test"
        assert seen["path"] == "/emails"
        assert seen["body"] == {
            "from": "Beep Money <reports@beep.money>",
            "to": ["u@example.com"],
            "subject": "Hello",
            "html": "<p>Hi</p>",
        }

    async def test_rejected_send_raises(self):
        handler = lambda request: httpx.Response(422, json={"message": "invalid from"})
        async with email_with(handler) as email:
            with pytest.raises(EmailDeliveryError):
                await email.send("u@example.com", "Hello", "<p>Hi</p>")

    async def test_accepted_send_without_json_body(self):
        async with email_with(lambda request: httpx.Response(200, text="OK")) as email:
            message_id = await email.send("u@example.com", "Hello", "<p>Hi</p>")
        assert message_id is None

    async def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        async with email_with(handler) as email:
            with pytest.raises(EmailDeliveryError):
                await email.send("u@example.com", "Hello", "<p>Hi</p>")


class TestRendering:

    def test_magic_link_contains_link(self):
        html = render_magic_link("https://app.test/auth/callback?token=abc.def")
        assert 'href="https://app.test/auth/callback?token=abc.def"' in html

    def test_spending_report(self):
        totals = {
            "dailySpend": "$1.00",
            "weeklySpend": "$2.00",
            "monthlySpend": "$3.00",
            "thisWeekSpend": "$4.00",
            "thisMonthSpend": "$5.00",
        }
        transactions = [
            Transaction(date=date(2026, 10, 3), amount=Decimal("-4.5"), status="posted",
                        description="<Corner> Cafe"),
        ]
        html = render_spending_report(
            first_name="Nina",
            period="this week",
            totals=totals,
            total_spent=Decimal("1234.5"),
            top_categories=[("dining", Decimal("4.5"))],
            transactions=transactions,
        )
        assert "Hi Nina," in html
        assert "$1,234.50" in html
        assert "Oct 3" in html
        assert "&lt;Corner&gt; Cafe" in html
        assert "<Corner>" not in html
        for value in totals.values():
            assert value in html

    def test_spending_report_without_spend(self):
        html = render_spending_report(
            first_name="there",
            period="this month",
            totals={k: "$0.00" for k in (
                "dailySpend", "weeklySpend", "monthlySpend", "thisWeekSpend", "thisMonthSpend"
            )},
            total_spent=Decimal("0"),
            top_categories=[],
            transactions=[],
        )
        assert "No spending recorded." in html
        assert "Recent transactions" not in html
