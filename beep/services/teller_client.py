"""
Teller API client — the source of account and transaction data.

Teller authenticates twice:
  1. The application, via a mutual-TLS client certificate (configured with
     TELLER_CERTIFICATE_PATH / TELLER_PRIVATE_KEY_PATH)
  2. The enrollment, via its access token sent as the HTTP Basic username

The client is constructed explicitly (see `get_teller_client` in
dependencies.py) and used as an async context manager so the underlying
connection pool is closed after each request. Tests substitute a fake or
pass an httpx.MockTransport.

Every transport failure or non-2xx response surfaces as ProviderError.
Payloads are converted to typed models by beep.schemas.teller before
they are returned.
"""

import logging
import os
from datetime import date

import httpx

from beep.config import Settings
from beep.exceptions import ProviderError
from beep.schemas.teller import (
    TellerAccount,
    Transaction,
    parse_accounts,
    parse_transactions,
)

logger = logging.getLogger(__name__)


def _client_cert(cert_path: str | None, key_path: str | None) -> tuple[str, str] | None:
    """Return the (cert, key) pair for mTLS, or None if not usable."""
    if not cert_path or not key_path:
        logger.warning("Teller certificate or private key path not provided")
        return None
    if not os.path.exists(cert_path) or not os.path.exists(key_path):
        logger.warning("Teller certificate or private key file not found, using default TLS")
        return None
    return cert_path, key_path


class TellerClient:
    """Async client for the subset of the Teller API this app uses."""

    def __init__(
        self,
        base_url: str = "https://api.teller.io",
        cert: tuple[str, str] | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._http = httpx.AsyncClient(
            base_url=base_url,
            cert=cert,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "TellerClient":
        return cls(
            base_url=settings.TELLER_API_URL,
            cert=_client_cert(
                settings.TELLER_CERTIFICATE_PATH, settings.TELLER_PRIVATE_KEY_PATH
            ),
            timeout=settings.TELLER_TIMEOUT_SECONDS,
        )

    async def __aenter__(self) -> "TellerClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _get(self, path: str, access_token: str, params: dict | None = None):
        try:
            response = await self._http.get(
                path,
                params=params,
                auth=httpx.BasicAuth(access_token, ""),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.error("Teller request %s failed with status %s", path, status)
            raise ProviderError(f"Teller returned {status} for {path}", status=status) from exc
        except httpx.HTTPError as exc:
            logger.error("Teller request %s failed: %s", path, exc)
            raise ProviderError(f"Teller request failed: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise ProviderError(f"Teller returned invalid JSON for {path}") from exc

    async def list_accounts(self, access_token: str) -> list[TellerAccount]:
        """Get all accounts visible to an enrollment."""
        payload = await self._get("/accounts", access_token)
        return parse_accounts(payload)

    async def list_transactions(
        self,
        access_token: str,
        account_id: str,
        from_date: date | None = None,
        to_date: date | None = None,
        count: int | None = None,
    ) -> list[Transaction]:
        """
        Get transactions for an account, optionally limited to a date range.

        Malformed records in Teller's response are quarantined by the parser
        and not returned.
        """
        params = {}
        if from_date:
            params["from"] = from_date.isoformat()
        if to_date:
            params["to"] = to_date.isoformat()
        if count:
            params["count"] = str(count)

        payload = await self._get(
            f"/accounts/{account_id}/transactions", access_token, params=params or None
        )
        return parse_transactions(payload)
