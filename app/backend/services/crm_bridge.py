"""HTTP client for the external CRM webhook.

Fetches the account list and submits extraction results. Each call opens
its own httpx client; there is no retry and no persistent connection.
Failures never propagate: fetching yields an empty list and sending yields
an error status.
"""

import logging
from typing import Any

import httpx
from pydantic import ValidationError

# Handle both package imports and standalone imports
try:
    from ..config import get_settings
    from ..models import Account, CrmStatus, ExtractedItem
except ImportError:
    from config import get_settings
    from models import Account, CrmStatus, ExtractedItem

logger = logging.getLogger(__name__)


class CRMBridge:
    """Client for the CRM webhook (account lookup and result submission)."""

    def __init__(
        self,
        webhook_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.webhook_url = webhook_url or settings.crm_webhook_url
        self.timeout = timeout if timeout is not None else settings.crm_timeout_seconds
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def fetch_accounts(self) -> list[Account]:
        """Fetch the account list.

        Returns an empty list when no webhook URL is configured, on a network
        failure, a non-2xx status, an invalid body or a body that is not a
        JSON array. Array items that are not ``{id, name}`` objects are
        skipped.
        """
        if not self.webhook_url:
            logger.warning("CRM webhook URL is not configured; no accounts loaded")
            return []

        try:
            async with self._client() as client:
                resp = await client.get(self.webhook_url)
        except httpx.HTTPError as e:
            logger.warning("Failed to fetch accounts: %s", e)
            return []

        if not resp.is_success:
            logger.warning("Failed to fetch accounts: HTTP %d", resp.status_code)
            return []

        try:
            payload = resp.json()
        except ValueError as e:
            logger.warning("Account list is not valid JSON: %s", e)
            return []

        if not isinstance(payload, list):
            logger.warning(
                "Account list response is not an array (got %s); ignoring it",
                type(payload).__name__,
            )
            return []

        accounts: list[Account] = []
        for entry in payload:
            try:
                accounts.append(Account.model_validate(entry))
            except ValidationError:
                logger.warning("Skipping malformed account entry: %r", entry)

        logger.info("Fetched %d account(s)", len(accounts))
        return accounts

    async def send_result(
        self, account_id: str, data: dict[str, ExtractedItem]
    ) -> CrmStatus:
        """Post extraction data for an account.

        Returns CrmStatus.SUCCESS on a 2xx response, CrmStatus.ERROR otherwise.
        """
        if not self.webhook_url:
            logger.error("CRM webhook URL is not configured; result for account %s not sent", account_id)
            return CrmStatus.ERROR

        body: dict[str, Any] = {
            "account_id": account_id,
            "data": {name: item.model_dump() for name, item in data.items()},
        }

        try:
            async with self._client() as client:
                resp = await client.post(self.webhook_url, json=body)
        except httpx.HTTPError as e:
            logger.error("Error sending to CRM: %s", e)
            return CrmStatus.ERROR

        if not resp.is_success:
            logger.error("CRM rejected result for account %s: HTTP %d", account_id, resp.status_code)
            return CrmStatus.ERROR

        logger.info("Sent result to CRM for account %s", account_id)
        return CrmStatus.SUCCESS


_crm_bridge: CRMBridge | None = None


def get_crm_bridge() -> CRMBridge:
    """Get or create the CRM bridge singleton."""
    global _crm_bridge
    if _crm_bridge is None:
        _crm_bridge = CRMBridge()
    return _crm_bridge
