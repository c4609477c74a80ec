"""
Audit sinks for verify/settle records.

Sinks never raise: a failing audit write is logged and the request
outcome is unaffected.
"""

import logging
from typing import Any, Protocol

import httpx

logger = logging.getLogger(__name__)

VERIFY_TABLE = "verify_requests"
SETTLE_TABLE = "settle_transactions"


class AuditSink(Protocol):
    """Receives one row per verify/settle outcome"""

    async def record(self, table: str, row: dict[str, Any]) -> None:
        ...

    async def close(self) -> None:
        ...


class NullAuditSink:
    """Discards every record"""

    async def record(self, table: str, row: dict[str, Any]) -> None:
        return None

    async def close(self) -> None:
        return None


class LoggingAuditSink:
    """Writes records to a logger at INFO"""

    def __init__(self, logger_name: str = "a402.audit") -> None:
        self._logger = logging.getLogger(logger_name)

    async def record(self, table: str, row: dict[str, Any]) -> None:
        self._logger.info("[AUDIT] %s", table, extra={"table": table, "row": row})

    async def close(self) -> None:
        return None


class SupabaseAuditSink:
    """Inserts records through the Supabase (PostgREST) REST API"""

    def __init__(
        self,
        url: str,
        api_key: str,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=f"{self._base_url}/rest/v1",
                headers={
                    "apikey": self._api_key,
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                    "Prefer": "return=minimal",
                },
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._http_client

    async def record(self, table: str, row: dict[str, Any]) -> None:
        try:
            client = await self._get_client()
            response = await client.post(f"/{table}", json=row)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Supabase logging failed (%s): %s", table, e)

    async def close(self) -> None:
        """Close HTTP client"""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
