"""
FacilitatorClient - Client for communicating with an A402 facilitator service
"""

from typing import Any

import httpx

from a402.types import (
    HealthResponse,
    ListResponse,
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    VerifyResponse,
)


class FacilitatorClient:
    """
    Client for communicating with facilitator service.

    Handles verify, settle, list and health queries. Verify and settle
    answers with status 400 carry a regular response body and are
    returned rather than raised.
    """

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize facilitator client.

        Args:
            base_url: Facilitator service base URL
            headers: Custom HTTP headers (e.g., Authorization)
            timeout: Request timeout in seconds
            transport: Optional httpx transport, mainly for tests
        """
        self._base_url = base_url.rstrip("/")
        self._headers = headers or {}
        self._timeout = timeout
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=self._headers,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client"""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    @staticmethod
    def _request_body(
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> dict[str, Any]:
        return {
            "paymentPayload": payload.model_dump(by_alias=True, exclude_none=True),
            "paymentRequirements": requirements.model_dump(by_alias=True, exclude_none=True),
        }

    async def verify(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> VerifyResponse:
        """
        Verify payment signature (without executing on-chain transaction).

        Args:
            payload: Payment payload from client
            requirements: Payment requirements

        Returns:
            VerifyResponse
        """
        client = await self._get_client()
        response = await client.post("/verify", json=self._request_body(payload, requirements))
        if response.status_code != 400:
            response.raise_for_status()
        return VerifyResponse(**response.json())

    async def settle(
        self,
        payload: PaymentPayload,
        requirements: PaymentRequirements,
    ) -> SettleResponse:
        """
        Execute payment settlement (on-chain transaction).

        Args:
            payload: Payment payload from client
            requirements: Payment requirements

        Returns:
            SettleResponse with transaction hash
        """
        client = await self._get_client()
        response = await client.post("/settle", json=self._request_body(payload, requirements))
        if response.status_code != 400:
            response.raise_for_status()
        return SettleResponse(**response.json())

    async def list_supported(self) -> ListResponse:
        """Query supported networks and assets"""
        client = await self._get_client()
        response = await client.get("/list")
        response.raise_for_status()
        return ListResponse(**response.json())

    async def health(self) -> HealthResponse:
        client = await self._get_client()
        response = await client.get("/health")
        response.raise_for_status()
        return HealthResponse(**response.json())
