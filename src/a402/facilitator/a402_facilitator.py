"""
A402Facilitator - Core payment processor for the A402 relayer protocol
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable

from eth_utils import is_address, to_checksum_address

from a402.audit import (
    SETTLE_TABLE,
    VERIFY_TABLE,
    AuditSink,
    LoggingAuditSink,
    NullAuditSink,
    SupabaseAuditSink,
)
from a402.config import (
    DEFAULT_CONFIRMATION_TIMEOUT,
    DEFAULT_DOMAIN_NAME,
    DEFAULT_RPC_TIMEOUT,
    DEFAULT_SETTLE_GAS_LIMIT,
    ChainContext,
    ChainContextResolver,
    FacilitatorSettings,
)
from a402.exceptions import MalformedPayloadError, UnknownNetworkError
from a402.facilitator.intent import IntentState, SignedIntent, parse_address, parse_signed_intent
from a402.facilitator.locks import NonceLockRegistry
from a402.facilitator.settlement import (
    SettlementExecutor,
    SettlementFailure,
    SettlementReceipt,
    SettlementStatus,
)
from a402.facilitator.validator import AuthorizationValidator, InvalidReason, ValidationOutcome
from a402.metrics import FacilitatorMetrics
from a402.tokens import TokenInfo, TokenInfoResolver, TokenRegistry, fallback_token_info
from a402.types import (
    FacilitatorRequest,
    HealthResponse,
    ListResponse,
    SettleResponse,
    SupportedAsset,
    SupportedNetwork,
    VerifyResponse,
)
from a402.utils.units import format_units

if TYPE_CHECKING:
    from a402.signers.facilitator import FacilitatorSigner

logger = logging.getLogger(__name__)

SERVICE_ID = "a402-facilitator"
SERVICE_NAME = "A402 Facilitator"
VERSION = "1.0.0"

FEATURES = [
    "gasless-payments",
    "eip712-signatures",
    "dynamic-token-support",
    "avalanche-c-chain",
]

ENDPOINTS = {
    "verify": "/verify",
    "settle": "/settle",
    "list": "/list",
    "health": "/health",
}

# Replay read, nonce/build/send on the write path, receipt poll
SETTLE_RPC_CALLS = 5


def _as_text(value: int | None) -> str | None:
    # uint256-sized values are stored as text
    return str(value) if value is not None else None


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def settle_lock_ttl(confirmation_timeout: float, rpc_timeout: float) -> float:
    """Longest one settlement can run while holding its nonce lock"""
    return confirmation_timeout + SETTLE_RPC_CALLS * rpc_timeout


class A402Facilitator:
    """
    Core payment processor for the A402 relayer.

    Resolves the chain context for each request, validates signed intents
    and settles them through the relayer contract. Every verify/settle
    outcome is counted in metrics and written to the audit sink.
    """

    def __init__(
        self,
        signer: "FacilitatorSigner",
        chains: ChainContextResolver,
        domain_name: str = DEFAULT_DOMAIN_NAME,
        tokens: TokenInfoResolver | None = None,
        audit: AuditSink | None = None,
        metrics: FacilitatorMetrics | None = None,
        settle_gas_limit: int = DEFAULT_SETTLE_GAS_LIMIT,
        confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT,
        rpc_timeout: float = DEFAULT_RPC_TIMEOUT,
        clock: Callable[[], float] = time.time,
        locks: NonceLockRegistry | None = None,
    ) -> None:
        self._signer = signer
        self._chains = chains
        self._tokens = tokens if tokens is not None else TokenInfoResolver(signer)
        self._audit = audit or NullAuditSink()
        self.metrics = metrics or FacilitatorMetrics()
        self._validator = AuthorizationValidator(signer, domain_name=domain_name, clock=clock)
        self._executor = SettlementExecutor(
            signer,
            gas_limit=settle_gas_limit,
            confirmation_timeout=confirmation_timeout,
        )
        if locks is None:
            locks = NonceLockRegistry(ttl=settle_lock_ttl(confirmation_timeout, rpc_timeout))
        self._locks = locks

    @classmethod
    def from_settings(
        cls,
        settings: FacilitatorSettings,
        signer: "FacilitatorSigner | None" = None,
        audit: AuditSink | None = None,
    ) -> "A402Facilitator":
        """
        Build a facilitator from process settings.

        Audit rows go to Supabase when SUPABASE_URL and SUPABASE_KEY are
        both set, otherwise to the log.
        """
        if signer is None:
            from a402.signers.facilitator import EvmFacilitatorSigner

            signer = EvmFacilitatorSigner.from_private_key(
                settings.relayer_private_key, rpc_timeout=settings.rpc_timeout
            )
        if audit is None:
            if settings.supabase_url and settings.supabase_key:
                audit = SupabaseAuditSink(settings.supabase_url, settings.supabase_key)
            else:
                logger.warning("Supabase not configured, audit records go to the log only")
                audit = LoggingAuditSink()
        return cls(
            signer,
            ChainContextResolver(settings),
            domain_name=settings.domain_name,
            audit=audit,
            settle_gas_limit=settings.settle_gas_limit,
            confirmation_timeout=settings.confirmation_timeout,
            rpc_timeout=settings.rpc_timeout,
        )

    @property
    def chains(self) -> ChainContextResolver:
        return self._chains

    @property
    def tokens(self) -> TokenInfoResolver:
        return self._tokens

    @property
    def locks(self) -> NonceLockRegistry:
        return self._locks

    @property
    def relayer_address(self) -> str:
        return self._signer.get_address()

    # ------------------------------------------------------------------
    # verify
    # ------------------------------------------------------------------

    async def verify(self, request: FacilitatorRequest) -> VerifyResponse:
        """
        Verify a signed payment intent without submitting a transaction.

        Args:
            request: Payment payload and requirements

        Returns:
            VerifyResponse; rejections are reported with isValid=False

        Raises:
            UnknownNetworkError: Requirements name an unsupported network
            MalformedPayloadError: Payload is structurally incomplete
            ChainReadError: Replay state could not be read
        """
        started = time.perf_counter()
        payload = request.payment_payload
        requirements = request.payment_requirements
        try:
            context = self._resolve_context(requirements.network)
            verifying_contract = self._verifying_contract(requirements.relayer_contract, context)
            outcome = await self._validator.validate(payload.payload, context, verifying_contract)
        except (UnknownNetworkError, MalformedPayloadError):
            self.metrics.verify_requests.labels(status="invalid").inc()
            raise
        except Exception:
            self.metrics.verify_requests.labels(status="error").inc()
            raise

        if outcome.reason is InvalidReason.MALFORMED_PAYLOAD:
            self.metrics.verify_requests.labels(status="invalid").inc()
            raise MalformedPayloadError("authorization", outcome.detail)

        token = await self._annotate_token(payload.token, context)
        status = "success" if outcome.is_valid else "failed"
        self.metrics.verify_requests.labels(status=status).inc()
        await self._audit_verify(
            outcome, payload.token, token, context, requirements.network, started
        )

        auth = outcome.intent.authorization
        if outcome.is_valid:
            logger.info(
                "[VERIFY] %s -> %s | %s %s",
                auth.from_address[:8],
                auth.to[:8],
                format_units(auth.value, token.decimals),
                token.symbol,
            )
            return VerifyResponse(isValid=True, payer=outcome.payer)

        logger.info("[VERIFY] Rejected %s: %s", auth.from_address, outcome.reason.value)
        return VerifyResponse(isValid=False, invalidReason=outcome.reason.value)

    # ------------------------------------------------------------------
    # settle
    # ------------------------------------------------------------------

    async def settle(self, request: FacilitatorRequest) -> SettleResponse:
        """
        Re-validate and settle a signed payment intent on-chain.

        The intent is validated again in full; a prior /verify result is
        never trusted because chain state may have changed in between.

        Args:
            request: Payment payload and requirements

        Returns:
            SettleResponse; settlement failures are reported with success=False

        Raises:
            UnknownNetworkError: Requirements name an unsupported network
            MalformedPayloadError: Payload or token address is malformed
            ChainReadError: Replay state could not be read
        """
        started = time.perf_counter()
        payload = request.payment_payload
        requirements = request.payment_requirements
        try:
            context = self._resolve_context(requirements.network)
            network = requirements.network or context.name
            verifying_contract = self._verifying_contract(requirements.relayer_contract, context)
            intent = parse_signed_intent(payload.payload)
            token_address = parse_address(payload.token, "token")
        except (UnknownNetworkError, MalformedPayloadError):
            self.metrics.settle_requests.labels(status="invalid").inc()
            raise

        try:
            async with self._locks.hold(intent.lock_key) as acquired:
                if not acquired:
                    logger.warning(
                        "[SETTLE] Settlement for %s nonce=%s already in flight",
                        intent.payer,
                        intent.authorization.nonce_hex,
                    )
                    outcome = None
                    receipt = SettlementReceipt(
                        success=False,
                        status=SettlementStatus.FAILED,
                        failure=SettlementFailure.IN_PROGRESS,
                        failure_reason=SettlementFailure.IN_PROGRESS.value,
                    )
                else:
                    outcome = await self._validator.validate_intent(
                        intent, context, verifying_contract
                    )
                    receipt = None
                    if outcome.is_valid:
                        logger.debug(
                            "[SETTLE] %s nonce=%s is %s",
                            intent.payer,
                            intent.authorization.nonce_hex,
                            IntentState.SETTLING.value,
                        )
                        receipt = await self._executor.settle(intent, context, token_address)
        except Exception:
            self.metrics.settle_requests.labels(status="error").inc()
            raise

        token = await self._annotate_token(token_address, context)

        if receipt is None:
            # Re-validation rejected the intent; nothing was submitted
            self.metrics.settle_requests.labels(status="failed").inc()
            await self._audit_settle(
                intent, None, outcome.reason.value, token_address, token, context, network, started
            )
            logger.info("[SETTLE] Rejected %s: %s", intent.payer, outcome.reason.value)
            return SettleResponse(
                success=False,
                payer=intent.payer,
                network=network,
                errorReason=outcome.reason.value,
            )

        if receipt.success:
            self.metrics.settle_requests.labels(status="success").inc()
            if receipt.gas_used is not None:
                self.metrics.settle_gas_used.set(receipt.gas_used)
            if receipt.duration_seconds is not None:
                self.metrics.settle_transaction_time.observe(receipt.duration_seconds)
        else:
            self.metrics.settle_requests.labels(status="failed").inc()
            logger.error(
                "[SETTLE] Failed for %s nonce=%s: %s",
                intent.payer,
                intent.authorization.nonce_hex,
                receipt.failure_reason,
            )

        await self._audit_settle(
            intent,
            receipt,
            receipt.failure_reason,
            token_address,
            token,
            context,
            network,
            started,
        )

        return SettleResponse(
            success=receipt.success,
            transaction=receipt.transaction_hash,
            blockNumber=receipt.block_number,
            payer=intent.payer,
            network=network,
            errorReason=receipt.failure.value if receipt.failure else None,
        )

    # ------------------------------------------------------------------
    # list / health / info
    # ------------------------------------------------------------------

    async def list_supported(self) -> ListResponse:
        """Supported networks with resolved metadata for each whitelisted asset."""
        networks: list[SupportedNetwork] = []
        for context in self._chains.contexts():
            addresses = TokenRegistry.get_network_token_addresses(context.network_id)
            infos = await asyncio.gather(*(self._tokens.resolve(a, context) for a in addresses))
            networks.append(
                SupportedNetwork(
                    network=context.name,
                    chainId=context.chain_id,
                    relayerContract=context.relayer_contract_address,
                    supportedAssets=[
                        SupportedAsset(
                            asset=address,
                            symbol=info.symbol,
                            name=info.name,
                            decimals=info.decimals,
                            network=context.name,
                        )
                        for address, info in zip(addresses, infos)
                    ],
                )
            )
        return ListResponse(
            facilitator="a402",
            version=VERSION,
            networks=networks,
            features=FEATURES,
            endpoints=ENDPOINTS,
        )

    def health(self) -> HealthResponse:
        return HealthResponse(
            status="healthy",
            service=SERVICE_ID,
            network=self._chains.active.name,
            relayer=self.relayer_address,
        )

    def info(self) -> dict[str, Any]:
        """Service description for the root endpoint"""
        active = self._chains.active
        return {
            "service": SERVICE_NAME,
            "version": VERSION,
            "network": active.name,
            "chainId": active.chain_id,
            "relayerContract": active.relayer_contract_address,
            "endpoints": {
                "/": "GET - API information",
                "/health": "GET - Health check",
                "/list": "GET - List supported tokens",
                "/verify": "POST - Verify payment authorization",
                "/settle": "POST - Execute payment on-chain",
                "/metrics": "GET - Prometheus metrics",
            },
        }

    async def close(self) -> None:
        await self._audit.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _resolve_context(self, network: str | None) -> ChainContext:
        return self._chains.resolve(network)

    @staticmethod
    def _verifying_contract(relayer_contract: str | None, context: ChainContext) -> str:
        """
        EIP-712 verifyingContract for a request.

        Settlement always goes to the relayer configured for the network, and
        that contract only honors signatures bound to its own address.
        """
        configured = to_checksum_address(context.relayer_contract_address)
        if not relayer_contract:
            return configured
        if not is_address(relayer_contract):
            raise MalformedPayloadError("relayerContract", "relayerContract is not a valid address")
        if to_checksum_address(relayer_contract) != configured:
            raise MalformedPayloadError(
                "relayerContract",
                f"relayerContract {relayer_contract} is not the relayer for {context.name}",
            )
        return configured

    async def _annotate_token(self, token_address: str | None, context: ChainContext) -> TokenInfo:
        """Token metadata for logs and audit; validity never depends on it."""
        if not token_address:
            return fallback_token_info("")
        return await self._tokens.resolve(token_address, context)

    def _base_row(
        self,
        intent: SignedIntent,
        token_address: str | None,
        token: TokenInfo,
        context: ChainContext,
        network: str | None,
    ) -> dict[str, Any]:
        auth = intent.authorization
        return {
            "payer": auth.from_address,
            "recipient": auth.to,
            "token": token_address,
            "token_symbol": token.symbol,
            "amount": str(auth.value),
            "amount_formatted": format_units(auth.value, token.decimals),
            "nonce": auth.nonce_hex,
            "network": network or context.name,
            "chain_id": context.chain_id,
        }

    async def _audit_verify(
        self,
        outcome: ValidationOutcome,
        token_address: str | None,
        token: TokenInfo,
        context: ChainContext,
        network: str | None,
        started: float,
    ) -> None:
        row = self._base_row(outcome.intent, token_address, token, context, network)
        state = IntentState.VERIFIED if outcome.is_valid else IntentState.UNVERIFIED
        row.update(
            {
                "is_valid": outcome.is_valid,
                "invalid_reason": outcome.reason.value if outcome.reason else None,
                "state": state.value,
                "timestamp": _now_iso(),
                "duration_ms": int((time.perf_counter() - started) * 1000),
            }
        )
        await self._audit.record(VERIFY_TABLE, row)

    async def _audit_settle(
        self,
        intent: SignedIntent,
        receipt: SettlementReceipt | None,
        error_reason: str | None,
        token_address: str,
        token: TokenInfo,
        context: ChainContext,
        network: str,
        started: float,
    ) -> None:
        row = self._base_row(intent, token_address, token, context, network)
        success = receipt is not None and receipt.success
        row.update(
            {
                "transaction_hash": receipt.transaction_hash if receipt else None,
                "block_number": receipt.block_number if receipt else None,
                "gas_used": _as_text(receipt.gas_used if receipt else None),
                "gas_price": _as_text(receipt.gas_price if receipt else None),
                "success": success,
                "status": receipt.status.value if receipt else None,
                "state": (IntentState.SETTLED if success else IntentState.SETTLEMENT_FAILED).value,
                "error_reason": error_reason,
                "transaction_time_ms": (
                    int(receipt.duration_seconds * 1000)
                    if receipt and receipt.duration_seconds is not None
                    else None
                ),
                "total_time_ms": int((time.perf_counter() - started) * 1000),
                "timestamp": _now_iso(),
            }
        )
        await self._audit.record(SETTLE_TABLE, row)
