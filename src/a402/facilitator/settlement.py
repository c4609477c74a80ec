"""
SettlementExecutor - submits transferWithAuthorization through the relayer.

The executor does not re-derive validity; callers validate first and the
relayer contract is the final authority (it reverts on a used nonce, an
invalid window, a paused contract or a non-whitelisted token). Failed
settlements are never retried here: a second submission with the same
nonce is rejected by the contract, so resubmission is the caller's call.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable

from a402.abi import A402_RELAYER_ABI
from a402.config import DEFAULT_CONFIRMATION_TIMEOUT, DEFAULT_SETTLE_GAS_LIMIT
from a402.exceptions import TransactionError, TransactionSubmissionError, TransactionTimeoutError
from a402.facilitator.intent import SignedIntent

if TYPE_CHECKING:
    from a402.config import ChainContext
    from a402.signers.facilitator import FacilitatorSigner

logger = logging.getLogger(__name__)


class SettlementStatus(str, Enum):
    """Terminal settlement states"""

    SETTLED = "settled"
    FAILED = "failed"
    # Submitted but unconfirmed within the timeout; may still be mined
    UNKNOWN = "unknown"


class SettlementFailure(str, Enum):
    """Caller-facing settlement failure reasons"""

    SUBMISSION_FAILED = "Settlement transaction failed"
    REVERTED = "Settlement transaction reverted"
    TIMEOUT = "Settlement confirmation timed out"
    UNCONFIRMED = "Settlement outcome unknown"
    IN_PROGRESS = "Settlement already in progress"


@dataclass(frozen=True)
class SettlementReceipt:
    """Outcome of one settle attempt; never updated after creation"""

    success: bool
    status: SettlementStatus
    transaction_hash: str | None = None
    block_number: int | None = None
    gas_used: int | None = None
    gas_price: int | None = None
    failure: SettlementFailure | None = None
    failure_reason: str | None = None
    duration_seconds: float | None = None


class SettlementExecutor:
    """Drives the on-chain transfer for a validated SignedIntent"""

    def __init__(
        self,
        signer: "FacilitatorSigner",
        gas_limit: int = DEFAULT_SETTLE_GAS_LIMIT,
        confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._signer = signer
        self._gas_limit = gas_limit
        self._confirmation_timeout = confirmation_timeout
        self._clock = clock

    async def settle(
        self,
        intent: SignedIntent,
        context: "ChainContext",
        token_address: str,
    ) -> SettlementReceipt:
        """
        Submit the relayer call and wait for one confirmation.

        Args:
            intent: Validated signed intent
            context: Network to settle on
            token_address: ERC20 token to transfer

        Returns:
            SettlementReceipt; failures are reported, not raised
        """
        auth = intent.authorization
        sig = intent.split_signature()
        args = [
            token_address,
            auth.from_address,
            auth.to,
            auth.value,
            auth.valid_after,
            auth.valid_before,
            auth.nonce,
            sig.v,
            sig.r,
            sig.s,
        ]

        logger.info(
            "[SETTLE] Calling transferWithAuthorization on relayer=%s token=%s network=%s",
            context.relayer_contract_address,
            token_address,
            context.name,
        )

        try:
            tx_hash = await self._signer.write_contract(
                context,
                context.relayer_contract_address,
                A402_RELAYER_ABI,
                "transferWithAuthorization",
                args,
                self._gas_limit,
            )
        except TransactionSubmissionError as e:
            return SettlementReceipt(
                success=False,
                status=SettlementStatus.FAILED,
                failure=SettlementFailure.SUBMISSION_FAILED,
                failure_reason=str(e),
            )

        started = self._clock()
        try:
            receipt = await self._signer.wait_for_transaction_receipt(
                context, tx_hash, timeout=self._confirmation_timeout
            )
        except TransactionTimeoutError as e:
            logger.warning("[SETTLE] %s", e)
            return SettlementReceipt(
                success=False,
                status=SettlementStatus.UNKNOWN,
                transaction_hash=tx_hash,
                failure=SettlementFailure.TIMEOUT,
                failure_reason=str(e),
                duration_seconds=self._clock() - started,
            )
        except TransactionError as e:
            # The transaction was broadcast; whether it lands is not known
            logger.error("[SETTLE] Receipt wait failed for %s: %s", tx_hash, e)
            return SettlementReceipt(
                success=False,
                status=SettlementStatus.UNKNOWN,
                transaction_hash=tx_hash,
                failure=SettlementFailure.UNCONFIRMED,
                failure_reason=str(e),
                duration_seconds=self._clock() - started,
            )
        duration = self._clock() - started

        if receipt.get("status") != 1:
            block = receipt.get("blockNumber")
            return SettlementReceipt(
                success=False,
                status=SettlementStatus.FAILED,
                transaction_hash=tx_hash,
                failure=SettlementFailure.REVERTED,
                failure_reason=f"Transaction {tx_hash} reverted in block {block}",
                duration_seconds=duration,
            )

        logger.info(
            "[SETTLE] %s... | Block %s | Gas: %s | %.2fs",
            tx_hash[:10],
            receipt.get("blockNumber"),
            receipt.get("gasUsed"),
            duration,
        )
        return SettlementReceipt(
            success=True,
            status=SettlementStatus.SETTLED,
            transaction_hash=receipt.get("hash", tx_hash),
            block_number=receipt.get("blockNumber"),
            gas_used=receipt.get("gasUsed"),
            gas_price=receipt.get("gasPrice"),
            duration_seconds=duration,
        )
