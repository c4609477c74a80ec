"""
AuthorizationValidator - decides whether a signed payment intent is valid.

Four gates run in order and the first failure is reported:
structural completeness, EIP-712 signature recovery, replay state on the
relayer contract, and the validAfter/validBefore window. The validator
keeps no state between calls; the only I/O is the replay lookup.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable

from a402.abi import A402_RELAYER_ABI
from a402.config import DEFAULT_DOMAIN_NAME
from a402.exceptions import MalformedPayloadError
from a402.facilitator.intent import SignedIntent, parse_signed_intent
from a402.types import PaymentPayloadData
from a402.utils.eip712 import build_eip712_domain, recover_typed_data_signer

if TYPE_CHECKING:
    from a402.config import ChainContext
    from a402.signers.facilitator import FacilitatorSigner

logger = logging.getLogger(__name__)


class InvalidReason(str, Enum):
    """Validation rejections, valued by their wire text"""

    MALFORMED_PAYLOAD = "Invalid authorization: missing or malformed fields"
    INVALID_SIGNATURE = "Invalid signature"
    NONCE_ALREADY_USED = "Nonce already used"
    NOT_YET_VALID = "Authorization not yet valid"
    EXPIRED = "Authorization expired"


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of one validation run"""

    is_valid: bool
    reason: InvalidReason | None = None
    payer: str | None = None
    intent: SignedIntent | None = None
    detail: str | None = None

    @classmethod
    def valid(cls, intent: SignedIntent) -> "ValidationOutcome":
        return cls(is_valid=True, payer=intent.payer, intent=intent)

    @classmethod
    def invalid(
        cls,
        reason: InvalidReason,
        intent: SignedIntent | None = None,
        detail: str | None = None,
    ) -> "ValidationOutcome":
        return cls(
            is_valid=False,
            reason=reason,
            payer=intent.payer if intent else None,
            intent=intent,
            detail=detail,
        )


class AuthorizationValidator:
    """Stateless verifier for TransferWithAuthorization intents"""

    def __init__(
        self,
        signer: "FacilitatorSigner",
        domain_name: str = DEFAULT_DOMAIN_NAME,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._signer = signer
        self._domain_name = domain_name
        self._clock = clock

    @property
    def domain_name(self) -> str:
        return self._domain_name

    async def validate(
        self,
        payload: PaymentPayloadData | None,
        context: "ChainContext",
        verifying_contract: str | None = None,
    ) -> ValidationOutcome:
        """
        Validate a wire payload.

        Args:
            payload: Authorization and signature as received
            context: Resolved network parameters
            verifying_contract: Relayer address the payer signed for;
                defaults to the context's relayer contract

        Returns:
            ValidationOutcome

        Raises:
            ChainReadError: If the replay state cannot be read
        """
        try:
            intent = parse_signed_intent(payload)
        except MalformedPayloadError as e:
            return ValidationOutcome.invalid(InvalidReason.MALFORMED_PAYLOAD, detail=str(e))
        return await self.validate_intent(intent, context, verifying_contract)

    async def validate_intent(
        self,
        intent: SignedIntent,
        context: "ChainContext",
        verifying_contract: str | None = None,
    ) -> ValidationOutcome:
        """Run signature, replay and time gates on an already parsed intent."""
        auth = intent.authorization

        if not self.verify_signature(intent, context, verifying_contract):
            return ValidationOutcome.invalid(InvalidReason.INVALID_SIGNATURE, intent)

        used = await self._signer.read_contract(
            context,
            context.relayer_contract_address,
            A402_RELAYER_ABI,
            "authorizationState",
            [auth.from_address, auth.nonce],
        )
        if used:
            return ValidationOutcome.invalid(InvalidReason.NONCE_ALREADY_USED, intent)

        now = int(self._clock())
        if now < auth.valid_after:
            return ValidationOutcome.invalid(InvalidReason.NOT_YET_VALID, intent)
        if now >= auth.valid_before:
            return ValidationOutcome.invalid(InvalidReason.EXPIRED, intent)

        return ValidationOutcome.valid(intent)

    def verify_signature(
        self,
        intent: SignedIntent,
        context: "ChainContext",
        verifying_contract: str | None = None,
    ) -> bool:
        """Recover the EIP-712 signer and compare it with the authorization's from."""
        domain = build_eip712_domain(
            self._domain_name,
            context.chain_id,
            verifying_contract or context.relayer_contract_address,
        )
        try:
            recovered = recover_typed_data_signer(
                domain, intent.authorization.to_eip712_message(), intent.signature
            )
        except Exception as e:
            logger.debug("Signature recovery failed", extra={"error": str(e)})
            return False
        return recovered.lower() == intent.payer.lower()
