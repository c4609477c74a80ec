"""
a402 - Gasless payment facilitator for the A402 relayer on Avalanche C-Chain

Verifies EIP-712 TransferWithAuthorization intents and settles them
on-chain through the A402Relayer contract.
"""

__version__ = "1.0.0"

from a402.config import ChainContext, ChainContextResolver, FacilitatorSettings, NetworkId
from a402.exceptions import (
    A402Error,
    ChainReadError,
    ConfigurationError,
    MalformedPayloadError,
    SettlementError,
    TransactionError,
    TransactionSubmissionError,
    TransactionTimeoutError,
    UnknownNetworkError,
    UnknownTokenError,
    ValidationError,
)
from a402.tokens import TokenInfo, TokenRegistry
from a402.types import (
    FacilitatorRequest,
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    VerifyResponse,
)

__all__ = [
    "__version__",
    # Config
    "ChainContext",
    "ChainContextResolver",
    "FacilitatorSettings",
    "NetworkId",
    # Types
    "FacilitatorRequest",
    "PaymentPayload",
    "PaymentRequirements",
    "VerifyResponse",
    "SettleResponse",
    # Exceptions
    "A402Error",
    "ChainReadError",
    "ConfigurationError",
    "MalformedPayloadError",
    "SettlementError",
    "TransactionError",
    "TransactionSubmissionError",
    "TransactionTimeoutError",
    "UnknownNetworkError",
    "UnknownTokenError",
    "ValidationError",
    # Tokens
    "TokenInfo",
    "TokenRegistry",
]
