"""
A402 Facilitator: validation, settlement and the HTTP client
"""

from a402.facilitator.a402_facilitator import A402Facilitator
from a402.facilitator.facilitator_client import FacilitatorClient
from a402.facilitator.intent import Authorization, IntentState, SignedIntent, parse_signed_intent
from a402.facilitator.locks import NonceLockRegistry
from a402.facilitator.settlement import (
    SettlementExecutor,
    SettlementFailure,
    SettlementReceipt,
    SettlementStatus,
)
from a402.facilitator.validator import AuthorizationValidator, InvalidReason, ValidationOutcome

__all__ = [
    "A402Facilitator",
    "FacilitatorClient",
    "Authorization",
    "IntentState",
    "SignedIntent",
    "parse_signed_intent",
    "NonceLockRegistry",
    "SettlementExecutor",
    "SettlementFailure",
    "SettlementReceipt",
    "SettlementStatus",
    "AuthorizationValidator",
    "InvalidReason",
    "ValidationOutcome",
]
