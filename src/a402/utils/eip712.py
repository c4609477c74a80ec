"""
EIP-712 helpers for TransferWithAuthorization.

Builds the typed-data domain and message, recovers the signer of a
signature and splits signatures into the (v, r, s) form the relayer
contract expects.
"""

import secrets
import time
from dataclasses import dataclass
from typing import Any

from eth_account import Account
from eth_account.messages import encode_typed_data

from a402.abi import EIP712_DOMAIN_TYPE, TRANSFER_AUTH_EIP712_TYPES, TRANSFER_AUTH_PRIMARY_TYPE

DOMAIN_VERSION = "1"

# Default validity period (1 hour)
DEFAULT_VALIDITY_SECONDS = 3600


@dataclass(frozen=True)
class SplitSignature:
    """Signature components in contract-call order"""

    v: int
    r: bytes
    s: bytes


def strip_hex_prefix(value: str) -> str:
    return value[2:] if value[:2] in ("0x", "0X") else value


def hex_to_bytes(value: str) -> bytes:
    """Decode a 0x-prefixed (or bare) hex string."""
    return bytes.fromhex(strip_hex_prefix(value))


def build_eip712_domain(
    name: str,
    chain_id: int,
    verifying_contract: str,
    version: str = DOMAIN_VERSION,
) -> dict[str, Any]:
    """Build EIP-712 domain dict."""
    return {
        "name": name,
        "version": version,
        "chainId": chain_id,
        "verifyingContract": verifying_contract,
    }


def build_eip712_message(
    from_address: str,
    to: str,
    value: int,
    valid_after: int,
    valid_before: int,
    nonce: bytes,
) -> dict[str, Any]:
    """Build EIP-712 message dict for TransferWithAuthorization."""
    return {
        "from": from_address,
        "to": to,
        "value": value,
        "validAfter": valid_after,
        "validBefore": valid_before,
        "nonce": nonce,
    }


def build_typed_data(domain: dict[str, Any], message: dict[str, Any]) -> dict[str, Any]:
    return {
        "types": {"EIP712Domain": EIP712_DOMAIN_TYPE, **TRANSFER_AUTH_EIP712_TYPES},
        "primaryType": TRANSFER_AUTH_PRIMARY_TYPE,
        "domain": domain,
        "message": message,
    }


def recover_typed_data_signer(
    domain: dict[str, Any],
    message: dict[str, Any],
    signature: bytes,
) -> str:
    """Recover the address that signed *message* under *domain*.

    Raises whatever eth_account raises for an unrecoverable signature
    (bad length, invalid v, point not on curve).
    """
    signable = encode_typed_data(full_message=build_typed_data(domain, message))
    return Account.recover_message(signable, signature=signature)


def sign_typed_data(
    private_key: str,
    domain: dict[str, Any],
    message: dict[str, Any],
) -> str:
    """Sign a TransferWithAuthorization message (payer side)."""
    signable = encode_typed_data(full_message=build_typed_data(domain, message))
    signed = Account.sign_message(signable, private_key=private_key)
    return "0x" + strip_hex_prefix(signed.signature.hex())


def split_signature(signature: bytes) -> SplitSignature:
    """Split a 65-byte signature into v, r, s.

    v is normalized to 27/28 since some wallets emit 0/1.
    """
    if len(signature) != 65:
        raise ValueError(f"Signature must be 65 bytes, got {len(signature)}")
    v = signature[64]
    if v < 27:
        v += 27
    return SplitSignature(v=v, r=signature[:32], s=signature[32:64])


def create_nonce() -> str:
    """Generate a random 32-byte nonce (0x-prefixed hex)."""
    return "0x" + secrets.token_hex(32)


def create_validity_window(
    duration: int = DEFAULT_VALIDITY_SECONDS,
) -> tuple[int, int]:
    """Create (validAfter, validBefore) timestamps.

    Adds a 60-second buffer before *now* to account for clock skew.
    """
    now = int(time.time())
    return now - 60, now + duration
