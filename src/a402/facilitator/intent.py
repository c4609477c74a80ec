"""
Signed payment intent value objects.

The wire TransferAuthorization is permissive; SignedIntent is the checked,
immutable form that validation and settlement operate on.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from eth_utils import is_address, to_checksum_address

from a402.exceptions import MalformedPayloadError
from a402.types import PaymentPayloadData
from a402.utils.eip712 import SplitSignature, build_eip712_message, split_signature

UINT256_MAX = 2**256 - 1


class IntentState(str, Enum):
    """Lifecycle of one SignedIntent across /verify and /settle.

    UNVERIFIED -> VERIFIED -> SETTLING -> SETTLED | SETTLEMENT_FAILED
    SETTLED and SETTLEMENT_FAILED are terminal.
    """

    UNVERIFIED = "unverified"
    VERIFIED = "verified"
    SETTLING = "settling"
    SETTLED = "settled"
    SETTLEMENT_FAILED = "settlement_failed"


@dataclass(frozen=True)
class Authorization:
    """TransferWithAuthorization fields, as signed by the payer"""

    from_address: str
    to: str
    value: int
    valid_after: int
    valid_before: int
    nonce: bytes

    @property
    def nonce_hex(self) -> str:
        return "0x" + self.nonce.hex()

    def to_eip712_message(self) -> dict[str, Any]:
        return build_eip712_message(
            self.from_address,
            self.to,
            self.value,
            self.valid_after,
            self.valid_before,
            self.nonce,
        )


@dataclass(frozen=True)
class SignedIntent:
    """An Authorization together with the payer's 65-byte signature"""

    authorization: Authorization
    signature: bytes

    @property
    def payer(self) -> str:
        return self.authorization.from_address

    @property
    def lock_key(self) -> tuple[str, str]:
        """(authorizer, nonce) identity used for replay bookkeeping"""
        return self.authorization.from_address.lower(), self.authorization.nonce_hex

    def split_signature(self) -> SplitSignature:
        return split_signature(self.signature)


def _require(value: Any, field: str) -> Any:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MalformedPayloadError(field, f"Missing required field: {field}")
    return value


def parse_address(value: Any, field: str) -> str:
    _require(value, field)
    if not isinstance(value, str) or not is_address(value):
        raise MalformedPayloadError(field, f"{field} is not a valid address")
    return to_checksum_address(value)


def parse_uint(value: Any, field: str) -> int:
    _require(value, field)
    if isinstance(value, bool):
        raise MalformedPayloadError(field, f"{field} must be an integer")
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        number = int(value.strip())
    else:
        raise MalformedPayloadError(field, f"{field} must be a non-negative integer")
    if not 0 <= number <= UINT256_MAX:
        raise MalformedPayloadError(field, f"{field} is out of uint256 range")
    return number


def parse_hex_bytes(value: Any, field: str, length: int) -> bytes:
    _require(value, field)
    if not isinstance(value, str):
        raise MalformedPayloadError(field, f"{field} must be a hex string")
    body = value[2:] if value[:2] in ("0x", "0X") else value
    try:
        raw = bytes.fromhex(body)
    except ValueError:
        raise MalformedPayloadError(field, f"{field} is not valid hex")
    if len(raw) != length:
        raise MalformedPayloadError(field, f"{field} must be {length} bytes, got {len(raw)}")
    return raw


def parse_signed_intent(data: PaymentPayloadData | None) -> SignedIntent:
    """Check structural completeness and build a SignedIntent.

    Raises:
        MalformedPayloadError: On the first missing or ill-formed field
    """
    if data is None:
        raise MalformedPayloadError("payload", "Missing payload")
    auth = data.authorization
    if auth is None:
        raise MalformedPayloadError("authorization", "Missing authorization")

    authorization = Authorization(
        from_address=parse_address(auth.from_address, "from"),
        to=parse_address(auth.to, "to"),
        value=parse_uint(auth.value, "value"),
        valid_after=parse_uint(auth.valid_after, "validAfter"),
        valid_before=parse_uint(auth.valid_before, "validBefore"),
        nonce=parse_hex_bytes(auth.nonce, "nonce", 32),
    )
    signature = parse_hex_bytes(data.signature, "signature", 65)
    return SignedIntent(authorization=authorization, signature=signature)
