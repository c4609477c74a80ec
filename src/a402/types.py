"""
Type definitions for the A402 verify/settle protocol
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, Field

# Integer fields arrive either as JSON numbers or decimal strings
IntLike = Union[int, str]


class TransferAuthorization(BaseModel):
    """Authorization fields as received on the wire.

    Every field is optional here; completeness and well-formedness are
    decided by the authorization validator so that a missing field is
    reported as a validation outcome rather than a parse error.
    """

    from_address: Optional[str] = Field(None, alias="from")
    to: Optional[str] = None
    value: Optional[IntLike] = None
    valid_after: Optional[IntLike] = Field(None, alias="validAfter")
    valid_before: Optional[IntLike] = Field(None, alias="validBefore")
    nonce: Optional[str] = None

    class Config:
        populate_by_name = True


class PaymentPayloadData(BaseModel):
    """Signed authorization"""

    authorization: Optional[TransferAuthorization] = None
    signature: Optional[str] = None


class PaymentPayload(BaseModel):
    """Payment payload sent by client"""

    token: Optional[str] = None
    payload: Optional[PaymentPayloadData] = None

    class Config:
        populate_by_name = True
        extra = "allow"


class PaymentRequirements(BaseModel):
    """Payment requirements the payload is checked against"""

    network: Optional[str] = None
    relayer_contract: Optional[str] = Field(None, alias="relayerContract")

    class Config:
        populate_by_name = True
        extra = "allow"


class FacilitatorRequest(BaseModel):
    """Body of /verify and /settle"""

    payment_payload: PaymentPayload = Field(alias="paymentPayload")
    payment_requirements: PaymentRequirements = Field(alias="paymentRequirements")

    class Config:
        populate_by_name = True


class VerifyResponse(BaseModel):
    """Verification response from facilitator"""

    is_valid: bool = Field(alias="isValid")
    invalid_reason: Optional[str] = Field(None, alias="invalidReason")
    payer: Optional[str] = None

    class Config:
        populate_by_name = True


class SettleResponse(BaseModel):
    """Settlement response from facilitator"""

    success: bool
    transaction: Optional[str] = None
    block_number: Optional[int] = Field(None, alias="blockNumber")
    payer: Optional[str] = None
    network: Optional[str] = None
    error_reason: Optional[str] = Field(None, alias="errorReason")

    class Config:
        populate_by_name = True


class SupportedAsset(BaseModel):
    """Whitelisted asset with resolved metadata"""

    asset: str
    symbol: str
    name: str
    decimals: int
    network: str


class SupportedNetwork(BaseModel):
    """Deployed network and its assets"""

    network: str
    chain_id: int = Field(alias="chainId")
    relayer_contract: str = Field(alias="relayerContract")
    supported_assets: list[SupportedAsset] = Field(alias="supportedAssets")

    class Config:
        populate_by_name = True


class ListResponse(BaseModel):
    """Response of /list"""

    facilitator: str
    version: str
    networks: list[SupportedNetwork]
    features: list[str]
    endpoints: dict[str, str]


class HealthResponse(BaseModel):
    """Response of /health"""

    status: str
    service: str
    network: str
    relayer: str


def dump(model: BaseModel) -> dict[str, Any]:
    """Serialize a response model with wire aliases, dropping unset optionals."""
    return model.model_dump(by_alias=True, exclude_none=True)
