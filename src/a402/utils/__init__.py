"""
A402 Utility Functions
"""

from a402.utils.eip712 import (
    SplitSignature,
    build_eip712_domain,
    build_eip712_message,
    create_nonce,
    create_validity_window,
    hex_to_bytes,
    recover_typed_data_signer,
    sign_typed_data,
    split_signature,
)
from a402.utils.units import format_units

__all__ = [
    "SplitSignature",
    "build_eip712_domain",
    "build_eip712_message",
    "create_nonce",
    "create_validity_window",
    "hex_to_bytes",
    "recover_typed_data_signer",
    "sign_typed_data",
    "split_signature",
    "format_units",
]
