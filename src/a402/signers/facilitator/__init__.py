"""
Facilitator Signers
"""

from a402.signers.facilitator.base import FacilitatorSigner
from a402.signers.facilitator.evm_signer import EvmFacilitatorSigner

__all__ = ["FacilitatorSigner", "EvmFacilitatorSigner"]
