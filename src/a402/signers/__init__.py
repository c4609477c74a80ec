"""
A402 Signers
"""

from a402.signers.facilitator import EvmFacilitatorSigner, FacilitatorSigner

__all__ = ["FacilitatorSigner", "EvmFacilitatorSigner"]
