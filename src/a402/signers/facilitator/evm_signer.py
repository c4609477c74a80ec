"""
EvmFacilitatorSigner - EVM facilitator signer implementation
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from a402.exceptions import (
    ChainReadError,
    TransactionError,
    TransactionSubmissionError,
    TransactionTimeoutError,
)
from a402.signers.facilitator.base import FacilitatorSigner

if TYPE_CHECKING:
    from a402.config import ChainContext

logger = logging.getLogger(__name__)


class EvmFacilitatorSigner(FacilitatorSigner):
    """EVM facilitator signer implementation using web3.py"""

    def __init__(self, private_key: str, rpc_timeout: float = 10.0) -> None:
        if not private_key.startswith("0x"):
            private_key = "0x" + private_key
        self._private_key = private_key
        self._address = self._derive_address(private_key)
        self._rpc_timeout = rpc_timeout
        self._async_web3_clients: dict[str, Any] = {}
        logger.debug("EvmFacilitatorSigner initialized", extra={"address": self._address})

    @classmethod
    def from_private_key(
        cls, private_key: str, rpc_timeout: float = 10.0
    ) -> "EvmFacilitatorSigner":
        """Create signer from private key"""
        return cls(private_key, rpc_timeout)

    @staticmethod
    def _derive_address(private_key: str) -> str:
        """Derive EVM address from private key"""
        from eth_account import Account

        return Account.from_key(private_key).address

    def get_address(self) -> str:
        return self._address

    def _ensure_async_web3_client(self, context: "ChainContext") -> Any:
        """Lazy initialize async web3 client for the given network."""
        key = context.network_id.value
        if key not in self._async_web3_clients:
            from web3 import AsyncHTTPProvider, AsyncWeb3
            from web3.middleware import ExtraDataToPOAMiddleware

            provider = AsyncHTTPProvider(
                context.rpc_endpoint,
                request_kwargs={"timeout": self._rpc_timeout},
            )
            w3 = AsyncWeb3(provider)
            w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
            self._async_web3_clients[key] = w3
            logger.info(
                "Created web3 client for network=%s chainId=%s (%s)",
                context.name,
                context.chain_id,
                context.rpc_endpoint,
            )

        return self._async_web3_clients[key]

    def _contract(self, w3: Any, contract_address: str, abi: list[dict[str, Any]]) -> Any:
        from web3 import Web3

        return w3.eth.contract(address=Web3.to_checksum_address(contract_address), abi=abi)

    async def read_contract(
        self,
        context: "ChainContext",
        contract_address: str,
        abi: list[dict[str, Any]],
        method: str,
        args: list[Any],
    ) -> Any:
        """Execute a view call with a bounded timeout."""
        try:
            w3 = self._ensure_async_web3_client(context)
            contract = self._contract(w3, contract_address, abi)
            call = getattr(contract.functions, method)(*args).call()
            return await asyncio.wait_for(call, timeout=self._rpc_timeout)
        except Exception as e:
            logger.warning(
                "Contract read failed: %s",
                e,
                extra={"method": method, "contract": contract_address},
            )
            raise ChainReadError(method, contract_address, e) from e

    async def write_contract(
        self,
        context: "ChainContext",
        contract_address: str,
        abi: list[dict[str, Any]],
        method: str,
        args: list[Any],
        gas_limit: int,
    ) -> str:
        """Build, sign and broadcast a contract transaction (async)."""
        from web3 import Web3

        w3 = self._ensure_async_web3_client(context)
        try:
            contract = self._contract(w3, contract_address, abi)
            func = getattr(contract.functions, method)

            nonce = await asyncio.wait_for(
                w3.eth.get_transaction_count(self._address, "pending"),
                timeout=self._rpc_timeout,
            )
            tx = await asyncio.wait_for(
                func(*args).build_transaction(
                    {
                        "from": self._address,
                        "nonce": nonce,
                        "chainId": context.chain_id,
                        "gas": gas_limit,
                    }
                ),
                timeout=self._rpc_timeout,
            )

            signed_tx = w3.eth.account.sign_transaction(tx, private_key=self._private_key)
            tx_hash = await asyncio.wait_for(
                w3.eth.send_raw_transaction(signed_tx.raw_transaction),
                timeout=self._rpc_timeout,
            )
            return Web3.to_hex(tx_hash)
        except Exception as e:
            logger.error(
                "Contract write failed: %s",
                e,
                exc_info=True,
                extra={"method": method, "contract": contract_address},
            )
            raise TransactionSubmissionError(f"{method} submission failed: {e}") from e

    async def wait_for_transaction_receipt(
        self,
        context: "ChainContext",
        tx_hash: str,
        timeout: float = 120,
    ) -> dict[str, Any]:
        """Wait for EVM transaction confirmation"""
        from web3.exceptions import TimeExhausted

        w3 = self._ensure_async_web3_client(context)
        try:
            # web3 polls internally; the outer bound also covers a hung provider
            receipt = await asyncio.wait_for(
                w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout),
                timeout=timeout + self._rpc_timeout,
            )
        except (TimeExhausted, asyncio.TimeoutError) as e:
            raise TransactionTimeoutError(tx_hash, timeout) from e
        except Exception as e:
            raise TransactionError(f"Failed waiting for {tx_hash}: {e}") from e

        return {
            "hash": tx_hash,
            "blockNumber": int(receipt["blockNumber"]),
            "gasUsed": int(receipt["gasUsed"]),
            "gasPrice": int(receipt.get("effectiveGasPrice", 0) or 0),
            "status": int(receipt["status"]),
            "receipt": receipt,
        }
