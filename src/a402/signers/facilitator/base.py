"""
Facilitator signer base interface
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from a402.config import ChainContext


class FacilitatorSigner(ABC):
    """
    Abstract base class for facilitator signers.

    Holds the relayer account and the chain clients used to read contract
    state and to submit settlement transactions. Every call is scoped to
    an explicit ChainContext.
    """

    @abstractmethod
    def get_address(self) -> str:
        """Get the relayer account address"""
        pass

    @abstractmethod
    async def read_contract(
        self,
        context: "ChainContext",
        contract_address: str,
        abi: list[dict[str, Any]],
        method: str,
        args: list[Any],
    ) -> Any:
        """
        Execute a read-only contract call.

        Args:
            context: Network to read from
            contract_address: Contract address
            abi: Contract ABI
            method: Method name
            args: Method arguments

        Returns:
            Decoded return value

        Raises:
            ChainReadError: On RPC failure, revert or timeout
        """
        pass

    @abstractmethod
    async def write_contract(
        self,
        context: "ChainContext",
        contract_address: str,
        abi: list[dict[str, Any]],
        method: str,
        args: list[Any],
        gas_limit: int,
    ) -> str:
        """
        Sign and broadcast a contract write transaction.

        Args:
            context: Network to submit to
            contract_address: Contract address
            abi: Contract ABI
            method: Method name
            args: Method arguments
            gas_limit: Gas ceiling for the transaction

        Returns:
            Transaction hash (0x-prefixed)

        Raises:
            TransactionSubmissionError: If the transaction could not be sent
        """
        pass

    @abstractmethod
    async def wait_for_transaction_receipt(
        self,
        context: "ChainContext",
        tx_hash: str,
        timeout: float = 120,
    ) -> dict[str, Any]:
        """
        Wait for transaction confirmation.

        Args:
            context: Network the transaction was submitted to
            tx_hash: Transaction hash
            timeout: Timeout in seconds

        Returns:
            Receipt dict with hash, blockNumber, gasUsed, gasPrice and status (1 or 0)

        Raises:
            TransactionTimeoutError: If the receipt is not available in time
            TransactionError: On any other RPC failure while waiting
        """
        pass
