"""
Pytest configuration and fixtures
"""

from typing import Any

import pytest
from eth_account import Account
from eth_utils import to_checksum_address

from a402.config import ChainContextResolver, FacilitatorSettings, NetworkId
from a402.exceptions import (
    ChainReadError,
    TransactionError,
    TransactionSubmissionError,
    TransactionTimeoutError,
)
from a402.facilitator import A402Facilitator
from a402.metrics import FacilitatorMetrics
from a402.signers.facilitator import FacilitatorSigner
from a402.utils import build_eip712_domain, build_eip712_message, create_nonce, sign_typed_data

NOW = 1_700_000_000
PAYER_KEY = "0x" + "11" * 32
MERCHANT = to_checksum_address("0x" + "22" * 20)
RELAYER_CONTRACT = to_checksum_address("0x" + "a4" * 20)
OTHER_RELAYER = to_checksum_address("0x" + "bb" * 20)
UNKNOWN_TOKEN = to_checksum_address("0x" + "77" * 20)
FUJI_USDT = "0x9e9ab4d5e5e7d7e7e5e5e5e5e5e5e5e5e5e5e5e5"


class FakeChainSigner(FacilitatorSigner):
    """In-memory relayer contract and ERC20 metadata.

    transferWithAuthorization marks (from, nonce) used and reverts when it
    already is, like the deployed relayer.
    """

    def __init__(self, address: str = "0xFCAd0B19bB29D4674531d6f115237E16AfCE377c") -> None:
        self.address = address
        self.used: set[tuple[str, bytes]] = set()
        self.tokens: dict[str, tuple[int, str, str]] = {}
        self.reads: list[tuple[str, str]] = []
        self.writes: list[list[Any]] = []
        self.receipts: dict[str, dict[str, Any]] = {}
        self.fail_reads = False
        self.fail_submission = False
        self.receipt_timeout = False
        self.receipt_error = False

    def get_address(self) -> str:
        return self.address

    async def read_contract(self, context, contract_address, abi, method, args):
        self.reads.append((method, contract_address))
        if self.fail_reads:
            raise ChainReadError(method, contract_address, RuntimeError("rpc unavailable"))
        if method == "authorizationState":
            authorizer, nonce = args
            return (authorizer.lower(), nonce) in self.used
        token = self.tokens.get(contract_address.lower())
        if token is None:
            raise ChainReadError(method, contract_address, RuntimeError("execution reverted"))
        decimals, symbol, name = token
        return {"decimals": decimals, "symbol": symbol, "name": name}[method]

    async def write_contract(self, context, contract_address, abi, method, args, gas_limit):
        if self.fail_submission:
            raise TransactionSubmissionError("insufficient funds for gas")
        self.writes.append(list(args))
        tx_hash = "0x" + f"{len(self.writes):064x}"
        _token, from_address, _to, _value, _after, _before, nonce, _v, _r, _s = args
        key = (from_address.lower(), nonce)
        status = 0 if key in self.used else 1
        self.used.add(key)
        self.receipts[tx_hash] = {
            "hash": tx_hash,
            "blockNumber": 1000 + len(self.writes),
            "gasUsed": 85_000,
            "gasPrice": 25_000_000_000,
            "status": status,
        }
        return tx_hash

    async def wait_for_transaction_receipt(self, context, tx_hash, timeout=120):
        if self.receipt_timeout:
            raise TransactionTimeoutError(tx_hash, timeout)
        if self.receipt_error:
            raise TransactionError(f"Failed waiting for {tx_hash}: connection reset")
        return self.receipts[tx_hash]


def sign_authorization(
    private_key: str = PAYER_KEY,
    to: str = MERCHANT,
    value: int = 1_000_000,
    valid_after: int = NOW - 60,
    valid_before: int = NOW + 3600,
    nonce: str | None = None,
    chain_id: int = 43113,
    verifying_contract: str = RELAYER_CONTRACT,
    domain_name: str = "A402",
) -> dict[str, Any]:
    """Wire-format {authorization, signature} signed by *private_key*."""
    payer = Account.from_key(private_key).address
    nonce = nonce or create_nonce()
    domain = build_eip712_domain(domain_name, chain_id, verifying_contract)
    message = build_eip712_message(
        payer, to, value, valid_after, valid_before, bytes.fromhex(nonce[2:])
    )
    return {
        "authorization": {
            "from": payer,
            "to": to,
            "value": str(value),
            "validAfter": str(valid_after),
            "validBefore": str(valid_before),
            "nonce": nonce,
        },
        "signature": sign_typed_data(private_key, domain, message),
    }


def make_request_body(
    payload: dict[str, Any],
    token: str = FUJI_USDT,
    network: str | None = "avalanche-testnet",
    relayer_contract: str | None = RELAYER_CONTRACT,
) -> dict[str, Any]:
    requirements: dict[str, Any] = {}
    if network is not None:
        requirements["network"] = network
    if relayer_contract is not None:
        requirements["relayerContract"] = relayer_contract
    return {
        "paymentPayload": {"token": token, "payload": payload},
        "paymentRequirements": requirements,
    }


@pytest.fixture
def payer_address():
    return Account.from_key(PAYER_KEY).address


@pytest.fixture
def fake_signer():
    return FakeChainSigner()


@pytest.fixture
def settings():
    return FacilitatorSettings(
        relayer_private_key="0x0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef",
        active_network=NetworkId.TESTNET,
        relayer_addresses={NetworkId.TESTNET: RELAYER_CONTRACT},
    )


@pytest.fixture
def chains(settings):
    return ChainContextResolver(settings)


@pytest.fixture
def fuji(chains):
    return chains.active


@pytest.fixture
def facilitator(fake_signer, chains):
    return A402Facilitator(
        fake_signer,
        chains,
        metrics=FacilitatorMetrics(),
        clock=lambda: NOW,
    )


@pytest.fixture
def anyio_backend():
    # The implementation uses asyncio APIs directly; run anyio tests on asyncio only.
    return "asyncio"
