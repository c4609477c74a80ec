"""
A402 Network Configuration

Process-wide settings are read once from the environment at startup and
turned into one immutable ChainContext per deployed network.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict

from dotenv import load_dotenv
from eth_utils import is_address, to_checksum_address

from a402.exceptions import ConfigurationError, UnknownNetworkError


class NetworkId(str, Enum):
    """Supported Avalanche C-Chain networks"""

    MAINNET = "mainnet"
    TESTNET = "testnet"


CHAIN_IDS: Dict[NetworkId, int] = {
    NetworkId.MAINNET: 43114,
    NetworkId.TESTNET: 43113,  # Fuji
}

DEFAULT_RPC_URLS: Dict[NetworkId, str] = {
    NetworkId.MAINNET: "https://api.avax.network/ext/bc/C/rpc",
    NetworkId.TESTNET: "https://api.avax-test.network/ext/bc/C/rpc",
}

# Names reported back to callers (/list, /health)
DISPLAY_NAMES: Dict[NetworkId, str] = {
    NetworkId.MAINNET: "avalanche",
    NetworkId.TESTNET: "avalanche-testnet",
}

NETWORK_ALIASES: Dict[str, NetworkId] = {
    "mainnet": NetworkId.MAINNET,
    "avalanche": NetworkId.MAINNET,
    "avalanche-mainnet": NetworkId.MAINNET,
    "eip155:43114": NetworkId.MAINNET,
    "testnet": NetworkId.TESTNET,
    "fuji": NetworkId.TESTNET,
    "avalanche-fuji": NetworkId.TESTNET,
    "avalanche-testnet": NetworkId.TESTNET,
    "eip155:43113": NetworkId.TESTNET,
}

DEFAULT_DOMAIN_NAME = "A402"
DEFAULT_RPC_TIMEOUT = 10.0
DEFAULT_CONFIRMATION_TIMEOUT = 120.0
# Sufficient for one ERC20 transferFrom through the relayer
DEFAULT_SETTLE_GAS_LIMIT = 200_000
DEFAULT_PORT = 3402
# Per client address, across all endpoints
DEFAULT_RATE_LIMIT = "100/minute"


def parse_network_id(name: str | None) -> NetworkId:
    """Map a network name or alias to a NetworkId.

    Raises:
        UnknownNetworkError: If *name* is not a recognized network
    """
    if not name:
        raise UnknownNetworkError(name)
    network_id = NETWORK_ALIASES.get(name.strip().lower())
    if network_id is None:
        raise UnknownNetworkError(name)
    return network_id


@dataclass(frozen=True)
class ChainContext:
    """Network parameters fixed for one request"""

    network_id: NetworkId
    chain_id: int
    rpc_endpoint: str
    relayer_contract_address: str

    @property
    def name(self) -> str:
        return DISPLAY_NAMES[self.network_id]

    @property
    def caip2(self) -> str:
        return f"eip155:{self.chain_id}"


@dataclass(frozen=True)
class FacilitatorSettings:
    """Facilitator process configuration"""

    relayer_private_key: str
    active_network: NetworkId
    relayer_addresses: Dict[NetworkId, str]
    rpc_urls: Dict[NetworkId, str] = field(default_factory=lambda: dict(DEFAULT_RPC_URLS))
    domain_name: str = DEFAULT_DOMAIN_NAME
    rpc_timeout: float = DEFAULT_RPC_TIMEOUT
    confirmation_timeout: float = DEFAULT_CONFIRMATION_TIMEOUT
    settle_gas_limit: int = DEFAULT_SETTLE_GAS_LIMIT
    supabase_url: str | None = None
    supabase_key: str | None = None
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    rate_limit: str = DEFAULT_RATE_LIMIT
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.active_network not in self.relayer_addresses:
            raise ConfigurationError(
                f"No relayer contract configured for active network {self.active_network.value}"
            )

    @classmethod
    def from_env(cls, env_path: str | None = None) -> "FacilitatorSettings":
        """Load settings from the process environment (and an optional .env file).

        Raises:
            ConfigurationError: If a required value is missing or invalid
        """
        if env_path is not None:
            load_dotenv(env_path)
        else:
            load_dotenv()

        private_key = os.getenv("RELAYER_PRIVATE_KEY", "").strip()
        relayer_address = os.getenv("A402_RELAYER_ADDRESS", "").strip()
        if not private_key:
            raise ConfigurationError("Missing RELAYER_PRIVATE_KEY in environment")
        if not relayer_address:
            raise ConfigurationError("Missing A402_RELAYER_ADDRESS in environment")
        if not private_key.startswith("0x"):
            private_key = f"0x{private_key}"

        network_name = os.getenv("NETWORK", NetworkId.TESTNET.value).strip() or "testnet"
        try:
            active = parse_network_id(network_name)
        except UnknownNetworkError as e:
            raise ConfigurationError(f"Invalid NETWORK value: {network_name}") from e

        relayers = {active: _checksum("A402_RELAYER_ADDRESS", relayer_address)}
        for network_id in NetworkId:
            env_name = f"A402_RELAYER_ADDRESS_{network_id.value.upper()}"
            override = os.getenv(env_name, "").strip()
            if override:
                relayers[network_id] = _checksum(env_name, override)

        rpc_urls = {
            NetworkId.MAINNET: os.getenv("AVAX_RPC_URL", "").strip()
            or DEFAULT_RPC_URLS[NetworkId.MAINNET],
            NetworkId.TESTNET: os.getenv("AVAX_TESTNET_RPC_URL", "").strip()
            or DEFAULT_RPC_URLS[NetworkId.TESTNET],
        }

        return cls(
            relayer_private_key=private_key,
            active_network=active,
            relayer_addresses=relayers,
            rpc_urls=rpc_urls,
            domain_name=os.getenv("A402_DOMAIN_NAME", "").strip() or DEFAULT_DOMAIN_NAME,
            rpc_timeout=_number("A402_RPC_TIMEOUT", DEFAULT_RPC_TIMEOUT, float),
            confirmation_timeout=_number(
                "A402_CONFIRMATION_TIMEOUT", DEFAULT_CONFIRMATION_TIMEOUT, float
            ),
            settle_gas_limit=_number("A402_SETTLE_GAS_LIMIT", DEFAULT_SETTLE_GAS_LIMIT, int),
            supabase_url=os.getenv("SUPABASE_URL", "").strip() or None,
            supabase_key=os.getenv("SUPABASE_KEY", "").strip() or None,
            host=os.getenv("HOST", "").strip() or "0.0.0.0",
            port=_number("PORT", DEFAULT_PORT, int),
            rate_limit=os.getenv("A402_RATE_LIMIT", "").strip() or DEFAULT_RATE_LIMIT,
            log_level=os.getenv("LOG_LEVEL", "").strip().upper() or "INFO",
        )


def _checksum(env_name: str, address: str) -> str:
    if not is_address(address):
        raise ConfigurationError(f"{env_name} is not a valid address: {address}")
    return to_checksum_address(address)


def _number(env_name: str, default, cast):
    raw = os.getenv(env_name, "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(f"{env_name} must be a number, got {raw!r}")


class ChainContextResolver:
    """Read-only lookup of ChainContext by network name"""

    def __init__(self, settings: FacilitatorSettings) -> None:
        self._active = settings.active_network
        self._contexts: Dict[NetworkId, ChainContext] = {
            network_id: ChainContext(
                network_id=network_id,
                chain_id=CHAIN_IDS[network_id],
                rpc_endpoint=settings.rpc_urls.get(network_id, DEFAULT_RPC_URLS[network_id]),
                relayer_contract_address=relayer,
            )
            for network_id, relayer in settings.relayer_addresses.items()
        }

    @property
    def active(self) -> ChainContext:
        return self._contexts[self._active]

    def contexts(self) -> list[ChainContext]:
        """All deployed networks, active network first"""
        others = [c for n, c in self._contexts.items() if n != self._active]
        return [self.active, *others]

    def resolve(self, network: str | None = None) -> ChainContext:
        """Resolve a network name to its ChainContext.

        Args:
            network: Network name or alias; empty selects the active network

        Raises:
            UnknownNetworkError: If the network is unknown or has no relayer deployed
        """
        if not network:
            return self.active
        context = self._contexts.get(parse_network_id(network))
        if context is None:
            raise UnknownNetworkError(network)
        return context
