"""
Token registry - Well-known token configurations per network
"""

from dataclasses import dataclass

from a402.config import NetworkId
from a402.exceptions import UnknownTokenError


@dataclass(frozen=True)
class TokenInfo:
    """Token information"""

    address: str
    decimals: int
    symbol: str
    name: str


class TokenRegistry:
    """Token registry

    Tokens listed here are resolved without any chain I/O and are the
    assets advertised by /list.
    """

    _tokens: dict[NetworkId, dict[str, TokenInfo]] = {
        # Avalanche C-Chain Mainnet (43114)
        NetworkId.MAINNET: {
            "USDT": TokenInfo(
                address="0x9702230A8Ea53601f5cD2dc00fDBc13d4dF4A8c7",
                decimals=6,
                symbol="USDT",
                name="Tether USD",
            ),
            "USDC": TokenInfo(
                address="0xB97EF9Ef8734C71904D8002F8b6Bc66Dd9c48a6E",
                decimals=6,
                symbol="USDC",
                name="USD Coin",
            ),
            "USDT.E": TokenInfo(
                address="0xc7198437980c041c805A1EDcbA50c1Ce5db95118",
                decimals=6,
                symbol="USDT.e",
                name="Tether USD (Bridged)",
            ),
            "USDC.E": TokenInfo(
                address="0xA7D7079b0FEaD91F3e65f86E8915Cb59c1a4C664",
                decimals=6,
                symbol="USDC.e",
                name="USD Coin (Bridged)",
            ),
        },
        # Avalanche Fuji Testnet (43113)
        NetworkId.TESTNET: {
            # TODO: replace with the deployed Fuji test token address
            "USDT": TokenInfo(
                address="0x9e9ab4d5e5e7d7e7e5e5e5e5e5e5e5e5e5e5e5e5",
                decimals=6,
                symbol="USDT",
                name="Tether USD (Testnet)",
            ),
        },
    }

    @classmethod
    def register_token(cls, network: NetworkId, token: TokenInfo) -> None:
        """Register a custom token for specified network

        Args:
            network: Network the token lives on
            token: TokenInfo to register
        """
        cls._tokens.setdefault(network, {})[token.symbol.upper()] = token

    @classmethod
    def get_token(cls, network: NetworkId, symbol: str) -> TokenInfo:
        """Get token information for specified network and symbol

        Raises:
            UnknownTokenError: If token does not exist
        """
        token = cls._tokens.get(network, {}).get(symbol.upper())
        if token is None:
            raise UnknownTokenError(f"Unknown token {symbol} on network {network.value}")
        return token

    @classmethod
    def find_by_address(cls, network: NetworkId, address: str) -> TokenInfo | None:
        """Find token information by address (case-insensitive)"""
        lower = address.lower()
        for info in cls._tokens.get(network, {}).values():
            if info.address.lower() == lower:
                return info
        return None

    @classmethod
    def get_network_token_addresses(cls, network: NetworkId) -> list[str]:
        """Get all token addresses for specified network, in registration order"""
        return [info.address for info in cls._tokens.get(network, {}).values()]
