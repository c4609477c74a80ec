"""
TokenInfoResolver - decimals/symbol/name for arbitrary token addresses.

Resolution order, first hit wins:
    1. static TokenRegistry table for the network (no I/O)
    2. TokenInfoCache populated earlier in this process (no I/O)
    3. live ERC20 metadata reads through the facilitator signer
    4. fallback metadata, cached so the failing reads are not retried

Cache entries are never invalidated. Concurrent resolutions of the same
address may both hit the chain; the values they write are identical.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from eth_utils import is_address

from a402.abi import ERC20_METADATA_ABI
from a402.exceptions import ChainReadError
from a402.tokens.registry import TokenInfo, TokenRegistry

if TYPE_CHECKING:
    from a402.config import ChainContext
    from a402.signers.facilitator import FacilitatorSigner

logger = logging.getLogger(__name__)

FALLBACK_DECIMALS = 18
FALLBACK_SYMBOL = "TOKEN"
FALLBACK_NAME = "Unknown Token"


class TokenSource(str, Enum):
    """Where a TokenInfo came from"""

    KNOWN = "known"
    CACHE = "cache"
    CHAIN = "chain"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class TokenResolution:
    """Outcome of one token lookup"""

    info: TokenInfo
    source: TokenSource
    error: str | None = None

    @property
    def is_fallback(self) -> bool:
        return self.source is TokenSource.FALLBACK


def fallback_token_info(address: str) -> TokenInfo:
    return TokenInfo(
        address=address,
        decimals=FALLBACK_DECIMALS,
        symbol=FALLBACK_SYMBOL,
        name=FALLBACK_NAME,
    )


class TokenInfoCache:
    """In-memory token metadata store keyed by (chain id, lower-cased address)"""

    def __init__(self) -> None:
        self._entries: dict[tuple[int, str], TokenResolution] = {}

    @staticmethod
    def _key(chain_id: int, address: str) -> tuple[int, str]:
        return chain_id, address.lower()

    def get(self, chain_id: int, address: str) -> TokenResolution | None:
        return self._entries.get(self._key(chain_id, address))

    def put(self, chain_id: int, address: str, resolution: TokenResolution) -> None:
        self._entries[self._key(chain_id, address)] = resolution

    def __contains__(self, item: tuple[int, str]) -> bool:
        chain_id, address = item
        return self._key(chain_id, address) in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class TokenInfoResolver:
    """Resolve token metadata; never fails"""

    def __init__(
        self,
        signer: "FacilitatorSigner",
        cache: TokenInfoCache | None = None,
        registry: type[TokenRegistry] = TokenRegistry,
    ) -> None:
        self._signer = signer
        self._cache = cache if cache is not None else TokenInfoCache()
        self._registry = registry

    @property
    def cache(self) -> TokenInfoCache:
        return self._cache

    async def resolve(self, token_address: str, context: "ChainContext") -> TokenInfo:
        """Return usable metadata for *token_address* on *context*."""
        return (await self.lookup(token_address, context)).info

    async def lookup(self, token_address: str, context: "ChainContext") -> TokenResolution:
        """Resolve *token_address* and report which path produced the value."""
        known = self._registry.find_by_address(context.network_id, token_address)
        if known is not None:
            return TokenResolution(info=known, source=TokenSource.KNOWN)

        cached = self._cache.get(context.chain_id, token_address)
        if cached is not None:
            # Keep the original error visible for cached fallbacks
            source = TokenSource.FALLBACK if cached.is_fallback else TokenSource.CACHE
            return TokenResolution(info=cached.info, source=source, error=cached.error)

        try:
            info = await self._fetch(token_address, context)
            resolution = TokenResolution(info=info, source=TokenSource.CHAIN)
        except (ChainReadError, ValueError, TypeError) as e:
            logger.warning("[TOKEN] Metadata lookup failed for %s: %s", token_address, e)
            resolution = TokenResolution(
                info=fallback_token_info(token_address),
                source=TokenSource.FALLBACK,
                error=str(e),
            )

        self._cache.put(context.chain_id, token_address, resolution)
        return resolution

    async def _fetch(self, token_address: str, context: "ChainContext") -> TokenInfo:
        if not is_address(token_address):
            raise ValueError(f"Not a token address: {token_address!r}")

        results = await asyncio.gather(
            self._read(token_address, context, "decimals"),
            self._read(token_address, context, "symbol"),
            self._read(token_address, context, "name"),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        decimals, symbol, name = results
        decimals = int(decimals)
        if not 0 <= decimals <= 255:
            raise ValueError(f"decimals() out of range: {decimals}")

        logger.info(
            "[TOKEN] Resolved %s on %s: %s (%d decimals)",
            token_address,
            context.name,
            symbol,
            decimals,
        )
        return TokenInfo(
            address=token_address,
            decimals=decimals,
            symbol=str(symbol),
            name=str(name),
        )

    async def _read(self, token_address: str, context: "ChainContext", method: str):
        return await self._signer.read_contract(
            context, token_address, ERC20_METADATA_ABI, method, []
        )
