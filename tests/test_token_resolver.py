"""
Tests for token metadata resolution and caching.
"""

import pytest

from a402.config import NetworkId
from a402.tokens import (
    TokenInfo,
    TokenInfoCache,
    TokenInfoResolver,
    TokenRegistry,
    TokenSource,
)
from a402.exceptions import UnknownTokenError
from conftest import FUJI_USDT, UNKNOWN_TOKEN

DAI_LIKE = "0x" + "d4" * 20


@pytest.mark.anyio
async def test_known_token_needs_no_chain_reads(fake_signer, fuji):
    resolver = TokenInfoResolver(fake_signer)
    resolution = await resolver.lookup(FUJI_USDT.lower(), fuji)
    assert resolution.source is TokenSource.KNOWN
    assert resolution.info.symbol == "USDT"
    assert resolution.info.decimals == 6
    assert fake_signer.reads == []


@pytest.mark.anyio
async def test_chain_lookup_then_cache(fake_signer, fuji):
    fake_signer.tokens[DAI_LIKE] = (18, "DAI", "Dai Stablecoin")
    resolver = TokenInfoResolver(fake_signer)

    first = await resolver.lookup(DAI_LIKE, fuji)
    assert first.source is TokenSource.CHAIN
    assert first.info == TokenInfo(
        address=DAI_LIKE, decimals=18, symbol="DAI", name="Dai Stablecoin"
    )
    reads = len(fake_signer.reads)
    assert reads == 3

    second = await resolver.lookup(DAI_LIKE.upper().replace("0X", "0x"), fuji)
    assert second.source is TokenSource.CACHE
    assert second.info == first.info
    assert len(fake_signer.reads) == reads
    assert (fuji.chain_id, DAI_LIKE) in resolver.cache


@pytest.mark.anyio
async def test_unknown_token_falls_back_and_is_cached(fake_signer, fuji):
    resolver = TokenInfoResolver(fake_signer)

    first = await resolver.lookup(UNKNOWN_TOKEN, fuji)
    assert first.is_fallback
    assert first.info.decimals == 18
    assert first.info.symbol == "TOKEN"
    assert first.info.name == "Unknown Token"
    assert first.error

    reads = len(fake_signer.reads)
    second = await resolver.lookup(UNKNOWN_TOKEN, fuji)
    assert second.source is TokenSource.FALLBACK
    assert len(fake_signer.reads) == reads


@pytest.mark.anyio
async def test_invalid_address_falls_back_without_reads(fake_signer, fuji):
    resolver = TokenInfoResolver(fake_signer)
    info = await resolver.resolve("not-a-token", fuji)
    assert info.symbol == "TOKEN"
    assert fake_signer.reads == []


@pytest.mark.anyio
async def test_out_of_range_decimals_fall_back(fake_signer, fuji):
    fake_signer.tokens[DAI_LIKE] = (300, "BAD", "Bad Token")
    resolution = await TokenInfoResolver(fake_signer).lookup(DAI_LIKE, fuji)
    assert resolution.is_fallback


@pytest.mark.anyio
async def test_cache_is_keyed_by_chain(fake_signer, fuji):
    cache = TokenInfoCache()
    fake_signer.tokens[DAI_LIKE] = (18, "DAI", "Dai Stablecoin")
    await TokenInfoResolver(fake_signer, cache=cache).resolve(DAI_LIKE, fuji)
    assert cache.get(fuji.chain_id, DAI_LIKE) is not None
    assert cache.get(43114, DAI_LIKE) is None
    assert len(cache) == 1


def test_registry_lookup():
    usdc = TokenRegistry.get_token(NetworkId.MAINNET, "usdc")
    assert usdc.address == "0xB97EF9Ef8734C71904D8002F8b6Bc66Dd9c48a6E"
    assert TokenRegistry.find_by_address(NetworkId.MAINNET, usdc.address.lower()) == usdc
    assert TokenRegistry.find_by_address(NetworkId.TESTNET, usdc.address) is None
    assert len(TokenRegistry.get_network_token_addresses(NetworkId.MAINNET)) == 4

    with pytest.raises(UnknownTokenError):
        TokenRegistry.get_token(NetworkId.TESTNET, "WETH")


def test_register_token():
    token = TokenInfo(address=DAI_LIKE, decimals=18, symbol="TDAI", name="Test Dai")
    TokenRegistry.register_token(NetworkId.TESTNET, token)
    try:
        assert TokenRegistry.get_token(NetworkId.TESTNET, "tdai") == token
    finally:
        TokenRegistry._tokens[NetworkId.TESTNET].pop("TDAI", None)
