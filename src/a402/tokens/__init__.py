"""
Token metadata: static registry and on-chain resolution
"""

from a402.tokens.registry import TokenInfo, TokenRegistry
from a402.tokens.resolver import (
    TokenInfoCache,
    TokenInfoResolver,
    TokenResolution,
    TokenSource,
    fallback_token_info,
)

__all__ = [
    "TokenInfo",
    "TokenRegistry",
    "TokenInfoCache",
    "TokenInfoResolver",
    "TokenResolution",
    "TokenSource",
    "fallback_token_info",
]
