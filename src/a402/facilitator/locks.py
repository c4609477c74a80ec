"""
Advisory per-(authorizer, nonce) settlement locks.

The facilitator does not serialize settlement attempts per nonce for
correctness; exactly-once settlement is enforced only by the remote
contract state, not by this process. These locks only stop this process
from submitting a second transaction for an authorization that is already
being settled, which would revert and waste gas.

Entries carry a lifetime so a holder that never releases (for example a
task cancelled mid-settlement) cannot block the key forever.
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Hashable


class NonceLockRegistry:
    """Non-blocking try-locks with bounded lifetime"""

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl
        self._clock = clock
        # key -> (owner token, expiry)
        self._held: dict[Hashable, tuple[object, float]] = {}

    @property
    def ttl(self) -> float:
        return self._ttl

    def try_acquire(self, key: Hashable) -> object | None:
        """Take the lock for *key* unless a live holder exists.

        Returns an owner token to pass to release(), or None when the key
        is held. No await happens between the check and the write, so this
        is atomic with respect to other coroutines on the same loop.
        """
        now = self._clock()
        entry = self._held.get(key)
        if entry is not None and entry[1] > now:
            return None
        token = object()
        self._held[key] = (token, now + self._ttl)
        return token

    def release(self, key: Hashable, token: object) -> None:
        """Release *key* if *token* still owns it (an expired lock may have been re-taken)."""
        entry = self._held.get(key)
        if entry is not None and entry[0] is token:
            del self._held[key]

    def is_held(self, key: Hashable) -> bool:
        entry = self._held.get(key)
        return entry is not None and entry[1] > self._clock()

    def purge_expired(self) -> int:
        """Drop expired entries; returns how many were removed."""
        now = self._clock()
        stale = [key for key, (_, expires_at) in self._held.items() if expires_at <= now]
        for key in stale:
            del self._held[key]
        return len(stale)

    def __len__(self) -> int:
        return len(self._held)

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[bool]:
        """Yield True while holding *key*, or False if it is already held."""
        self.purge_expired()
        token = self.try_acquire(key)
        try:
            yield token is not None
        finally:
            if token is not None:
                self.release(key, token)
