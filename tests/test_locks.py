"""
Tests for NonceLockRegistry.
"""

import pytest

from a402.facilitator import NonceLockRegistry

KEY = ("0xabc", "0x" + "01" * 32)


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_try_acquire_is_exclusive():
    locks = NonceLockRegistry(ttl=10)
    token = locks.try_acquire(KEY)
    assert token is not None
    assert locks.try_acquire(KEY) is None
    assert locks.is_held(KEY)

    locks.release(KEY, token)
    assert not locks.is_held(KEY)
    assert locks.try_acquire(KEY) is not None


def test_distinct_keys_do_not_conflict():
    locks = NonceLockRegistry(ttl=10)
    assert locks.try_acquire(KEY) is not None
    assert locks.try_acquire(("0xabc", "0x" + "02" * 32)) is not None
    assert len(locks) == 2


def test_expired_lock_can_be_taken_over():
    clock = FakeClock()
    locks = NonceLockRegistry(ttl=10, clock=clock)
    stale = locks.try_acquire(KEY)

    clock.now = 10
    assert not locks.is_held(KEY)
    fresh = locks.try_acquire(KEY)
    assert fresh is not None

    # The stale holder must not release the new owner's lock
    locks.release(KEY, stale)
    assert locks.is_held(KEY)
    locks.release(KEY, fresh)
    assert len(locks) == 0


def test_purge_expired():
    clock = FakeClock()
    locks = NonceLockRegistry(ttl=5, clock=clock)
    locks.try_acquire(KEY)
    clock.now = 3
    locks.try_acquire(("0xdef", "0x00"))
    clock.now = 6
    assert locks.purge_expired() == 1
    assert len(locks) == 1


@pytest.mark.anyio
async def test_hold_context_manager():
    locks = NonceLockRegistry(ttl=10)
    async with locks.hold(KEY) as outer:
        assert outer is True
        async with locks.hold(KEY) as inner:
            assert inner is False
        # The failed attempt leaves the outer hold intact
        assert locks.is_held(KEY)
    assert not locks.is_held(KEY)


@pytest.mark.anyio
async def test_hold_releases_on_error():
    locks = NonceLockRegistry(ttl=10)
    with pytest.raises(RuntimeError):
        async with locks.hold(KEY):
            raise RuntimeError("boom")
    assert not locks.is_held(KEY)
