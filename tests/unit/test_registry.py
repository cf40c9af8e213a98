"""Unit tests for the open-session registry and per-session request serialization"""

import asyncio
from types import SimpleNamespace
from collection_gateway.api.dependencies import get_session
from collection_gateway.api.registry import SessionRegistry


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_idle_sessions_expire(context):
    clock = FakeClock()
    registry = SessionRegistry(idle_ttl_seconds=60, max_sessions=10, clock=clock)
    kept = registry.open(context)
    idle = registry.open(context)

    clock.now = 50
    assert registry.get(kept.id) is kept

    clock.now = 100
    assert registry.get(idle.id) is None
    assert registry.get(kept.id) is kept
    assert len(registry) == 1


def test_prune_drops_every_idle_session(context):
    clock = FakeClock()
    registry = SessionRegistry(idle_ttl_seconds=60, max_sessions=10, clock=clock)
    for _ in range(3):
        registry.open(context)

    clock.now = 61

    assert registry.prune() == 3
    assert len(registry) == 0


def test_least_recently_used_session_makes_room(context):
    clock = FakeClock()
    registry = SessionRegistry(idle_ttl_seconds=3600, max_sessions=2, clock=clock)
    first = registry.open(context)
    clock.now = 1
    second = registry.open(context)
    clock.now = 2
    registry.get(first.id)

    clock.now = 3
    third = registry.open(context)

    assert len(registry) == 2
    assert registry.get(second.id) is None
    assert registry.get(first.id) is first
    assert registry.get(third.id) is third


async def test_requests_on_one_session_run_one_at_a_time(context):
    registry = SessionRegistry()
    session = registry.open(context)
    request = SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(sessions=registry)))

    first = get_session(session.id, request)
    assert await first.__anext__() is session
    assert session.lock.locked()

    second = get_session(session.id, request)
    waiting = asyncio.create_task(second.__anext__())
    await asyncio.sleep(0)
    assert not waiting.done()

    await first.aclose()
    assert await waiting is session
    await second.aclose()
    assert not session.lock.locked()
