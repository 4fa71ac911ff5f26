from __future__ import annotations

import pytest

from breakerbox.circuit_breaker import InMemoryCircuitStore
from tests.breakerbox.support.fakes import FakeClock, FakeLogger, RecordingNotifier


@pytest.fixture
def fake_clock() -> FakeClock:
    """Provide a manually driven clock per test."""
    return FakeClock()


@pytest.fixture
def fake_logger() -> FakeLogger:
    """Provide a fresh structured logger test double per test."""
    return FakeLogger()


@pytest.fixture
def notifier() -> RecordingNotifier:
    """Provide a fresh recording notifier per test."""
    return RecordingNotifier()


@pytest.fixture
def circuit_store(fake_clock: FakeClock) -> InMemoryCircuitStore:
    """Provide a circuit store driven by the fake clock."""
    return InMemoryCircuitStore(now_fn=fake_clock)


@pytest.fixture
def stat_store(fake_clock: FakeClock) -> InMemoryCircuitStore:
    """Provide a stat store driven by the fake clock."""
    return InMemoryCircuitStore(now_fn=fake_clock)
