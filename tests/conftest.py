"""Pytest configuration with basic asyncio support and graph fixtures."""

import asyncio
import random
from datetime import datetime, timedelta, timezone

import pytest

from frontier import EligibilityEngine, FrontierQueue
from mongo import MongoClient
from tests.fakes import FakeDatabase

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> None:
        self.now = self.now + timedelta(**delta)


def pytest_configure(config):
    """Register the ``asyncio`` marker for asynchronous tests."""
    config.addinivalue_line(
        "markers", "asyncio: mark async test to run in event loop"
    )


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem):
    """Run functions marked with ``asyncio`` in a new event loop."""
    if pyfuncitem.get_closest_marker("asyncio"):
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            funcargs = {
                name: pyfuncitem.funcargs[name]
                for name in pyfuncitem._fixtureinfo.argnames
            }
            loop.run_until_complete(pyfuncitem.obj(**funcargs))
        finally:
            loop.close()
            asyncio.set_event_loop(None)
        return True


@pytest.fixture
def db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def store(db) -> MongoClient:
    return MongoClient.from_database(db)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def engine(clock) -> EligibilityEngine:
    return EligibilityEngine(max_pages_per_domain=50, cooldown=timedelta(days=7), clock=clock)


@pytest.fixture
def frontier(store, engine) -> FrontierQueue:
    return FrontierQueue(store, engine, rng=random.Random(1234))
