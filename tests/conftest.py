# tests/conftest.py
"""Shared test fixtures.

Fakes live in tests/helpers/fakes.py so that test modules can import them
directly; this module wires them into fixtures.

Hypothesis Configuration:
- "ci" profile: default
- "nightly" profile: thorough runs
- "debug" profile: minimal examples with verbose output

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import os
from collections.abc import Iterator

import pytest
from hypothesis import HealthCheck, Verbosity, settings

from pixelqueue.engine import CountingProgressReporter, InMemoryJobTracker, Scheduler
from tests.helpers.fakes import FakeStore, FakeTransform

settings.register_profile(
    "ci",
    max_examples=100,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)
settings.register_profile("nightly", max_examples=1000, deadline=None)
settings.register_profile("debug", max_examples=10, verbosity=Verbosity.verbose, deadline=None)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def tracker() -> InMemoryJobTracker:
    return InMemoryJobTracker()


@pytest.fixture
def reporters() -> list[CountingProgressReporter]:
    """Every reporter the scheduler created, in creation order."""
    return []


@pytest.fixture
def progress_factory(reporters: list[CountingProgressReporter]):
    def factory() -> CountingProgressReporter:
        reporter = CountingProgressReporter()
        reporters.append(reporter)
        return reporter

    return factory


@pytest.fixture
def make_scheduler(store: FakeStore, tracker: InMemoryJobTracker, progress_factory) -> Iterator:
    """Build schedulers wired to the shared fakes; all are shut down after the test."""
    created: list[Scheduler] = []

    def build(transform: FakeTransform, **kwargs: object) -> Scheduler:
        kwargs.setdefault("exists", store)
        kwargs.setdefault("tracker", tracker)
        kwargs.setdefault("progress_factory", progress_factory)
        scheduler = Scheduler(transform, **kwargs)  # type: ignore[arg-type]
        created.append(scheduler)
        return scheduler

    yield build

    for scheduler in created:
        scheduler.shutdown(wait=True)
