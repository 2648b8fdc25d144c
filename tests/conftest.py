"""Shared fixtures for the direction-engine tests."""

from __future__ import annotations

from concurrent.futures import Executor, Future

import pytest

from config import DeclinationConfig, EngineConfig
from declination import DeclinationProvider
from engine import DirectionEngine


class ImmediateExecutor(Executor):
    """Runs submitted work synchronously in the caller's thread."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future


class DeferredExecutor(Executor):
    """Holds submitted work until run_pending() is called."""

    def __init__(self):
        self.pending = []

    def submit(self, fn, *args, **kwargs):
        future = Future()
        self.pending.append((future, fn, args, kwargs))
        return future

    def run_pending(self):
        while self.pending:
            future, fn, args, kwargs = self.pending.pop(0)
            try:
                future.set_result(fn(*args, **kwargs))
            except Exception as exc:
                future.set_exception(exc)


class FakeClock:
    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def fixed_provider():
    """Provider whose only model reports +5° everywhere."""
    return DeclinationProvider(DeclinationConfig(), models=[("fixed", lambda point, day: 5.0)])


@pytest.fixture()
def make_engine(fixed_provider, clock):
    def factory(provider=None, executor=None, config=None):
        return DirectionEngine(
            config if config is not None else EngineConfig(),
            provider=provider if provider is not None else fixed_provider,
            executor=executor if executor is not None else ImmediateExecutor(),
            clock=clock,
        )

    return factory
