# tests/property/test_registry_properties.py
"""Stateful property tests for PendingRegistry.

The registry is modelled as an ordered mapping input -> [outputs].

Key Invariants:
- insert() reports is_queued exactly when the input already has entries
- A pair can be pending at most once
- take() returns every pending output of the input, in insertion order,
  and leaves no trace of the input behind
- Keys are opaque: no two distinct pairs ever collide
"""

from __future__ import annotations

from hypothesis import strategies as st
from hypothesis.stateful import RuleBasedStateMachine, invariant, rule

from pixelqueue.engine.registry import PendingEntry, PendingRegistry
from pixelqueue.engine.waiter import Waiter
from tests.helpers.fakes import make_job
from tests.property.settings import STATE_MACHINE_SETTINGS

# Small alphabets with separator-like characters so collisions would show up
paths = st.sampled_from(["a", "a.b", "b", "a.b.c", 'x["y"]', "x", "a/b", "é"])


class PendingRegistryStateMachine(RuleBasedStateMachine):
    def __init__(self) -> None:
        super().__init__()
        self.registry = PendingRegistry()
        self.model: dict[str, list[str]] = {}

    @rule(input_path=paths, output_path=paths)
    def insert(self, input_path: str, output_path: str) -> None:
        job = make_job(input_path, output_path)
        entry = PendingEntry(job=job, waiter=Waiter(job))
        outputs = self.model.get(input_path, [])

        if output_path in outputs:
            try:
                self.registry.insert(entry)
            except KeyError:
                return
            raise AssertionError(f"duplicate pair ({input_path!r}, {output_path!r}) was accepted")

        assert self.registry.insert(entry) is bool(outputs)
        self.model.setdefault(input_path, []).append(output_path)

    @rule(input_path=paths)
    def take(self, input_path: str) -> None:
        taken = self.registry.take(input_path)

        assert [entry.job.output_path for entry in taken] == self.model.pop(input_path, [])
        assert all(entry.job.input_path == input_path for entry in taken)
        assert not self.registry.has_input(input_path)

    @rule(input_path=paths, output_path=paths)
    def lookup(self, input_path: str, output_path: str) -> None:
        expected = output_path in self.model.get(input_path, [])

        assert ((input_path, output_path) in self.registry) is expected
        assert (self.registry.get(input_path, output_path) is not None) is expected

    @invariant()
    def sizes_match(self) -> None:
        assert len(self.registry) == sum(len(outputs) for outputs in self.model.values())

    @invariant()
    def keys_match(self) -> None:
        expected = {(input_path, output_path) for input_path, outputs in self.model.items() for output_path in outputs}
        assert set(self.registry) == expected
        assert set(self.registry.inputs()) == set(self.model)


TestPendingRegistryStateMachine = PendingRegistryStateMachine.TestCase
TestPendingRegistryStateMachine.settings = STATE_MACHINE_SETTINGS
