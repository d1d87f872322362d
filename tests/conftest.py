"""
Pytest configuration and fixtures for sequencer tests.

Provides a controllable trial executor, a fake clock and timeline factories
for unit and integration tests.
"""

import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from sequencer.execution import NodeDependencies, TimelineNode, TrialExecutor
from sequencer.randomization import Randomizer


# ==================== PYTEST CONFIGURATION ====================

def pytest_configure(config):
    """Add custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: unit test (fast, no I/O)")
    config.addinivalue_line("markers", "integration: integration test (file I/O, full runs)")


async def flush(iterations: int = 20):
    """Let every ready task on the event loop advance."""
    for _ in range(iterations):
        await asyncio.sleep(0)


# ==================== MOCK COLLABORATORS ====================

class ControlledTrialExecutor(TrialExecutor):
    """
    Trial executor for tests.

    In automatic mode every trial finishes immediately with ``result``.
    In manual mode a trial finishes only when the test calls proceed().
    """

    def __init__(self, manual: bool = False):
        self.manual = manual
        self.result: Any = {'my': 'result'}
        self.calls: List[Dict[str, Any]] = []
        self.on_execute = None
        self._pending: List[asyncio.Future] = []

    async def execute(self, trial_parameters):
        self.calls.append(trial_parameters)
        if self.on_execute is not None:
            self.on_execute(trial_parameters)

        if not self.manual:
            return self.result

        future = asyncio.get_running_loop().create_future()
        self._pending.append(future)
        return await future

    async def proceed(self, result: Optional[Any] = None):
        """Finish the oldest in-flight trial (if any) and flush the loop."""
        if self._pending:
            self._pending.pop(0).set_result(self.result if result is None else result)
        await flush()

    @property
    def in_flight(self) -> int:
        return len(self._pending)


class FakeClock:
    """
    Delay capability driven by advance() instead of wall-clock time.
    """

    def __init__(self):
        self.now = 0.0
        self._timers = []

    async def delay(self, milliseconds: float):
        future = asyncio.get_running_loop().create_future()
        self._timers.append((self.now + milliseconds, future))
        await future

    def advance(self, milliseconds: float):
        """Move time forward, releasing every delay that has elapsed."""
        self.now += milliseconds
        remaining = []
        for deadline, future in self._timers:
            if deadline <= self.now:
                if not future.done():
                    future.set_result(None)
            else:
                remaining.append((deadline, future))
        self._timers = remaining


# ==================== FIXTURES ====================

@pytest.fixture
def executor():
    """Trial executor finishing every trial immediately with {'my': 'result'}."""
    return ControlledTrialExecutor()


@pytest.fixture
def manual_executor():
    """Trial executor whose trials finish on proceed()."""
    return ControlledTrialExecutor(manual=True)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def randomizer():
    """Seeded randomizer; tests replace individual strategies with mocks."""
    return Randomizer(seed=1)


@pytest.fixture
def make_dependencies(fake_clock, randomizer):
    """
    Factory for NodeDependencies wired to test doubles.
    """
    def _make(trial_executor, **kwargs):
        kwargs.setdefault('randomizer', randomizer)
        kwargs.setdefault('delay', fake_clock.delay)
        return NodeDependencies(trial_executor=trial_executor, **kwargs)

    return _make


@pytest.fixture
def make_timeline(make_dependencies, executor):
    """
    Factory for timelines using the automatic executor.

    Usage:
        timeline = make_timeline({'timeline': [trial()]})
        child = make_timeline({'timeline': []}, parent=timeline)
    """
    def _make(description, parent=None, trial_executor=None):
        if parent is not None:
            return TimelineNode(description, parent=parent)
        return TimelineNode(description, make_dependencies(trial_executor or executor))

    return _make


def trial(**parameters) -> Dict[str, Any]:
    """Trial item with the test trial type."""
    return {'type': 'test', **parameters}


# ==================== TEST DATA FIXTURES ====================

@pytest.fixture
def example_description():
    """Two trials followed by a nested timeline with one trial."""
    return {'timeline': [trial(), trial(), {'timeline': [trial()]}]}


@pytest.fixture
def variables_csv(tmp_path):
    """
    Create sample timeline variable CSV for testing.

    Returns:
        str: Path to CSV file
    """
    csv_file = tmp_path / "variables.csv"
    csv_file.write_text("""word,color,congruent
RED,red,1
BLUE,red,0
GREEN,green,1
""")
    return str(csv_file)
