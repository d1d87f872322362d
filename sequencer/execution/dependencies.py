"""
Collaborators injected into a node tree.

A root TimelineNode receives a NodeDependencies bundle; every child node
created during expansion shares its parent's bundle.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from ..randomization import Randomizer


async def sleep_ms(milliseconds: float) -> None:
    """Default delay capability: sleep on the running event loop."""
    await asyncio.sleep(milliseconds / 1000.0)


class TimelineCallbacks:
    """
    Hooks invoked for every trial in a tree.

    Subclass and override what you need; the defaults do nothing.
    """

    def on_trial_start(self, trial) -> None:
        pass

    def on_trial_finish(self, trial) -> None:
        pass


@dataclass
class NodeDependencies:
    """
    Shared collaborators for a node tree.

    Attributes:
        trial_executor: Runs a single trial (see TrialExecutor)
        randomizer: Sampling and shuffling capability
        delay: Coroutine function taking milliseconds, used for post_trial_gap
        callbacks: Global trial hooks
        default_post_trial_gap: Gap in milliseconds used when a trial sets none
    """
    trial_executor: Optional[object] = None
    randomizer: Randomizer = field(default_factory=Randomizer)
    delay: Callable[[float], Awaitable[None]] = sleep_ms
    callbacks: TimelineCallbacks = field(default_factory=TimelineCallbacks)
    default_post_trial_gap: float = 0
