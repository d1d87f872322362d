"""
Engine-level settings for running timelines.
"""

from dataclasses import dataclass
from typing import Optional

from ..errors import ConfigurationError
from ..randomization import Randomizer


@dataclass
class EngineSettings:
    """
    Settings shared by every node in an experiment.

    Attributes:
        seed: Randomizer seed (None = nondeterministic ordering)
        default_post_trial_gap: Gap after each trial in milliseconds, used
                                when no post_trial_gap parameter is set
    """
    seed: Optional[int] = None
    default_post_trial_gap: float = 0

    def __post_init__(self):
        """Validate settings."""
        if self.default_post_trial_gap < 0:
            raise ConfigurationError("default_post_trial_gap must be non-negative")

    def create_dependencies(self, trial_executor, callbacks=None, delay=None):
        """
        Build the collaborator bundle for a new timeline tree.

        Args:
            trial_executor: TrialExecutor running each trial
            callbacks: Optional TimelineCallbacks (e.g. ResultsCollector)
            delay: Optional coroutine function taking milliseconds

        Returns:
            NodeDependencies instance
        """
        from ..execution.dependencies import NodeDependencies, TimelineCallbacks, sleep_ms

        return NodeDependencies(
            trial_executor=trial_executor,
            randomizer=Randomizer(seed=self.seed),
            delay=delay if delay is not None else sleep_ms,
            callbacks=callbacks if callbacks is not None else TimelineCallbacks(),
            default_post_trial_gap=self.default_post_trial_gap,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'seed': self.seed,
            'default_post_trial_gap': self.default_post_trial_gap,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'EngineSettings':
        """Create EngineSettings instance from dictionary."""
        return cls(
            seed=data.get('seed'),
            default_post_trial_gap=data.get('default_post_trial_gap', 0),
        )
