"""
Sequencer: runs trees of behavioral experiment trials.

A TimelineNode built from a declarative description expands into trials and
nested timelines, runs them in order, and collects their results. Trials are
presented by a host-supplied TrialExecutor.
"""

from .errors import ConfigurationError, SequencerError
from .execution import (
    NodeDependencies,
    NodeStatus,
    TimelineCallbacks,
    TimelineNode,
    TimelineVariable,
    TrialExecutor,
    TrialNode,
)
from .randomization import Randomizer

__version__ = '1.0.0'

__all__ = [
    'ConfigurationError',
    'SequencerError',
    'NodeDependencies',
    'NodeStatus',
    'TimelineCallbacks',
    'TimelineNode',
    'TimelineVariable',
    'TrialExecutor',
    'TrialNode',
    'Randomizer',
]
