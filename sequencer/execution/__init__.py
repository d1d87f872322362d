"""
Execution module for the sequencer.

This module contains the core execution architecture:
- BaseTimelineNode: Shared status, pause/resume/abort and lookups
- TrialNode: Runs a single trial through the TrialExecutor
- TimelineNode: Runs a sequence of child nodes
- TimelineVariable: Deferred reference to a timeline variable
"""

from .base_node import BaseTimelineNode, NodeStatus, BUILTIN_TIMELINE_PARAMETERS
from .dependencies import NodeDependencies, TimelineCallbacks
from .parameters import TimelineVariable
from .timeline import TimelineNode, estimate_trial_count, validate_description
from .trial import TrialExecutor, TrialNode

__all__ = [
    'BaseTimelineNode',
    'NodeStatus',
    'BUILTIN_TIMELINE_PARAMETERS',
    'NodeDependencies',
    'TimelineCallbacks',
    'TimelineVariable',
    'TimelineNode',
    'TrialExecutor',
    'TrialNode',
    'estimate_trial_count',
    'validate_description',
]
