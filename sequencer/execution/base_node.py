"""
Base class for timeline nodes.

Both node kinds (TrialNode and TimelineNode) share the status state machine,
pause/resume/abort flags, parameter resolution and timeline variable lookup
implemented here.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from enum import Enum
from typing import Any, Dict, List, Optional, Union
import asyncio
import logging
import weakref

from .parameters import Literal, Thunk, TimelineVariable, as_parameter_value

logger = logging.getLogger(__name__)

# Control parameters of a timeline; never resolved through get_parameter_value()
BUILTIN_TIMELINE_PARAMETERS = frozenset([
    'timeline',
    'timeline_variables',
    'repetitions',
    'loop_function',
    'conditional_function',
    'randomize_order',
    'sample',
    'on_timeline_start',
    'on_timeline_finish',
])


class NodeStatus(Enum):
    """Lifecycle states of a node."""
    PENDING = 'pending'
    RUNNING = 'running'
    PAUSED = 'paused'
    COMPLETED = 'completed'
    ABORTED = 'aborted'
    SKIPPED = 'skipped'


TERMINAL_STATUSES = frozenset([NodeStatus.COMPLETED, NodeStatus.ABORTED, NodeStatus.SKIPPED])
ACTIVE_STATUSES = frozenset([NodeStatus.RUNNING, NodeStatus.PAUSED])


class BaseTimelineNode(ABC):
    """
    Abstract base class for all timeline nodes.

    Subclasses:
    - TrialNode: Leaf node running a single trial
    - TimelineNode: Internal node running a sequence of child nodes

    Parent links are weak references. A parent owns its children through its
    ``children`` list; a child only looks upward for parameters and variables.
    """

    def __init__(self, description: Dict[str, Any], dependencies, parent: Optional['BaseTimelineNode'] = None,
                 index: int = 0):
        """
        Initialize node.

        Args:
            description: Declarative node description
            dependencies: NodeDependencies shared by the node tree
            parent: Owning timeline (None for the root)
            index: Position among siblings
        """
        self.description = description
        self.dependencies = dependencies
        self.index = index
        self._parent_ref = weakref.ref(parent) if parent is not None else None

        self._status = NodeStatus.PENDING
        self._abort_requested = False

        # Set while not paused; run loops wait on it at advancement points
        self._resume_event = asyncio.Event()
        self._resume_event.set()

        self._parameters = {
            name: as_parameter_value(value)
            for name, value in description.items()
            if name not in BUILTIN_TIMELINE_PARAMETERS
        }

    @property
    def parent(self) -> Optional['BaseTimelineNode']:
        """Owning timeline, or None for the root."""
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    @property
    def root(self) -> 'BaseTimelineNode':
        """Topmost ancestor of this node."""
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    @property
    def status(self) -> NodeStatus:
        return self._status

    def get_status(self) -> NodeStatus:
        """Return the current status."""
        return self._status

    # ==================== RUN CONTROL ====================

    @abstractmethod
    async def run(self) -> None:
        """Run this node to settlement."""
        pass

    def pause(self):
        """Flag the node as paused. In-flight work is never interrupted."""
        if self._status == NodeStatus.RUNNING:
            self._status = NodeStatus.PAUSED
            self._resume_event.clear()
            logger.debug(f"{self!r} paused")

    def resume(self):
        """Release a pause."""
        if self._status == NodeStatus.PAUSED:
            self._status = NodeStatus.RUNNING
            self._resume_event.set()
            logger.debug(f"{self!r} resumed")

    def abort(self):
        """
        Request a graceful abort.

        The node finishes its in-flight work and then settles as ABORTED.
        A paused node is released so that it can settle without a resume.
        """
        if self._status in ACTIVE_STATUSES:
            self._abort_requested = True
            self._resume_event.set()
            logger.debug(f"{self!r} abort requested")

    def abort_unstarted(self):
        """Settle a node that was never started as ABORTED."""
        if self._status == NodeStatus.PENDING:
            self._status = NodeStatus.ABORTED
            logger.debug(f"{self!r} aborted before starting")

    async def _wait_while_paused(self):
        """Block until the node is resumed or aborted."""
        await self._resume_event.wait()

    def _ensure_pending(self):
        if self._status != NodeStatus.PENDING:
            raise RuntimeError(
                f"{self!r} cannot run from status '{self._status.value}'; nodes run only once"
            )

    # ==================== PARAMETERS ====================

    def get_parameter_value(self, name: str, recursive: bool = True, evaluate_functions: bool = True) -> Any:
        """
        Resolve a parameter for this node.

        Args:
            name: Parameter name; dots address nested mapping keys ('object.child.key')
            recursive: Fall back to ancestors when the parameter is not set locally
            evaluate_functions: Call function values and return their result

        Returns:
            Resolved value, or None if the parameter is not set anywhere.
            Timeline control parameters always resolve to None.
        """
        path = name.split('.')
        if path[0] in BUILTIN_TIMELINE_PARAMETERS:
            return None

        value = self._find_parameter(path, recursive)
        if value is None:
            return None

        # Variables resolve against the requesting node, not the declaring one
        if isinstance(value, TimelineVariable):
            value = as_parameter_value(self.evaluate_timeline_variable(value))

        if isinstance(value, Thunk):
            return value() if evaluate_functions else value.function
        return value.value

    def _find_parameter(self, path: List[str], recursive: bool):
        """Return the tagged value at ``path`` here or in the nearest ancestor."""
        value = _resolve_path(self._parameters.get(path[0]), path[1:])
        if value is None and recursive and self.parent is not None:
            return self.parent._find_parameter(path, recursive)
        return value

    # ==================== TIMELINE VARIABLES ====================

    def evaluate_timeline_variable(self, variable: Union[str, TimelineVariable]) -> Any:
        """
        Look up a timeline variable, walking from this node to the root.

        Each ancestor contributes the variable set it bound to the child on
        the path, so a node keeps resolving against its own binding after its
        siblings have run. A name present in a variable set stops the search,
        even when its value is None.

        Args:
            variable: Variable name or TimelineVariable reference

        Returns:
            Value from the nearest variable set defining the name, or None
        """
        name = variable.name if isinstance(variable, TimelineVariable) else variable

        variables = self._active_variables()
        if variables is not None and name in variables:
            return variables[name]

        child, parent = self, self.parent
        while parent is not None:
            variables = parent._variables_for(child)
            if variables is not None and name in variables:
                return variables[name]
            child, parent = parent, parent.parent
        return None

    def _active_variables(self) -> Optional[Mapping]:
        """Variable set bound by this node at its current position, if any."""
        return None

    def _variables_for(self, child: 'BaseTimelineNode') -> Optional[Mapping]:
        """Variable set this node bound to ``child``, if any."""
        return None

    # ==================== RESULTS AND ESTIMATES ====================

    @abstractmethod
    def collect_results(self) -> List[Any]:
        """All non-None leaf results this node has produced, in order."""
        pass

    @abstractmethod
    def count_completed_trials(self) -> int:
        """Number of trial-level descendants (or self) that reached COMPLETED."""
        pass

    @abstractmethod
    def get_naive_trial_count(self) -> int:
        """Static estimate of the number of trials this node runs."""
        pass

    def __repr__(self):
        return f"{type(self).__name__}(index={self.index}, status={self._status.value})"


def _resolve_path(value, path: List[str]):
    """
    Follow nested mapping keys below a tagged top-level value.

    Returns:
        Tagged value at the end of the path, or None if any step is missing
    """
    if value is None:
        return None
    if isinstance(value, Literal) and value.value is None:
        return None
    if not path:
        return value
    if not isinstance(value, Literal):
        return None

    current = value.value
    for key in path:
        if not isinstance(current, Mapping) or key not in current:
            return None
        current = current[key]

    if current is None:
        return None
    return as_parameter_value(current)
