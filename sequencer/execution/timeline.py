"""
TimelineNode class for the sequencer.

Expands a declarative description into child nodes and runs them in order,
with repetition, looping, conditional gating and timeline variables.
"""

from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Sequence, Union
import logging

from ..config.sample import SampleOptions
from ..errors import ConfigurationError
from ..randomization import validate_sample
from .base_node import ACTIVE_STATUSES, TERMINAL_STATUSES, BaseTimelineNode, NodeStatus
from .dependencies import NodeDependencies
from .trial import TrialNode

logger = logging.getLogger(__name__)


class TimelineNode(BaseTimelineNode):
    """
    Runs a sequence of child nodes.

    A description is either a list of child items, or a dict with a
    'timeline' list plus optional control parameters:

    - repetitions: number of repetitions (default 1)
    - loop_function(results): called after every pass; True repeats the pass
    - conditional_function(): checked before every pass; False stops
    - timeline_variables: list of variable sets, one pass over the items per set
    - sample / randomize_order: ordering of the variable sets
    - on_timeline_start() / on_timeline_finish(): called around every pass

    Any other key is a parameter inherited by every descendant.

    Example:
        timeline = TimelineNode({
            'timeline': [{'type': 'fixation'}, {'type': 'image', 'stimulus': TimelineVariable('image')}],
            'timeline_variables': [{'image': 'a.png'}, {'image': 'b.png'}],
            'randomize_order': True,
        }, dependencies)
        await timeline.run()
    """

    def __init__(self, description: Union[Dict[str, Any], Sequence[Any]],
                 dependencies: Optional[NodeDependencies] = None,
                 parent: Optional['TimelineNode'] = None, index: int = 0):
        """
        Initialize timeline.

        Args:
            description: Dict with a 'timeline' key, or a bare list of items
            dependencies: Collaborators (default: parent's, or a fresh bundle)
            parent: Owning timeline (None for the root)
            index: Position among siblings
        """
        if not isinstance(description, Mapping):
            description = {'timeline': list(description)}
        if dependencies is None:
            dependencies = parent.dependencies if parent is not None else NodeDependencies()

        super().__init__(description, dependencies, parent, index)

        # Children of the current pass only; replaced at the start of each pass
        self.children: List[BaseTimelineNode] = []
        self.current_child_index: Optional[int] = None
        self.repetition_count = 0
        self.instantiated_child_count = 0

        self._child_variable_sets: List[Optional[Mapping]] = []
        self._current_variables: Optional[Mapping] = None

        # Results and completed trials of finished passes
        self._result_history: List[Any] = []
        self._completed_trial_history = 0
        self._pass_open = False

        self._trial_counter = 0

    # ==================== DESCRIPTION ACCESSORS ====================

    @property
    def timeline(self) -> List[Any]:
        return self.description.get('timeline') or []

    @property
    def timeline_variables(self) -> List[Mapping]:
        return self.description.get('timeline_variables') or []

    @property
    def repetitions(self) -> int:
        repetitions = self.description.get('repetitions')
        return 1 if repetitions is None else repetitions

    # ==================== RUN ====================

    async def run(self):
        """
        Run all passes of this timeline.

        Settles as SKIPPED if the conditional function rejects the first
        pass, ABORTED if an abort was requested, and COMPLETED otherwise.
        """
        self._ensure_pending()

        if not self._conditional_allows():
            self._status = NodeStatus.SKIPPED
            logger.warning(f"{self!r} skipped by conditional_function")
            return

        self._status = NodeStatus.RUNNING
        logger.info(f"Timeline {self.index} started ({len(self.timeline)} items, {self.repetitions} repetitions)")

        await self._run_repetitions()

        self.current_child_index = None
        if self._abort_requested:
            self._status = NodeStatus.ABORTED
            logger.warning(f"Timeline {self.index} aborted after {self.repetition_count} passes")
        else:
            self._status = NodeStatus.COMPLETED
            logger.info(f"Timeline {self.index} completed after {self.repetition_count} passes")

    async def _run_repetitions(self):
        """
        Run passes until neither ``repetitions`` nor ``loop_function`` asks for more.

        Each repetition runs at least one pass and keeps looping while
        loop_function returns True, so both triggers extend the run.
        """
        loop_function = self.description.get('loop_function')

        for _ in range(self.repetitions):
            keep_looping = True
            while keep_looping:
                if self.repetition_count > 0 and not self._conditional_allows():
                    return

                await self._run_pass()
                if self._abort_requested:
                    return

                keep_looping = loop_function is not None and bool(loop_function(self.get_result_history()))

    async def _run_pass(self):
        """Instantiate this pass's children and run them one at a time."""
        on_timeline_start = self.description.get('on_timeline_start')
        if on_timeline_start is not None:
            on_timeline_start()

        self._instantiate_children(self._generate_variable_order())
        self._pass_open = True

        for position, child in enumerate(self.children):
            if self._abort_requested:
                for remaining in self.children[position:]:
                    remaining.abort_unstarted()
                break

            self.current_child_index = position
            self._current_variables = self._child_variable_sets[position]
            await child.run()

            # Pause barrier: hold here until resumed or aborted
            await self._wait_while_paused()

        self._close_pass()

        on_timeline_finish = self.description.get('on_timeline_finish')
        if on_timeline_finish is not None:
            on_timeline_finish()

    def _close_pass(self):
        self._result_history.extend(self.get_results())
        self._completed_trial_history += sum(child.count_completed_trials() for child in self.children)
        self._pass_open = False
        self.repetition_count += 1

    def _conditional_allows(self) -> bool:
        conditional_function = self.description.get('conditional_function')
        return conditional_function is None or bool(conditional_function())

    def _generate_variable_order(self) -> List[Optional[int]]:
        """
        Order in which variable sets are used for this pass.

        Returns:
            Variable set indices, or [None] when there are no timeline variables

        Raises:
            ConfigurationError: If ``sample`` names an unknown strategy
        """
        variables = self.timeline_variables
        if not variables:
            return [None]

        indices = list(range(len(variables)))
        randomizer = self.dependencies.randomizer

        sample = self.description.get('sample')
        if sample is not None:
            options = SampleOptions.from_dict(sample)
            return list(randomizer.sample(options.type, indices, options))

        if self.description.get('randomize_order'):
            return list(randomizer.shuffle(indices))

        return indices

    def _instantiate_children(self, variable_order: List[Optional[int]]):
        """Replace ``children`` with fresh nodes, one per item per variable set."""
        variables = self.timeline_variables

        children = []
        variable_sets = []
        for variable_index in variable_order:
            variable_set = variables[variable_index] if variable_index is not None else None
            for item in self.timeline:
                children.append(self._create_child(item, len(children)))
                variable_sets.append(variable_set)

        self.children = children
        self._child_variable_sets = variable_sets
        self.current_child_index = None
        self.instantiated_child_count += len(children)
        logger.debug(f"Timeline {self.index} instantiated {len(children)} children")

    def _create_child(self, item: Any, index: int) -> BaseTimelineNode:
        if _is_timeline_description(item):
            return TimelineNode(item, self.dependencies, parent=self, index=index)
        if isinstance(item, Mapping) and 'type' in item:
            return TrialNode(item, self.dependencies, parent=self, index=index)
        raise ConfigurationError(
            f"Timeline item {index} is neither a trial (missing 'type') nor a nested timeline: {item!r}"
        )

    # ==================== RUN CONTROL ====================

    def pause(self):
        """Pause this timeline and any active child timeline."""
        if self._status != NodeStatus.RUNNING:
            return
        child = self._active_child()
        if isinstance(child, TimelineNode):
            child.pause()
        super().pause()

    def resume(self):
        """Resume this timeline and any active child timeline."""
        if self._status != NodeStatus.PAUSED:
            return
        child = self._active_child()
        if isinstance(child, TimelineNode):
            child.resume()
        super().resume()

    def abort(self):
        """
        Abort this timeline after the active trial settles.

        No effect unless the timeline is running or paused.
        """
        if self._status not in ACTIVE_STATUSES:
            return
        child = self._active_child()
        if child is not None:
            child.abort()
        super().abort()

    def _active_child(self) -> Optional[BaseTimelineNode]:
        if self.current_child_index is None:
            return None
        child = self.children[self.current_child_index]
        if child.get_status() in ACTIVE_STATUSES:
            return child
        return None

    def next_trial_index(self) -> int:
        """Claim the next experiment-wide trial index (meaningful on the root)."""
        trial_index = self._trial_counter
        self._trial_counter += 1
        return trial_index

    # ==================== QUERIES ====================

    def _active_variables(self) -> Optional[Mapping]:
        return self._current_variables

    def _variables_for(self, child: BaseTimelineNode) -> Optional[Mapping]:
        position = child.index
        if position < len(self.children) and self.children[position] is child:
            return self._child_variable_sets[position]
        return None

    def get_results(self) -> List[Any]:
        """
        Collect leaf results of the current children, in child order.

        Nested timelines contribute every result they produced. None results
        are omitted.
        """
        results = []
        for child in self.children:
            results.extend(child.collect_results())
        return results

    def get_result_history(self) -> List[Any]:
        """All results produced so far, across every pass of this timeline."""
        if self._pass_open:
            return self._result_history + self.get_results()
        return list(self._result_history)

    def collect_results(self) -> List[Any]:
        return self.get_result_history()

    def count_completed_trials(self) -> int:
        completed = self._completed_trial_history
        if self._pass_open:
            completed += sum(child.count_completed_trials() for child in self.children)
        return completed

    def get_progress(self) -> float:
        """
        Fraction of the naive trial count that has completed.

        Returns:
            Value in [0, 1]
        """
        total = self.get_naive_trial_count()
        if total == 0:
            return 1.0 if self._status in TERMINAL_STATUSES else 0.0
        return min(1.0, self.count_completed_trials() / total)

    def get_naive_trial_count(self) -> int:
        """
        Estimate the number of trials without running anything.

        Sums one per trial item and the estimate of each nested timeline,
        times repetitions and the number of variable sets. Conditional
        gating, loop_function and sampling are ignored.
        """
        return estimate_trial_count(self.description)

    def get_current_trial(self) -> Optional[TrialNode]:
        """
        Return the trial currently in flight anywhere below this timeline.

        Returns:
            Active TrialNode, or None
        """
        child = self._active_child()
        if isinstance(child, TimelineNode):
            return child.get_current_trial()
        return child

    def validate(self) -> List[str]:
        """
        Validate the description without running it.

        Returns:
            List of error messages (empty if valid)
        """
        return validate_description(self.description)


def _is_timeline_description(item: Any) -> bool:
    if isinstance(item, (list, tuple)):
        return True
    return isinstance(item, Mapping) and 'timeline' in item


def estimate_trial_count(description: Union[Mapping, Sequence]) -> int:
    """
    Naive trial count of a timeline description.

    Args:
        description: Dict with a 'timeline' key, or a bare list of items

    Returns:
        Estimated number of trial runs
    """
    if not isinstance(description, Mapping):
        description = {'timeline': description}

    count = 0
    for item in description.get('timeline') or []:
        if _is_timeline_description(item):
            count += estimate_trial_count(item)
        else:
            count += 1

    repetitions = description.get('repetitions')
    if repetitions is None:
        repetitions = 1
    variable_sets = len(description.get('timeline_variables') or []) or 1

    return count * repetitions * variable_sets


def validate_description(description: Union[Mapping, Sequence]) -> List[str]:
    """
    Check a timeline description for configuration errors.

    Args:
        description: Dict with a 'timeline' key, or a bare list of items

    Returns:
        List of error messages (empty if valid)
    """
    if not isinstance(description, Mapping):
        description = {'timeline': description}

    errors = []

    repetitions = description.get('repetitions')
    if repetitions is not None and (not isinstance(repetitions, int) or repetitions < 0):
        errors.append(f"repetitions must be a non-negative integer, got {repetitions!r}")

    variables = description.get('timeline_variables')
    if variables is not None:
        if not isinstance(variables, (list, tuple)):
            errors.append("timeline_variables must be a list of variable sets")
        else:
            for i, variable_set in enumerate(variables):
                if not isinstance(variable_set, Mapping):
                    errors.append(f"Variable set {i} is not a mapping")

    sample = description.get('sample')
    if sample is not None:
        errors.extend(validate_sample(sample))

    for name in ('loop_function', 'conditional_function', 'on_timeline_start', 'on_timeline_finish'):
        value = description.get(name)
        if value is not None and not callable(value):
            errors.append(f"{name} must be callable")

    for i, item in enumerate(description.get('timeline') or []):
        if _is_timeline_description(item):
            item_errors = validate_description(item)
            errors.extend([f"Item {i} (timeline): {e}" for e in item_errors])
        elif not isinstance(item, Mapping) or 'type' not in item:
            errors.append(f"Item {i}: expected a trial with 'type' or a nested 'timeline'")

    return errors
