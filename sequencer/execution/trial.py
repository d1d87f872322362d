"""
TrialNode class for the sequencer.

Represents a single trial execution: the leaf of a timeline tree.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Dict, List, Optional
import logging
import time

from ..errors import ConfigurationError
from .base_node import BaseTimelineNode, NodeStatus

logger = logging.getLogger(__name__)

# Trial callbacks are resolved unevaluated and are not passed to the executor
TRIAL_CALLBACK_PARAMETERS = ('on_start', 'on_finish')


class TrialExecutor(ABC):
    """
    Host capability that actually presents a trial.

    Implementations render the trial described by ``trial_parameters`` and
    return its result payload (usually a dict) once the trial is over, or
    None if it produced no data.
    """

    @abstractmethod
    async def execute(self, trial_parameters: Dict[str, Any]) -> Optional[Any]:
        """
        Run one trial.

        Args:
            trial_parameters: Fully resolved parameters, including 'type'

        Returns:
            Result payload or None
        """
        pass


class TrialNode(BaseTimelineNode):
    """
    Leaf node invoking the trial executor exactly once.

    Contains:
    - result: Payload captured from the executor (None until settled)
    - trial_index: Experiment-wide sequence number assigned on start
    - start_time / end_time: Wall-clock timestamps of the executor call

    Supported trial-level parameters besides those passed to the executor:
    - on_start(trial_parameters): called before the executor runs
    - on_finish(result): called after the executor settles
    - data: mapping merged into a mapping result
    - post_trial_gap: milliseconds to wait after the executor settles
    """

    def __init__(self, description: Dict[str, Any], dependencies, parent=None, index: int = 0):
        super().__init__(description, dependencies, parent, index)
        self.result: Optional[Any] = None
        self.trial_index: Optional[int] = None
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

    async def run(self):
        """
        Run the trial: executor call, optional post-trial gap, then settle.

        The executor call is never cancelled. An abort requested while it is
        in flight turns the final status into ABORTED once it settles.
        """
        self._ensure_pending()
        self._status = NodeStatus.RUNNING
        self.trial_index = self._claim_trial_index()

        trial_parameters = self.get_trial_parameters()

        on_start = self.get_parameter_value('on_start', evaluate_functions=False)
        if on_start is not None:
            on_start(trial_parameters)
        self.dependencies.callbacks.on_trial_start(self)

        logger.debug(f"Trial {self.trial_index} started (type: {trial_parameters.get('type')})")
        self.mark_start()
        payload = await self._execute(trial_parameters)
        self.mark_end()

        self.result = self._build_result(payload)

        on_finish = self.get_parameter_value('on_finish', evaluate_functions=False)
        if on_finish is not None:
            on_finish(self.result)

        if not self._abort_requested:
            gap = self.get_parameter_value('post_trial_gap')
            if gap is None:
                gap = self.dependencies.default_post_trial_gap
            if gap:
                await self.dependencies.delay(gap)

        # A paused trial holds its settlement until resumed or aborted
        await self._wait_while_paused()

        self._status = NodeStatus.ABORTED if self._abort_requested else NodeStatus.COMPLETED
        self.dependencies.callbacks.on_trial_finish(self)
        logger.debug(f"Trial {self.trial_index} {self._status.value} in {self.get_duration():.3f}s")

    async def _execute(self, trial_parameters: Dict[str, Any]):
        executor = self.dependencies.trial_executor
        if executor is None:
            raise ConfigurationError("No trial executor configured")
        execute = getattr(executor, 'execute', executor)
        return await execute(trial_parameters)

    def abort(self):
        """
        Abort the trial.

        A pending trial is settled as ABORTED immediately and never executed.
        A running or paused trial settles as ABORTED after its executor call.
        """
        if self._status == NodeStatus.PENDING:
            self._status = NodeStatus.ABORTED
            logger.debug(f"{self!r} aborted before start")
        else:
            super().abort()

    def get_trial_parameters(self) -> Dict[str, Any]:
        """
        Resolve every parameter this trial sees.

        Includes parameters declared on the trial and inherited from any
        ancestor timeline, with timeline variables and functions evaluated.

        Returns:
            Dictionary of parameter name to resolved value
        """
        names = []
        node = self
        while node is not None:
            for name in node._parameters:
                if name not in names and name not in TRIAL_CALLBACK_PARAMETERS:
                    names.append(name)
            node = node.parent

        return {name: self.get_parameter_value(name) for name in names}

    def _build_result(self, payload: Any) -> Any:
        """Merge the ``data`` parameter and trial_index into a mapping payload."""
        data = self.get_parameter_value('data')
        if payload is None and data is None:
            return None
        if payload is None:
            payload = {}

        if not isinstance(payload, Mapping):
            return payload

        result = dict(payload)
        if isinstance(data, Mapping):
            result.update(data)
        result['trial_index'] = self.trial_index
        return result

    def _claim_trial_index(self) -> int:
        parent = self.parent
        if parent is None:
            return 0
        return parent.root.next_trial_index()

    def get_result(self) -> Optional[Any]:
        """Return the captured result payload, or None."""
        return self.result

    def collect_results(self) -> List[Any]:
        result = self.get_result()
        return [] if result is None else [result]

    def count_completed_trials(self) -> int:
        return 1 if self._status == NodeStatus.COMPLETED else 0

    def get_naive_trial_count(self) -> int:
        return 1

    def mark_start(self):
        """Mark the trial as started."""
        self.start_time = time.time()

    def mark_end(self):
        """Mark the trial as ended."""
        self.end_time = time.time()

    def get_duration(self) -> Optional[float]:
        """
        Get executor duration in seconds.

        Returns:
            Duration in seconds, or None if not completed
        """
        if self.start_time is not None and self.end_time is not None:
            return self.end_time - self.start_time
        return None

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize trial state to dictionary.

        Returns:
            Dictionary with all trial information
        """
        return {
            'index': self.index,
            'trial_index': self.trial_index,
            'status': self._status.value,
            'result': self.result,
            'start_time': self.start_time,
            'end_time': self.end_time,
            'duration': self.get_duration(),
        }
