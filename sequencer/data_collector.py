"""
ResultsCollector class for the sequencer.

Collects finished trials into an in-memory table.
"""

from typing import Any, Dict, List
from collections.abc import Mapping
import logging

import pandas as pd

from .execution.dependencies import TimelineCallbacks

logger = logging.getLogger(__name__)


class ResultsCollector(TimelineCallbacks):
    """
    Records every finished trial of a timeline tree.

    Pass an instance as ``callbacks`` in NodeDependencies (or to
    EngineSettings.create_dependencies) and read the collected rows with
    to_dataframe() once the run is over.

    Each row holds:
    - index: position of the trial among its siblings
    - trial_index: experiment-wide trial number
    - status: final trial status
    - start_time, end_time, duration: executor call timing
    - result fields (mapping results are flattened into columns,
      other payloads are stored under 'result')
    """

    def __init__(self):
        self.trials_data: List[Dict[str, Any]] = []

    def on_trial_finish(self, trial) -> None:
        """
        Record a finished trial.

        Args:
            trial: TrialNode that just settled
        """
        record = {
            'index': trial.index,
            'trial_index': trial.trial_index,
            'status': trial.get_status().value,
            'start_time': trial.start_time,
            'end_time': trial.end_time,
            'duration': trial.get_duration(),
        }

        result = trial.get_result()
        if isinstance(result, Mapping):
            record.update(result)
        elif result is not None:
            record['result'] = result

        self.trials_data.append(record)
        logger.debug(f"Recorded trial {trial.trial_index} ({record['status']})")

    def to_dataframe(self) -> pd.DataFrame:
        """
        Collected trials as a DataFrame, one row per trial in completion order.
        """
        return pd.DataFrame(self.trials_data)

    def clear(self):
        """Forget all collected trials."""
        self.trials_data = []

    def __len__(self):
        return len(self.trials_data)
