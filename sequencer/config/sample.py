"""
Sampling configuration for timeline variable sets.
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Union

from ..errors import ConfigurationError
from ..randomization import SAMPLE_TYPES, SIZED_SAMPLE_TYPES


@dataclass
class SampleOptions:
    """
    Configuration of a timeline's ``sample`` parameter.

    Attributes:
        type: Strategy name ('with-replacement', 'without-replacement',
              'fixed-repetitions', 'alternate-groups' or 'custom')
        size: Number of draws, or repetitions for 'fixed-repetitions'
        weights: Per-variable-set weights for 'with-replacement'
        groups: Index groups for 'alternate-groups'
        randomize_group_order: Shuffle group order for 'alternate-groups'
        fn: Custom function receiving the base index list (type 'custom')
    """
    type: str
    size: Optional[Union[int, Sequence[int]]] = None
    weights: Optional[List[float]] = None
    groups: Optional[List[List[int]]] = None
    randomize_group_order: bool = False
    fn: Optional[Callable[[List[int]], Sequence[int]]] = None

    def __post_init__(self):
        """Validate sample type and required size."""
        if self.type not in SAMPLE_TYPES:
            raise ConfigurationError(f'Invalid type "{self.type}" in timeline sample parameters.')
        if self.type in SIZED_SAMPLE_TYPES and self.size is None:
            raise ConfigurationError(f"Sampling method '{self.type}' requires 'size'")

    def to_dict(self) -> dict:
        """Convert to dictionary (custom functions are not serializable and are dropped)."""
        data = {'type': self.type}
        if self.size is not None:
            data['size'] = self.size
        if self.weights is not None:
            data['weights'] = self.weights
        if self.groups is not None:
            data['groups'] = self.groups
        if self.randomize_group_order:
            data['randomize_group_order'] = True
        return data

    @classmethod
    def from_dict(cls, data: Any) -> 'SampleOptions':
        """
        Create SampleOptions from a dictionary.

        Accepts an existing SampleOptions unchanged.
        """
        if isinstance(data, cls):
            return data
        return cls(
            type=data.get('type'),
            size=data.get('size'),
            weights=data.get('weights'),
            groups=data.get('groups'),
            randomize_group_order=data.get('randomize_group_order', False),
            fn=data.get('fn'),
        )
