"""
Randomization utilities for timeline variable ordering.

Provides the sampling strategies a timeline's ``sample`` parameter can name,
plus the plain shuffle used by ``randomize_order``.
"""

from typing import Any, Dict, List, Optional, Sequence, Union
import logging
import random

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

SAMPLE_TYPES = (
    'with-replacement',
    'without-replacement',
    'fixed-repetitions',
    'alternate-groups',
    'custom',
)

# Strategies that draw a number of variable sets given by ``size``
SIZED_SAMPLE_TYPES = frozenset(['with-replacement', 'without-replacement', 'fixed-repetitions'])


class Randomizer:
    """
    Seedable source of orderings for timeline variable sets.

    All strategies operate on copies; input sequences are never mutated.

    Example:
        randomizer = Randomizer(seed=42)
        order = randomizer.sample('without-replacement', [0, 1, 2, 3], {'size': 2})
    """

    def __init__(self, seed: Optional[int] = None):
        """
        Initialize randomizer.

        Args:
            seed: Random seed for reproducibility (None = system entropy)
        """
        self.seed = seed
        self._random = random.Random(seed)

    def shuffle(self, sequence: Sequence[Any]) -> List[Any]:
        """
        Return a uniformly permuted copy of the sequence.
        """
        shuffled = list(sequence)
        self._random.shuffle(shuffled)
        return shuffled

    def sample_with_replacement(self, sequence: Sequence[Any], size: int,
                                weights: Optional[Sequence[float]] = None) -> List[Any]:
        """
        Draw ``size`` elements with replacement, optionally weighted.

        Args:
            sequence: Population to draw from
            size: Number of draws
            weights: Relative weight per element (None = uniform)

        Returns:
            List of drawn elements
        """
        if weights is not None and len(weights) != len(sequence):
            raise ConfigurationError(
                f"Expected {len(sequence)} sampling weights, got {len(weights)}"
            )
        return self._random.choices(list(sequence), weights=weights, k=size)

    def sample_without_replacement(self, sequence: Sequence[Any], size: int) -> List[Any]:
        """
        Draw ``size`` distinct positions from the sequence.

        Raises:
            ConfigurationError: If size exceeds the sequence length
        """
        if size > len(sequence):
            raise ConfigurationError(
                f"Cannot take a sample larger than the population "
                f"(size={size}, population={len(sequence)})"
            )
        return self._random.sample(list(sequence), size)

    def repeat(self, sequence: Sequence[Any], repetitions: Union[int, Sequence[int]]) -> List[Any]:
        """
        Repeat every element and shuffle the result.

        Args:
            sequence: Elements to repeat
            repetitions: Count applied to every element, or one count per element

        Returns:
            Shuffled list with each element repeated
        """
        if isinstance(repetitions, int):
            counts = [repetitions] * len(sequence)
        else:
            counts = list(repetitions)
            if len(counts) != len(sequence):
                raise ConfigurationError(
                    f"Expected {len(sequence)} repetition counts, got {len(counts)}"
                )

        repeated = []
        for element, count in zip(sequence, counts):
            repeated.extend([element] * count)
        return self.shuffle(repeated)

    def shuffle_alternate_groups(self, groups: Sequence[Sequence[Any]],
                                 randomize_group_order: bool = False) -> List[Any]:
        """
        Interleave groups so that consecutive elements come from different groups.

        Each group is shuffled internally. Elements are then taken round-robin,
        one per group, in group order (shuffled first if requested). Output
        length is the shortest group's length times the number of groups.
        """
        if not groups:
            return []

        order = list(range(len(groups)))
        if randomize_group_order:
            order = self.shuffle(order)

        shuffled_groups = [self.shuffle(group) for group in groups]
        rounds = min(len(group) for group in shuffled_groups)

        interleaved = []
        for i in range(rounds):
            for group_index in order:
                interleaved.append(shuffled_groups[group_index][i])
        return interleaved

    def sample(self, strategy: str, indices: Sequence[int], options: Any) -> List[int]:
        """
        Reorder or resample variable set indices according to a named strategy.

        Args:
            strategy: One of SAMPLE_TYPES
            indices: Base index sequence [0..n-1]
            options: SampleOptions (or dict) carrying strategy parameters

        Returns:
            Index sequence in execution order

        Raises:
            ConfigurationError: If the strategy name is unknown or a required size is missing
        """
        option = _option_getter(options)
        if strategy in SIZED_SAMPLE_TYPES and option('size') is None:
            raise ConfigurationError(f"Sampling method '{strategy}' requires 'size'")

        if strategy == 'with-replacement':
            order = self.sample_with_replacement(indices, option('size'), option('weights'))
        elif strategy == 'without-replacement':
            order = self.sample_without_replacement(indices, option('size'))
        elif strategy == 'fixed-repetitions':
            order = self.repeat(indices, option('size'))
        elif strategy == 'alternate-groups':
            order = self.shuffle_alternate_groups(
                option('groups'), bool(option('randomize_group_order'))
            )
        elif strategy == 'custom':
            order = list(option('fn')(list(indices)))
        else:
            raise ConfigurationError(f'Invalid type "{strategy}" in timeline sample parameters.')

        logger.debug(f"Sampled variable order (method: {strategy}, seed: {self.seed}): {order}")
        return order


def _option_getter(options: Any):
    """Uniform attribute/key access over SampleOptions and plain dicts."""
    if isinstance(options, dict):
        return options.get
    return lambda name: getattr(options, name, None)


def validate_sample(sample: Any) -> List[str]:
    """
    Check a ``sample`` parameter without running it.

    Returns:
        List of error messages (empty if valid)
    """
    errors = []
    sample_type = _option_getter(sample)('type')

    if sample_type not in SAMPLE_TYPES:
        errors.append(f'Invalid type "{sample_type}" in timeline sample parameters.')
    elif sample_type == 'custom' and not callable(_option_getter(sample)('fn')):
        errors.append("Custom sampling requires a callable 'fn'")
    elif sample_type == 'alternate-groups' and not _option_getter(sample)('groups'):
        errors.append("Alternate-groups sampling requires 'groups'")
    elif sample_type in SIZED_SAMPLE_TYPES:
        if _option_getter(sample)('size') is None:
            errors.append(f"Sampling method '{sample_type}' requires 'size'")

    return errors
