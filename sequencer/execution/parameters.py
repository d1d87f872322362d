"""
Tagged parameter values for timeline descriptions.

Every top-level parameter in a node description is classified once, when the
node is created, into one of three kinds:

- Literal: a plain value, returned as-is
- TimelineVariable: a reference resolved against the active variable sets
- Thunk: a callable evaluated lazily on lookup
"""

from typing import Any, Callable


class Literal:
    """A plain parameter value."""

    __slots__ = ('value',)

    def __init__(self, value: Any):
        self.value = value

    def __repr__(self):
        return f"Literal({self.value!r})"


class TimelineVariable:
    """
    Reference to a timeline variable, resolved when the parameter is read.

    Example:
        {'type': 'image', 'stimulus': TimelineVariable('image_path')}
    """

    __slots__ = ('name',)

    def __init__(self, name: str):
        self.name = name

    def __eq__(self, other):
        return isinstance(other, TimelineVariable) and other.name == self.name

    def __hash__(self):
        return hash(('TimelineVariable', self.name))

    def __repr__(self):
        return f"TimelineVariable({self.name!r})"


class Thunk:
    """A callable parameter value, evaluated with no arguments on lookup."""

    __slots__ = ('function',)

    def __init__(self, function: Callable[[], Any]):
        self.function = function

    def __call__(self) -> Any:
        return self.function()

    def __repr__(self):
        return f"Thunk({self.function!r})"


def as_parameter_value(raw: Any):
    """
    Classify a raw description value.

    Args:
        raw: Value as written in the description

    Returns:
        Literal, TimelineVariable or Thunk
    """
    if isinstance(raw, (Literal, TimelineVariable, Thunk)):
        return raw
    if callable(raw):
        return Thunk(raw)
    return Literal(raw)
