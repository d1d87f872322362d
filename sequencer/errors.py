"""
Exception types raised by the sequencer.
"""


class SequencerError(Exception):
    """Base class for all sequencer errors."""


class ConfigurationError(SequencerError, ValueError):
    """
    Raised when a timeline description cannot be executed as written.

    Examples: an unknown ``sample.type``, a content item that is neither a
    trial nor a nested timeline, or invalid engine settings.
    """
