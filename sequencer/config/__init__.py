"""
Configuration structures for the sequencer.

This module contains data classes for engine settings and the ``sample``
parameter of timelines.
"""

from .sample import SampleOptions
from .settings import EngineSettings

__all__ = ['SampleOptions', 'EngineSettings']
