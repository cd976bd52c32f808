"""
Flux-Driven Neutrino Event Generation Driver

Assembles flux sources, fiducial cuts and geometry scans around a black-box
interaction generator and keeps per-spill exposure accounting.
"""

__version__ = "0.1.0"

from .core.event_generation_helper import EventGenerationHelper
from .utils.config import SourceConfig

__all__ = ['EventGenerationHelper', 'SourceConfig']
