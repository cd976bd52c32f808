"""Physical constants shared by flux sources and accounting."""

from . import constants

__all__ = ['constants']
