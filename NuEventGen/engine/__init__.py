"""Generator engine interface."""

from .interfaces import GeneratorEngine

__all__ = ['GeneratorEngine']
