"""Geometry service interface."""

from .interfaces import GeometryService

__all__ = ['GeometryService']
