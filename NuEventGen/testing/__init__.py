"""Reference collaborators for examples and tests."""

from .simple_geometry import BoxGeometry, BoxVolume, RayTraceEngine

__all__ = ['BoxGeometry', 'BoxVolume', 'RayTraceEngine']
