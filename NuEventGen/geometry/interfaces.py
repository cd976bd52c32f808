"""Abstract geometry service consumed by the selector and scan configuration."""

from abc import ABC, abstractmethod
from typing import Optional
import numpy as np

from ..core.data_models import PathLengthList, ScanSettings
from ..physics.constants import (
    DEFAULT_SCANNER_N_PARTICLES,
    DEFAULT_SCANNER_N_POINTS,
    DEFAULT_SCANNER_N_RAYS
)


class GeometryService(ABC):
    """Detector geometry as seen by the event generation driver.
    
    Two names are tracked separately: the *top volume name* the generator
    restricts vertices to, and the *active volume* the shared geometry
    currently points at. The active volume is swapped to the detector
    volume only for the duration of one sample.
    
    Attributes:
        scanner_n_points: Default number of box scan points
        scanner_n_rays: Default number of box scan rays
        scanner_n_particles: Default number of flux scan particles
    """
    
    scanner_n_points: int = DEFAULT_SCANNER_N_POINTS
    scanner_n_rays: int = DEFAULT_SCANNER_N_RAYS
    scanner_n_particles: int = DEFAULT_SCANNER_N_PARTICLES
    
    @property
    @abstractmethod
    def top_volume_name(self) -> str:
        """Volume interactions are generated in."""
    
    @property
    @abstractmethod
    def world_volume_name(self) -> str:
        """Outermost volume of the geometry."""
    
    @property
    @abstractmethod
    def active_volume(self) -> str:
        """Volume the geometry currently navigates in."""
    
    @property
    def geometry_file(self) -> str:
        return ''
    
    @abstractmethod
    def set_top_volume_name(self, name: str) -> None:
        """Restrict vertex generation to ``name``."""
    
    @abstractmethod
    def set_active_volume(self, name: str) -> None:
        """Point the geometry at ``name``."""
    
    @abstractmethod
    def total_mass(self, volume_name: str) -> float:
        """Mass of a volume and its daughters in kg."""
    
    @abstractmethod
    def detector_length(self) -> float:
        """Length of the detector along the beam axis."""
    
    @abstractmethod
    def install_volume_selector(self, selector) -> None:
        """Adopt a VolumeSelector; entries outside it are removed."""
    
    @abstractmethod
    def configure_scan(self, settings: ScanSettings) -> None:
        """Configure how maximum path lengths are computed or loaded."""
    
    @abstractmethod
    def max_path_lengths(self) -> PathLengthList:
        """Maximum path lengths currently in use."""
    
    def master_to_top(self, point: np.ndarray) -> np.ndarray:
        """Convert a master-frame point into the top volume frame."""
        return np.asarray(point, dtype=float)
