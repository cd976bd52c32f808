"""Abstract interaction generator engine."""

from abc import ABC, abstractmethod
from typing import Optional

from ..core.data_models import Candidate


class GeneratorEngine(ABC):
    """Black-box interaction generator driven by a flux source and geometry.
    
    The engine is configured once (flux source, geometry, splines) and then
    asked for one candidate at a time.
    """
    
    def __init__(self):
        self.flux = None
        self.geometry = None
        self.spline_file: Optional[str] = None
    
    def use_flux_source(self, flux) -> None:
        self.flux = flux
    
    def use_geometry(self, geometry) -> None:
        self.geometry = geometry
    
    def use_splines(self, spline_file: Optional[str]) -> None:
        self.spline_file = spline_file
    
    @abstractmethod
    def configure(self) -> None:
        """Finish setup; may trigger the geometry's path length computation."""
    
    @abstractmethod
    def generate_candidate(self) -> Optional[Candidate]:
        """Generate one interaction, or None when no viable one was produced."""
    
    @abstractmethod
    def cumulative_used_exposure(self) -> float:
        """Exposure consumed by the flux driver since the start of the run."""
    
    @abstractmethod
    def global_probability_scale(self) -> float:
        """Interaction probability scale applied to every candidate."""
