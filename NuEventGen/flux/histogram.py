"""Histogram-based cylindrical beam flux."""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence
import h5py
import numpy as np
import torch

from .base import FluxSource, unit_vector
from ..core.data_models import FluxRay, FluxType
from ..physics.constants import FLAVOR_HISTOGRAM_NAMES
from ..utils.logging import get_logger
from ..utils.validation import InvalidConfigurationError


logger = get_logger()


@dataclass
class FluxHistogram:
    """One-dimensional energy spectrum.
    
    Attributes:
        name: Histogram name in the flux file
        bin_edges: Bin edges in GeV [N+1]
        contents: Bin contents [N]
    """
    name: str
    bin_edges: np.ndarray
    contents: np.ndarray
    
    def __post_init__(self):
        self.bin_edges = np.asarray(self.bin_edges, dtype=float)
        self.contents = np.asarray(self.contents, dtype=float)
        if len(self.bin_edges) != len(self.contents) + 1:
            raise ValueError(
                f"Histogram {self.name}: {len(self.bin_edges)} edges for "
                f"{len(self.contents)} bins"
            )
    
    def integral(self) -> float:
        """Sum of bin contents (bin widths are not applied)."""
        return float(np.sum(self.contents))
    
    def find_bin(self, energy: float) -> int:
        """Index of the bin containing ``energy``, -1 outside the range."""
        if energy < self.bin_edges[0] or energy >= self.bin_edges[-1]:
            return -1
        return int(np.searchsorted(self.bin_edges, energy, side='right') - 1)
    
    def bin_content(self, index: int) -> float:
        if index < 0 or index >= len(self.contents):
            return 0.0
        return float(self.contents[index])


def load_flux_histograms(file_path: str, flavors: Sequence[int]) -> Dict[int, FluxHistogram]:
    """Load one energy spectrum per flavor from an HDF5 flux file.
    
    Args:
        file_path: HDF5 file with one group per histogram name
        flavors: Flavors to load, in generation order
        
    Returns:
        Ordered mapping of flavor to histogram
        
    Raises:
        InvalidConfigurationError: If a flavor has no histogram
    """
    logger.info(f"Loading flux histograms from {file_path}")
    
    histograms: Dict[int, FluxHistogram] = {}
    with h5py.File(file_path, 'r') as f:
        logger.debug(f"Histogram file contents: {list(f.keys())}")
        for pdg in flavors:
            name = FLAVOR_HISTOGRAM_NAMES.get(pdg)
            if name is None:
                raise InvalidConfigurationError(
                    f"No flux histogram name defined for flavor {pdg}"
                )
            if name not in f:
                raise InvalidConfigurationError(
                    f"Flux histogram '{name}' for flavor {pdg} not found in {file_path}"
                )
            histograms[pdg] = FluxHistogram(
                name=name,
                bin_edges=f[name]['bin_edges'][()],
                contents=f[name]['contents'][()]
            )
    
    return histograms


class CylindricalHistogramFlux(FluxSource):
    """Parallel beam over a disk, energies drawn from per-flavor spectra.
    
    Attributes:
        spectra: Energy spectrum per flavor
        direction: Unit beam direction
        beam_spot: Center of the beam disk
        transverse_radius: Radius of the beam disk
    """
    
    flux_type = FluxType.HISTOGRAM
    
    def __init__(self, generator: Optional[torch.Generator] = None):
        super().__init__(generator)
        self.spectra: Dict[int, FluxHistogram] = {}
        self.direction = np.array([0.0, 0.0, 1.0])
        self.beam_spot = np.zeros(3)
        self.transverse_radius = 0.0
    
    def add_energy_spectrum(self, pdg: int, histogram: FluxHistogram) -> None:
        self.spectra[int(pdg)] = histogram
    
    def set_nu_direction(self, direction: Sequence[float]) -> None:
        self.direction = unit_vector(direction)
    
    def set_beam_spot(self, spot: Sequence[float]) -> None:
        self.beam_spot = np.asarray(spot, dtype=float)
    
    def set_transverse_radius(self, radius: float) -> None:
        self.transverse_radius = float(radius)
    
    def flux_particles(self) -> List[int]:
        return list(self.spectra)
    
    @property
    def total_flux(self) -> float:
        return sum(h.integral() for h in self.spectra.values())
    
    def generate_next(self) -> bool:
        if not self.spectra or self.total_flux <= 0:
            raise RuntimeError("CylindricalHistogramFlux has no non-empty spectra")
        
        pdgs = list(self.spectra)
        pdg = pdgs[self._choose([self.spectra[p].integral() for p in pdgs])]
        
        # Uniform energy within a bin picked by content
        spectrum = self.spectra[pdg]
        ibin = self._choose(spectrum.contents)
        low, high = spectrum.bin_edges[ibin], spectrum.bin_edges[ibin + 1]
        energy = low + (high - low) * self._uniform()[0]
        
        position = self._disk_point(self.beam_spot, self.direction, self.transverse_radius)
        self.current = FluxRay(
            pdg=pdg,
            energy=float(energy),
            position=position,
            direction=self.direction.copy()
        )
        return True
    
    def describe(self) -> str:
        return (
            f"CylindricalHistogramFlux(flavors={self.flux_particles()}, "
            f"total_flux={self.total_flux:.4e}, spot={self.beam_spot.tolist()}, "
            f"radius={self.transverse_radius})"
        )
