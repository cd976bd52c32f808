"""Atmospheric neutrino flux sources."""

from abc import abstractmethod
from typing import Dict, List, Optional, Tuple
import numpy as np
import torch

from .base import FluxSource
from ..core.data_models import FluxRay, FluxType
from ..utils.logging import get_logger
from ..utils.validation import InvalidConfigurationError


logger = get_logger()


class AtmosphericFlux(FluxSource):
    """Isotropic-in-azimuth atmospheric flux from tabulated (E, cos zenith) grids.
    
    Rays start on a disk of radius ``rt`` perpendicular to the arrival
    direction, centered ``rl`` upstream of the origin. The +z axis points
    up. Every neutrino thrown is counted so that exposure can be normalized
    by the generation surface.
    
    Attributes:
        flux_files: Table file per flavor
        emin: Minimum generated energy in GeV
        emax: Maximum generated energy in GeV
        rl: Longitudinal radius of the generation surface
        rt: Transverse radius of the generation surface
        n_flux_neutrinos: Neutrinos thrown so far
    """
    
    def __init__(self, generator: Optional[torch.Generator] = None):
        super().__init__(generator)
        self.flux_files: Dict[int, str] = {}
        self.emin = 0.0
        self.emax = np.inf
        self.rl = 1.0
        self.rt = 1.0
        self.n_flux_neutrinos = 0
        self._tables: Dict[int, Tuple[np.ndarray, np.ndarray, np.ndarray]] = {}
        self._flavor_weights: Dict[int, float] = {}
    
    def force_min_energy(self, emin: float) -> None:
        self.emin = float(emin)
    
    def force_max_energy(self, emax: float) -> None:
        self.emax = float(emax)
    
    def set_flux_file(self, pdg: int, file_path: str) -> None:
        self.flux_files[int(pdg)] = str(file_path)
    
    def set_radii(self, rl: float, rt: float) -> None:
        self.rl = float(rl)
        self.rt = float(rt)
    
    def flux_particles(self) -> List[int]:
        return list(self.flux_files)
    
    def load_flux_data(self) -> None:
        """Read every flavor table and restrict it to [emin, emax].
        
        Raises:
            InvalidConfigurationError: If no file was set or a table is empty
                within the energy range
        """
        if not self.flux_files:
            raise InvalidConfigurationError(f"{type(self).__name__}: no flux files set")
        
        for pdg, file_path in self.flux_files.items():
            energy, cos_zenith, flux = self._read_table(file_path)
            in_range = (energy >= self.emin) & (energy <= self.emax)
            if not np.any(in_range) or np.sum(flux[in_range]) <= 0:
                raise InvalidConfigurationError(
                    f"{file_path}: no flux for flavor {pdg} between "
                    f"{self.emin} and {self.emax} GeV"
                )
            self._tables[pdg] = (energy[in_range], cos_zenith[in_range], flux[in_range])
            self._flavor_weights[pdg] = float(np.sum(flux[in_range]))
            logger.info(f"Loaded atmospheric flux for {pdg} from {file_path}")
    
    def generate_next(self) -> bool:
        if not self._tables:
            raise RuntimeError(f"{type(self).__name__}: load_flux_data() was not called")
        
        pdgs = list(self._tables)
        pdg = pdgs[self._choose([self._flavor_weights[p] for p in pdgs])]
        energy, cos_zenith, flux = self._tables[pdg]
        row = self._choose(flux)
        
        cos_theta = float(np.clip(cos_zenith[row], -1.0, 1.0))
        sin_theta = np.sqrt(1.0 - cos_theta ** 2)
        phi = 2.0 * np.pi * self._uniform()[0]
        
        # Arrives from the zenith direction, travels downward
        direction = -np.array([sin_theta * np.cos(phi), sin_theta * np.sin(phi), cos_theta])
        center = -self.rl * direction
        position = self._disk_point(center, direction, self.rt)
        
        self.n_flux_neutrinos += 1
        self.current = FluxRay(
            pdg=pdg,
            energy=float(energy[row]),
            position=position,
            direction=direction
        )
        return True
    
    @abstractmethod
    def _read_table(self, file_path: str) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Return (energy, cos_zenith, flux) columns of a flux table."""
    
    def describe(self) -> str:
        return (
            f"{type(self).__name__}(files={self.flux_files}, E=[{self.emin}, {self.emax}], "
            f"Rl={self.rl}, Rt={self.rt})"
        )


class FlukaAtmoFlux(AtmosphericFlux):
    """FLUKA 3D tables: rows of ``cos_zenith energy flux``."""
    
    flux_type = FluxType.ATMO_FLUKA
    
    def _read_table(self, file_path: str) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        table = np.loadtxt(file_path, comments='#', ndmin=2)
        return table[:, 1], table[:, 0], table[:, 2]


class BartolAtmoFlux(AtmosphericFlux):
    """BARTOL tables: rows of ``energy cos_zenith flux``."""
    
    flux_type = FluxType.ATMO_BARTOL
    
    def _read_table(self, file_path: str) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        table = np.loadtxt(file_path, comments='#', ndmin=2)
        return table[:, 0], table[:, 1], table[:, 2]
