"""Monoenergetic flux source."""

from typing import Dict, List, Optional
import numpy as np
import torch

from .base import FluxSource, unit_vector
from ..core.data_models import FluxRay, FluxType


class MonoEnergeticFlux(FluxSource):
    """Fixed energy, fixed direction rays from a single origin.
    
    Attributes:
        energy: Neutrino energy in GeV
        pdg_weights: Relative generation weight per flavor
        direction: Unit ray direction
        origin: Ray origin
    """
    
    flux_type = FluxType.MONO
    
    def __init__(
        self,
        energy: float,
        pdg_weights: Dict[int, float],
        generator: Optional[torch.Generator] = None
    ):
        super().__init__(generator)
        if not pdg_weights:
            raise ValueError("MonoEnergeticFlux needs at least one flavor")
        self.energy = float(energy)
        self.pdg_weights = dict(pdg_weights)
        self._pdgs = list(self.pdg_weights)
        self.direction = np.array([0.0, 0.0, 1.0])
        self.origin = np.zeros(3)
    
    def set_direction_cos(self, dx: float, dy: float, dz: float) -> None:
        self.direction = unit_vector((dx, dy, dz))
    
    def set_ray_origin(self, x: float, y: float, z: float) -> None:
        self.origin = np.array([x, y, z], dtype=float)
    
    def flux_particles(self) -> List[int]:
        return list(self._pdgs)
    
    def generate_next(self) -> bool:
        pdg = self._pdgs[self._choose([self.pdg_weights[p] for p in self._pdgs])]
        self.current = FluxRay(
            pdg=pdg,
            energy=self.energy,
            position=self.origin.copy(),
            direction=self.direction.copy()
        )
        return True
    
    def describe(self) -> str:
        return (
            f"MonoEnergeticFlux(E={self.energy} GeV, weights={self.pdg_weights}, "
            f"direction={self.direction.tolist()}, origin={self.origin.tolist()})"
        )
