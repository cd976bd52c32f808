"""Base class for flux sources."""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence
import numpy as np
import torch

from ..core.data_models import FluxRay, FluxType


class FluxSource(ABC):
    """Polymorphic flux driver producing one neutrino ray per call.
    
    Subclasses implement :meth:`generate_next`, which stores the new ray in
    ``self.current``. Random numbers come from a shared ``torch.Generator``
    so a single seed reproduces the whole run.
    
    Attributes:
        flux_type: Source-type tag of the variant
        generator: Random number generator
        current: Most recently generated ray
    """
    
    flux_type: FluxType = None
    
    def __init__(self, generator: Optional[torch.Generator] = None):
        self.generator = generator if generator is not None else torch.Generator()
        self.current: Optional[FluxRay] = None
    
    @abstractmethod
    def generate_next(self) -> bool:
        """Advance to the next flux neutrino.
        
        Returns:
            True if a ray was produced
        """
    
    @abstractmethod
    def flux_particles(self) -> List[int]:
        """Flavors this source can produce."""
    
    def position(self) -> np.ndarray:
        """Start position of the current ray."""
        self._require_current()
        return self.current.position
    
    def momentum(self) -> np.ndarray:
        self._require_current()
        return self.current.momentum
    
    def decay_distance(self) -> Optional[float]:
        """Decay-to-ray-start distance of the current ray, None if unknown."""
        self._require_current()
        return self.current.decay_distance
    
    def used_exposure(self) -> float:
        """Exposure consumed so far; zero for sources that do not track it."""
        return 0.0
    
    def describe(self) -> str:
        return f"{type(self).__name__}(flavors={self.flux_particles()})"
    
    def _require_current(self) -> None:
        if self.current is None:
            raise RuntimeError(f"{type(self).__name__} has not generated a ray yet")
    
    def _uniform(self, n: int = 1) -> np.ndarray:
        return torch.rand(n, generator=self.generator, dtype=torch.float64).numpy()
    
    def _choose(self, weights: Sequence[float]) -> int:
        """Draw an index with probability proportional to ``weights``."""
        w = torch.as_tensor(np.asarray(weights, dtype=np.float64))
        return int(torch.multinomial(w, 1, generator=self.generator).item())
    
    def _disk_point(self, center: np.ndarray, normal: np.ndarray, radius: float) -> np.ndarray:
        """Uniform point on a disk of ``radius`` perpendicular to ``normal``."""
        u, v = orthonormal_basis(normal)
        r_rand, phi_rand = self._uniform(2)
        r = radius * np.sqrt(r_rand)
        phi = 2.0 * np.pi * phi_rand
        return center + r * (np.cos(phi) * u + np.sin(phi) * v)


def unit_vector(vector: Sequence[float]) -> np.ndarray:
    vec = np.asarray(vector, dtype=float)
    norm = np.linalg.norm(vec)
    if norm == 0:
        raise ValueError("Cannot normalize a null vector")
    return vec / norm


def orthonormal_basis(normal: np.ndarray):
    """Two unit vectors spanning the plane perpendicular to ``normal``."""
    n = unit_vector(normal)
    helper = np.array([1.0, 0.0, 0.0]) if abs(n[0]) < 0.9 else np.array([0.0, 1.0, 0.0])
    u = np.cross(n, helper)
    u /= np.linalg.norm(u)
    v = np.cross(n, u)
    return u, v
