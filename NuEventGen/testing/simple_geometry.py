"""Reference geometry and generator engine built from axis aligned boxes.

They implement the collaborator interfaces with just enough behavior to
drive the orchestration end to end in examples and tests.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple
import numpy as np
import torch

from ..core.data_models import Candidate, PathLengthList, ScanMethod, ScanSettings
from ..engine.interfaces import GeneratorEngine
from ..geometry.interfaces import GeometryService


@dataclass
class BoxVolume:
    """Named axis aligned box.
    
    Attributes:
        name: Volume name
        xyz_min: Lower corner [3]
        xyz_max: Upper corner [3]
        mass: Mass of the volume itself in kg
    """
    name: str
    xyz_min: Tuple[float, float, float]
    xyz_max: Tuple[float, float, float]
    mass: float = 0.0
    
    def __post_init__(self):
        self.xyz_min = np.asarray(self.xyz_min, dtype=float)
        self.xyz_max = np.asarray(self.xyz_max, dtype=float)
    
    def encloses(self, other: 'BoxVolume') -> bool:
        return bool(np.all(other.xyz_min >= self.xyz_min) and np.all(other.xyz_max <= self.xyz_max))
    
    def diagonal(self) -> float:
        return float(np.linalg.norm(self.xyz_max - self.xyz_min))
    
    def intersect(self, origin: np.ndarray, direction: np.ndarray) -> Optional[Tuple[float, float]]:
        """Entry and exit ray parameters (t >= 0), or None if missed."""
        t_near, t_far = 0.0, np.inf
        for axis in range(3):
            if direction[axis] == 0:
                if not self.xyz_min[axis] <= origin[axis] <= self.xyz_max[axis]:
                    return None
                continue
            t1 = (self.xyz_min[axis] - origin[axis]) / direction[axis]
            t2 = (self.xyz_max[axis] - origin[axis]) / direction[axis]
            t_near = max(t_near, min(t1, t2))
            t_far = min(t_far, max(t1, t2))
        if t_near > t_far:
            return None
        return t_near, t_far


class BoxGeometry(GeometryService):
    """Geometry made of possibly nested boxes.
    
    The master frame is the frame the boxes are defined in; the top volume
    frame is shifted by ``top_offset``.
    
    Attributes:
        volumes: Volumes by name
        selector: Installed volume selector
        scan_settings: Last scan settings received
        active_volume_history: Every volume the geometry was pointed at
    """
    
    def __init__(
        self,
        volumes: Sequence[BoxVolume],
        world_volume: str,
        top_offset: Sequence[float] = (0.0, 0.0, 0.0),
        geometry_file: str = ''
    ):
        self.volumes: Dict[str, BoxVolume] = {v.name: v for v in volumes}
        if world_volume not in self.volumes:
            raise ValueError(f"World volume '{world_volume}' is not among the volumes")
        self._world = world_volume
        self._top = world_volume
        self._active = world_volume
        self._geometry_file = geometry_file
        self.top_offset = np.asarray(top_offset, dtype=float)
        self.selector = None
        self.scan_settings: Optional[ScanSettings] = None
        self.active_volume_history: List[str] = []
    
    @property
    def top_volume_name(self) -> str:
        return self._top
    
    @property
    def world_volume_name(self) -> str:
        return self._world
    
    @property
    def active_volume(self) -> str:
        return self._active
    
    @property
    def geometry_file(self) -> str:
        return self._geometry_file
    
    def set_top_volume_name(self, name: str) -> None:
        self._require_volume(name)
        self._top = name
    
    def set_active_volume(self, name: str) -> None:
        self._require_volume(name)
        self._active = name
        self.active_volume_history.append(name)
    
    def total_mass(self, volume_name: str) -> float:
        outer = self._require_volume(volume_name)
        return sum(v.mass for v in self.volumes.values() if outer.encloses(v))
    
    def detector_length(self) -> float:
        top = self.volumes[self._top]
        return float(top.xyz_max[2] - top.xyz_min[2])
    
    def install_volume_selector(self, selector) -> None:
        self.selector = selector
    
    def configure_scan(self, settings: ScanSettings) -> None:
        self.scan_settings = settings
    
    def max_path_lengths(self) -> PathLengthList:
        """Loaded table for the file method, otherwise box diagonals."""
        settings = self.scan_settings
        if settings is not None and settings.method == ScanMethod.FILE:
            return PathLengthList(settings.path_lengths)
        lengths = PathLengthList({name: v.diagonal() for name, v in self.volumes.items()})
        if settings is not None and settings.safety_factor > 0:
            lengths = lengths.scaled(settings.safety_factor)
        return lengths
    
    def master_to_top(self, point: np.ndarray) -> np.ndarray:
        return np.asarray(point, dtype=float) - self.top_offset
    
    def accepts(self, point: np.ndarray, energy: Optional[float] = None) -> bool:
        """Whether the installed selector keeps ``point``."""
        if self.selector is None:
            return True
        return self.selector.contains(point, energy)
    
    def _require_volume(self, name: str) -> BoxVolume:
        if name not in self.volumes:
            raise ValueError(f"Unknown volume '{name}'")
        return self.volumes[name]


class RayTraceEngine(GeneratorEngine):
    """Places vertices uniformly along the flux ray inside the active volume.
    
    Attributes:
        interaction_probability: Chance a ray crossing the volume interacts
        max_attempts: Flux rays tried per call before giving up
        probability_scale: Reported global probability scale
    """
    
    def __init__(
        self,
        interaction_probability: float = 1.0,
        max_attempts: int = 1,
        probability_scale: float = 1.0,
        generator: Optional[torch.Generator] = None
    ):
        super().__init__()
        self.interaction_probability = interaction_probability
        self.max_attempts = max_attempts
        self.probability_scale = probability_scale
        self.generator = generator if generator is not None else torch.Generator()
        self.path_lengths: Optional[PathLengthList] = None
        self.n_flux_rays = 0
    
    def configure(self) -> None:
        if self.flux is None or self.geometry is None:
            raise RuntimeError("RayTraceEngine needs a flux source and a geometry")
        self.path_lengths = self.geometry.max_path_lengths()
    
    def generate_candidate(self) -> Optional[Candidate]:
        volume = self.geometry.volumes[self.geometry.active_volume]
        for _ in range(self.max_attempts):
            self.flux.generate_next()
            self.n_flux_rays += 1
            ray = self.flux.current
            hit = volume.intersect(ray.position, ray.direction)
            if hit is None:
                continue
            u_position, u_interact = torch.rand(2, generator=self.generator, dtype=torch.float64).tolist()
            if u_interact >= self.interaction_probability:
                continue
            t_near, t_far = hit
            vertex = ray.position + (t_near + u_position * (t_far - t_near)) * ray.direction
            if not self.geometry.accepts(vertex, ray.energy):
                continue
            return Candidate(
                probe_pdg=ray.pdg,
                probe_energy=ray.energy,
                vertex=vertex,
                weight=ray.weight
            )
        return None
    
    def cumulative_used_exposure(self) -> float:
        return self.flux.used_exposure()
    
    def global_probability_scale(self) -> float:
        return self.probability_scale
