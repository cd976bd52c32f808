"""Fiducial volume selectors and the factory installing them on the geometry."""

from abc import ABC, abstractmethod
from typing import Callable, Optional, Sequence
import numpy as np

from .data_models import CutDescriptor, CutShape
from ..physics.constants import (
    DEFAULT_ROCK_DEDX_FUDGE,
    DEFAULT_ROCK_DEDX_GEV_PER_CM,
    DEFAULT_ROCK_WALL_MIN_CM,
    ROCK_BUBBLE_RADIUS
)
from ..utils.logging import get_logger
from ..utils.validation import InvalidConfigurationError


logger = get_logger()

PointTransform = Callable[[np.ndarray], np.ndarray]


class VolumeSelector(ABC):
    """Membership test restricting where interactions may be generated.
    
    Attributes:
        reversed: Select the complement of the shape
        convert_from_master_frame: Shape was given in master coordinates
        remove_entries: Path segments outside the selection are dropped
    """
    
    shape: CutShape = None
    
    def __init__(self):
        self.reversed = False
        self.convert_from_master_frame = False
        self.remove_entries = True
    
    @abstractmethod
    def inside(self, point: np.ndarray) -> bool:
        """Whether ``point`` lies inside the bare shape."""
    
    def convert_master_to_top(self, transform: PointTransform) -> None:
        """Move the shape's anchor points into the top volume frame.
        
        Shapes that are always given in the master frame keep this no-op.
        """
    
    def contains(self, point: Sequence[float], energy: Optional[float] = None) -> bool:
        """Selection decision for ``point``, honoring ``reversed``."""
        return self.inside(np.asarray(point, dtype=float)) != self.reversed


class CylinderSelector(VolumeSelector):
    """Cylinder parallel to z at (x0, y0), capped at zmin and zmax."""
    
    shape = CutShape.ZCYL
    
    def __init__(self, x0: float, y0: float, radius: float, zmin: float, zmax: float):
        super().__init__()
        self.x0, self.y0 = x0, y0
        self.radius = radius
        self.zmin, self.zmax = zmin, zmax
    
    def inside(self, point: np.ndarray) -> bool:
        r2 = (point[0] - self.x0) ** 2 + (point[1] - self.y0) ** 2
        return r2 <= self.radius ** 2 and self.zmin <= point[2] <= self.zmax
    
    def convert_master_to_top(self, transform: PointTransform) -> None:
        low = transform(np.array([self.x0, self.y0, self.zmin]))
        high = transform(np.array([self.x0, self.y0, self.zmax]))
        self.x0, self.y0 = low[0], low[1]
        self.zmin, self.zmax = min(low[2], high[2]), max(low[2], high[2])


class BoxSelector(VolumeSelector):
    """Axis aligned box between two corners."""
    
    shape = CutShape.BOX
    
    def __init__(self, xyz_min: Sequence[float], xyz_max: Sequence[float]):
        super().__init__()
        self.xyz_min = np.asarray(xyz_min, dtype=float)
        self.xyz_max = np.asarray(xyz_max, dtype=float)
    
    def inside(self, point: np.ndarray) -> bool:
        return bool(np.all(point >= self.xyz_min) and np.all(point <= self.xyz_max))
    
    def convert_master_to_top(self, transform: PointTransform) -> None:
        a = transform(self.xyz_min)
        b = transform(self.xyz_max)
        self.xyz_min, self.xyz_max = np.minimum(a, b), np.maximum(a, b)


class PolygonSelector(VolumeSelector):
    """Regular n-sided prism along z.
    
    ``radius`` is the inscribed radius. With ``phi`` = 0 the first face
    lies in the y-z plane at +radius from the center; ``phi`` is in degrees.
    """
    
    shape = CutShape.ZPOLY
    
    def __init__(
        self,
        n_faces: int,
        x0: float,
        y0: float,
        radius: float,
        phi: float,
        zmin: float,
        zmax: float
    ):
        super().__init__()
        self.n_faces = int(n_faces)
        self.x0, self.y0 = x0, y0
        self.radius = radius
        self.phi = phi
        self.zmin, self.zmax = zmin, zmax
    
    def face_normals(self) -> np.ndarray:
        angles = np.radians(self.phi + np.arange(self.n_faces) * 360.0 / self.n_faces)
        return np.stack([np.cos(angles), np.sin(angles)], axis=1)
    
    def inside(self, point: np.ndarray) -> bool:
        if not (self.zmin <= point[2] <= self.zmax):
            return False
        offset = np.array([point[0] - self.x0, point[1] - self.y0])
        return bool(np.all(self.face_normals() @ offset <= self.radius))
    
    def convert_master_to_top(self, transform: PointTransform) -> None:
        low = transform(np.array([self.x0, self.y0, self.zmin]))
        high = transform(np.array([self.x0, self.y0, self.zmax]))
        self.x0, self.y0 = low[0], low[1]
        self.zmin, self.zmax = min(low[2], high[2]), max(low[2], high[2])


class SphereSelector(VolumeSelector):
    shape = CutShape.SPHERE
    
    def __init__(self, x0: float, y0: float, z0: float, radius: float):
        super().__init__()
        self.center = np.array([x0, y0, z0], dtype=float)
        self.radius = radius
    
    def inside(self, point: np.ndarray) -> bool:
        return float(np.sum((point - self.center) ** 2)) <= self.radius ** 2
    
    def convert_master_to_top(self, transform: PointTransform) -> None:
        self.center = transform(self.center)


class RockShellSelector(VolumeSelector):
    """Rock surrounding a minimal detector box.
    
    The selected region is the minimal box grown on every side by the
    distance a muon of the neutrino energy can travel in rock, but at least
    ``minimum_wall``. The interior shape (the minimal box itself in rock-only
    mode, a negligible sphere otherwise) is excluded. Coordinates are always
    in the master frame.
    
    Attributes:
        rock_box_min: Minimal box lower corner
        rock_box_max: Minimal box upper corner
        minimum_wall: Minimum rock thickness around the minimal box
        de_dx: Energy loss per unit length, fudge factor already applied
        rock_only: Exclude the minimal box itself
        interior: Excluded interior shape
    """
    
    shape = CutShape.ROCK
    
    def __init__(self):
        super().__init__()
        self.rock_box_min = np.zeros(3)
        self.rock_box_max = np.zeros(3)
        self.minimum_wall = DEFAULT_ROCK_WALL_MIN_CM
        self.de_dx = DEFAULT_ROCK_DEDX_GEV_PER_CM / DEFAULT_ROCK_DEDX_FUDGE
        self.rock_only = True
        self.interior: Optional[VolumeSelector] = None
    
    def set_rock_box_minimal(self, xyz_min: Sequence[float], xyz_max: Sequence[float]) -> None:
        self.rock_box_min = np.asarray(xyz_min, dtype=float)
        self.rock_box_max = np.asarray(xyz_max, dtype=float)
    
    def set_minimum_wall(self, wall: float) -> None:
        self.minimum_wall = float(wall)
    
    def set_de_dx(self, de_dx: float) -> None:
        self.de_dx = float(de_dx)
    
    def make_box(self, xyz_min: Sequence[float], xyz_max: Sequence[float]) -> None:
        self.interior = BoxSelector(xyz_min, xyz_max)
    
    def make_sphere(self, x0: float, y0: float, z0: float, radius: float) -> None:
        self.interior = SphereSelector(x0, y0, z0, radius)
    
    def wall_thickness(self, energy: Optional[float] = None) -> float:
        if energy is None or self.de_dx <= 0:
            return self.minimum_wall
        return max(self.minimum_wall, energy / self.de_dx)
    
    def inside(self, point: np.ndarray, energy: Optional[float] = None) -> bool:
        wall = self.wall_thickness(energy)
        in_shell = np.all(point >= self.rock_box_min - wall) and np.all(point <= self.rock_box_max + wall)
        if not in_shell:
            return False
        return self.interior is None or not self.interior.inside(point)
    
    def contains(self, point: Sequence[float], energy: Optional[float] = None) -> bool:
        return self.inside(np.asarray(point, dtype=float), energy) != self.reversed


class VolumeSelectorFactory:
    """Builds the selector for a parsed cut and installs it on the geometry."""
    
    def build(self, descriptor: CutDescriptor, geometry) -> VolumeSelector:
        """Create, finalize and install the selector for ``descriptor``.
        
        A rock cut also switches the geometry's top volume to the world
        volume.
        
        Args:
            descriptor: Parsed cut
            geometry: GeometryService receiving the selector
            
        Returns:
            Installed selector
        """
        if descriptor.shape == CutShape.ROCK:
            selector = self._build_rock(descriptor)
            geometry.set_top_volume_name(geometry.world_volume_name)
            logger.info(f"Rock cut: top volume set to world volume '{geometry.world_volume_name}'")
        else:
            selector = self._build_shape(descriptor)
            if descriptor.convert_from_master_frame:
                selector.convert_from_master_frame = True
                selector.convert_master_to_top(geometry.master_to_top)
                logger.info("Convert fiducial volume from master to top volume coordinates")
            if descriptor.reversed:
                selector.reversed = True
                logger.info("Reverse sense of fiducial volume cut")
        
        geometry.install_volume_selector(selector)
        return selector
    
    @staticmethod
    def _build_shape(descriptor: CutDescriptor) -> VolumeSelector:
        v = descriptor.values
        if descriptor.shape == CutShape.ZCYL:
            return CylinderSelector(v[0], v[1], v[2], v[3], v[4])
        if descriptor.shape == CutShape.BOX:
            return BoxSelector(v[0:3], v[3:6])
        if descriptor.shape == CutShape.ZPOLY:
            return PolygonSelector(int(v[0]), v[1], v[2], v[3], v[4], v[5], v[6])
        if descriptor.shape == CutShape.SPHERE:
            return SphereSelector(v[0], v[1], v[2], v[3])
        raise ValueError(f"No selector for shape {descriptor.shape}")
    
    @staticmethod
    def _build_rock(descriptor: CutDescriptor) -> RockShellSelector:
        v = descriptor.values
        n = descriptor.n_values
        xyz_min, xyz_max = v[0:3], v[3:6]
        
        rock_only = bool(v[6]) if n >= 7 else True
        wall_min = v[7] if n >= 8 else DEFAULT_ROCK_WALL_MIN_CM
        de_dx = v[8] if n >= 9 else DEFAULT_ROCK_DEDX_GEV_PER_CM
        fudge = v[9] if n >= 10 else DEFAULT_ROCK_DEDX_FUDGE
        if fudge <= 0:
            raise InvalidConfigurationError(
                f"Rock cut energy loss fudge factor must be positive, got {fudge} "
                f"(cut '{descriptor.spec}')"
            )
        
        selector = RockShellSelector()
        selector.set_rock_box_minimal(xyz_min, xyz_max)
        selector.set_minimum_wall(wall_min)
        selector.set_de_dx(de_dx / fudge)
        selector.rock_only = rock_only
        if rock_only:
            selector.make_box(xyz_min, xyz_max)
        else:
            selector.make_sphere(0.0, 0.0, 0.0, ROCK_BUBBLE_RADIUS)
        return selector
