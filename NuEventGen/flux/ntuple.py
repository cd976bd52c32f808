"""Flux sources reading pre-computed beam simulation ntuples."""

import glob
from typing import Dict, Iterable, List, Optional
import h5py
import numpy as np
import torch

from .base import FluxSource
from ..core.data_models import FluxRay, FluxType
from ..physics.constants import UPSTREAM_Z_LIMIT
from ..utils.logging import get_logger
from ..utils.validation import InvalidConfigurationError


logger = get_logger()


RAY_COLUMNS = ('pdg', 'energy', 'x', 'y', 'z', 'dx', 'dy', 'dz')


class NtupleFluxBase(FluxSource):
    """Shared machinery for HDF5 flux ntuples.
    
    Each file holds one row per flux neutrino (optionally inside a group
    named after the detector location) plus a ``pot`` attribute giving the
    exposure the file represents. Weighted rows are unweighted by
    accept/reject against the largest weight; every row read, accepted or
    not, counts toward the used exposure.
    
    Attributes:
        files: Expanded list of loaded files
        detector_location: Group name selected in each file
        total_pot: Exposure represented by all loaded files
        upstream_z: Plane rays are moved back to, None when unset
        n_cycles: Completed passes over the selected rows
    """
    
    extra_columns: tuple = ()
    
    def __init__(self, generator: Optional[torch.Generator] = None):
        super().__init__(generator)
        self.files: List[str] = []
        self.detector_location = ''
        self.total_pot = 0.0
        self.upstream_z: Optional[float] = None
        self.n_cycles = 0
        self._columns: Dict[str, np.ndarray] = {}
        self._selected = np.zeros(0, dtype=int)
        self._flux_particles: Optional[List[int]] = None
        self._max_weight = 1.0
        self._index = 0
        self._n_used = 0
        self._current_row = -1
    
    def load_beam_sim_data(self, patterns: Iterable[str], detector_location: str = '') -> None:
        """Load every file matching ``patterns``.
        
        Args:
            patterns: File names or glob patterns
            detector_location: Group holding the rows of this flux window
            
        Raises:
            InvalidConfigurationError: If nothing could be loaded
        """
        patterns = list(patterns)
        self.detector_location = detector_location
        files: List[str] = []
        for pattern in patterns:
            matches = sorted(glob.glob(pattern)) if any(c in pattern for c in '*?[') else [pattern]
            files.extend(m for m in matches if m not in files)
        
        if not files:
            raise InvalidConfigurationError(
                f"{type(self).__name__}: no flux files match {list(patterns)}"
            )
        
        chunks: Dict[str, List[np.ndarray]] = {}
        self.total_pot = 0.0
        for file_path in files:
            with h5py.File(file_path, 'r') as f:
                node = f[detector_location] if detector_location and detector_location in f else f
                self.total_pot += float(f.attrs.get('pot', node.attrs.get('pot', 0.0)))
                for name in RAY_COLUMNS + self.extra_columns:
                    if name not in node:
                        raise InvalidConfigurationError(
                            f"Flux file {file_path} lacks column '{name}'"
                        )
                    chunks.setdefault(name, []).append(np.asarray(node[name][()]))
                n_rows = len(chunks['pdg'][-1])
                weight = node['weight'][()] if 'weight' in node else np.ones(n_rows)
                chunks.setdefault('weight', []).append(np.asarray(weight, dtype=float))
            logger.debug(f"Loaded flux file {file_path}")
        
        self.files = files
        self._columns = {name: np.concatenate(parts) for name, parts in chunks.items()}
        self._select()
        
        logger.info(
            f"{type(self).__name__}: {len(self._columns['pdg'])} rows from "
            f"{len(files)} files, {self.total_pot:.4g} POT"
        )
    
    def set_flux_particles(self, pdgs: Iterable[int]) -> None:
        """Restrict generation to the given flavors."""
        self._flux_particles = [int(p) for p in pdgs]
        if self._columns:
            self._select()
    
    def set_upstream_z(self, z: float) -> None:
        self.upstream_z = float(z) if abs(z) < UPSTREAM_Z_LIMIT else None
    
    def flux_particles(self) -> List[int]:
        if self._flux_particles is not None:
            return list(self._flux_particles)
        if not self._columns:
            return []
        return sorted(int(p) for p in np.unique(self._columns['pdg']))
    
    def used_exposure(self) -> float:
        """Exposure of the rows read so far, in the files' POT units."""
        if len(self._selected) == 0:
            return 0.0
        return self.total_pot * self._n_used / len(self._selected)
    
    def used_pots(self) -> float:
        return self.used_exposure()
    
    def pass_through_info(self) -> Dict[str, float]:
        """Raw ntuple row behind the current ray."""
        self._require_current()
        row = self._current_row
        return {name: values[row].item() for name, values in self._columns.items()}
    
    def generate_next(self) -> bool:
        if len(self._selected) == 0:
            raise RuntimeError(f"{type(self).__name__} has no rows for {self.flux_particles()}")
        
        while True:
            if self._index >= len(self._selected):
                self._index = 0
                self.n_cycles += 1
            row = int(self._selected[self._index])
            self._index += 1
            self._n_used += 1
            
            weight = float(self._columns['weight'][row])
            if self._uniform()[0] * self._max_weight <= weight:
                break
        
        c = self._columns
        position = np.array([c['x'][row], c['y'][row], c['z'][row]], dtype=float)
        direction = np.array([c['dx'][row], c['dy'][row], c['dz'][row]], dtype=float)
        direction /= np.linalg.norm(direction)
        
        if self.upstream_z is not None and direction[2] != 0:
            position = position + direction * (self.upstream_z - position[2]) / direction[2]
        
        self._current_row = row
        self.current = FluxRay(
            pdg=int(c['pdg'][row]),
            energy=float(c['energy'][row]),
            position=position,
            direction=direction,
            decay_distance=self._decay_distance(row, position)
        )
        return True
    
    def _decay_distance(self, row: int, position: np.ndarray) -> Optional[float]:
        return None
    
    def _select(self) -> None:
        pdg = self._columns['pdg']
        mask = np.ones(len(pdg), dtype=bool)
        if self._flux_particles is not None:
            mask = np.isin(pdg, self._flux_particles)
        self._selected = np.nonzero(mask)[0]
        weights = self._columns['weight'][self._selected]
        self._max_weight = float(weights.max()) if len(weights) else 1.0
        if len(weights) and self._max_weight <= 0:
            raise InvalidConfigurationError(
                f"{type(self).__name__}: all selected rows have non-positive weight"
            )
        self._index = 0
        self._n_used = 0
    
    def describe(self) -> str:
        return (
            f"{type(self).__name__}(files={self.files}, location='{self.detector_location}', "
            f"flavors={self.flux_particles()}, pot={self.total_pot:.4g}, "
            f"upstream_z={self.upstream_z})"
        )


class NtupleFlux(NtupleFluxBase):
    """Full beam simulation ntuple carrying the parent decay vertex."""
    
    flux_type = FluxType.NTUPLE
    extra_columns = ('vx', 'vy', 'vz')
    
    def _decay_distance(self, row: int, position: np.ndarray) -> Optional[float]:
        c = self._columns
        decay_vertex = np.array([c['vx'][row], c['vy'][row], c['vz'][row]], dtype=float)
        return float(np.linalg.norm(position - decay_vertex))


class SimpleNtupleFlux(NtupleFluxBase):
    """Simplified ntuple storing only the decay-to-ray distance."""
    
    flux_type = FluxType.SIMPLE_FLUX
    extra_columns = ('dist',)
    
    def _decay_distance(self, row: int, position: np.ndarray) -> Optional[float]:
        return float(self._columns['dist'][row])
