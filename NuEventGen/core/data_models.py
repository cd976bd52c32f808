"""Core data models for the event generation driver."""

from dataclasses import dataclass, field
from enum import Enum, IntFlag
from pathlib import Path
from typing import Dict, Optional, Tuple, Union
import numpy as np
import yaml


class FluxType(str, Enum):
    """Source-type tag selecting the flux driver variant."""
    MONO = 'mono'
    HISTOGRAM = 'histogram'
    NTUPLE = 'ntuple'
    SIMPLE_FLUX = 'simple_flux'
    ATMO_FLUKA = 'atmo_FLUKA'
    ATMO_BARTOL = 'atmo_BARTOL'
    
    @property
    def is_atmospheric(self) -> bool:
        return self in (FluxType.ATMO_FLUKA, FluxType.ATMO_BARTOL)
    
    @property
    def is_ntuple(self) -> bool:
        return self in (FluxType.NTUPLE, FluxType.SIMPLE_FLUX)


class DebugFlags(IntFlag):
    """Independent debug bits of the ``debug_flags`` configuration value."""
    NONE = 0
    PRINT_MIXER_CONFIG = 0x01
    PRINT_MIXER_STATE = 0x02
    PRINT_VERTEX = 0x04


class CutShape(str, Enum):
    """Shape keywords of the fiducial cut mini-language."""
    ZCYL = 'zcyl'
    BOX = 'box'
    ZPOLY = 'zpoly'
    SPHERE = 'sphere'
    ROCK = 'rock'


@dataclass(frozen=True)
class CutDescriptor:
    """Parsed fiducial cut specification.
    
    Attributes:
        shape: Selected shape keyword
        values: Parsed numeric values, zero padded to the shape's minimum
        n_values: Number of values actually present in the spec
        reversed: Select the complement of the shape
        convert_from_master_frame: Coordinates are given in the master frame
        spec: Normalized (trimmed, lower-cased) spec string
    """
    shape: CutShape
    values: Tuple[float, ...]
    n_values: int
    reversed: bool = False
    convert_from_master_frame: bool = False
    spec: str = ''


class ScanMethod(str, Enum):
    """How the geometry service obtains its maximum path lengths."""
    FILE = 'file'
    BOX = 'box'
    FLUX = 'flux'


@dataclass
class ScanSettings:
    """Geometry scan parameters handed to the geometry service.
    
    Attributes:
        method: Scan method
        n_points: Box scan sample points
        n_rays: Box scan rays per point
        n_particles: Flux scan particle count
        safety_factor: Multiplicative margin on computed path lengths (0 = unset)
        write_audit: Emit the path length table plus audit summary at teardown
        flux: Flux source sampled by the flux scan
        path_length_file: Precomputed table used by the file method
        path_lengths: Loaded precomputed table
    """
    method: ScanMethod
    n_points: int = 0
    n_rays: int = 0
    n_particles: int = 0
    safety_factor: float = 0.0
    write_audit: bool = False
    flux: Optional[object] = None
    path_length_file: Optional[str] = None
    path_lengths: Optional['PathLengthList'] = None


class PathLengthList(dict):
    """Maximum path length per material key.
    
    Serialized as a YAML mapping; an optional trailing comment block records
    the setup the table is valid for.
    """
    
    def scaled(self, factor: float) -> 'PathLengthList':
        """Return a copy with every length multiplied by ``factor``."""
        return PathLengthList({key: value * factor for key, value in self.items()})
    
    def to_yaml(self, yaml_path: Union[str, Path], comment: Optional[str] = None) -> None:
        """Save the table, appending ``comment`` as a ``#`` block.
        
        Args:
            yaml_path: Output file
            comment: Optional multi-line text appended as YAML comments
        """
        table = {str(key): float(value) for key, value in sorted(self.items())}
        with open(yaml_path, 'w') as f:
            yaml.safe_dump({'max_path_lengths': table}, f, default_flow_style=False)
            if comment:
                f.write('\n# this file is only relevant for a setup compatible with:\n')
                for line in comment.splitlines():
                    f.write(f"# {line}".rstrip() + '\n')
    
    @classmethod
    def from_yaml(cls, yaml_path: Union[str, Path]) -> 'PathLengthList':
        """Load a table written by :meth:`to_yaml`."""
        with open(yaml_path, 'r') as f:
            data = yaml.safe_load(f) or {}
        table = data.get('max_path_lengths', data)
        return cls({str(key): float(value) for key, value in table.items()})


@dataclass
class SpillState:
    """Per-spill and run-wide accounting counters.
    
    Attributes:
        events_this_spill: Events counted toward the current spill
        exposure_this_spill: Exposure used in the current spill
        total_exposure: Exposure booked over the run, never decreases
        target_events_this_spill: Histogram-driven event target of this spill
    """
    events_this_spill: int = 0
    exposure_this_spill: float = 0.0
    total_exposure: float = 0.0
    target_events_this_spill: int = 0
    
    def reset_spill(self) -> None:
        self.events_this_spill = 0
        self.exposure_this_spill = 0.0


@dataclass
class FluxRay:
    """One flux neutrino produced by a flux source.
    
    Attributes:
        pdg: Flavor code
        energy: Energy in GeV
        position: Ray start [3]
        direction: Unit direction [3]
        weight: Statistical weight
        decay_distance: Decay-to-ray-start distance, None when unknown
    """
    pdg: int
    energy: float
    position: np.ndarray
    direction: np.ndarray
    weight: float = 1.0
    decay_distance: Optional[float] = None
    
    @property
    def momentum(self) -> np.ndarray:
        return self.energy * self.direction


@dataclass
class Candidate:
    """Interaction candidate returned by the generator engine.
    
    Attributes:
        probe_pdg: Flavor of the interacting neutrino
        probe_energy: Neutrino energy in GeV
        vertex: Interaction vertex [3]
        weight: Event weight
    """
    probe_pdg: int
    probe_energy: float
    vertex: np.ndarray
    weight: float = 1.0


@dataclass
class FluxRecord:
    """Flux bookkeeping attached to one generated interaction.
    
    Attributes:
        flux_type: Source type the event came from
        gen_position: Ray start position [3]
        gen_to_vertex: Distance from ray start to the interaction vertex
        decay_to_gen: Travel distance reported by the mixing adapter (-1 unset)
        flux_by_flavor: Histogram flux per flavor at the event energy bin
    """
    flux_type: FluxType
    gen_position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    gen_to_vertex: float = 0.0
    decay_to_gen: float = -1.0
    flux_by_flavor: Dict[int, float] = field(default_factory=dict)
