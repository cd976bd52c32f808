"""Configuration management for flux-driven event generation."""

from dataclasses import dataclass, fields
from typing import Optional, Tuple
import math
import yaml
from pathlib import Path

from ..core.data_models import FluxType
from ..physics.constants import UNSET_UPSTREAM_Z, UPSTREAM_Z_LIMIT


@dataclass(frozen=True)
class SourceConfig:
    """Configuration of the flux source, target geometry and cuts.
    
    Created once at startup and never mutated afterwards. Sequence fields
    are normalized to tuples and ``gen_flavors`` to a sorted, deduplicated
    tuple so that iteration order is stable.
    
    Attributes:
        flux_type: Source-type tag ('mono', 'histogram', 'ntuple', 'simple_flux',
            'atmo_FLUKA', 'atmo_BARTOL')
        top_volume: Geometry volume in which interactions are generated
        gen_flavors: PDG codes of the flavors to generate
        flux_files: Input file names or glob patterns
        detector_location: Flux window name used by ntuple fluxes
        beam_name: Name of the simulated beam (informational)
        beam_center: Beam spot / ray origin for histogram and mono fluxes
        beam_direction: Beam direction cosines
        beam_radius: Transverse radius of histogram fluxes
        mono_energy: Energy of monoenergetic neutrinos in GeV
        flux_upstream_z: Upstream z plane for ntuple rays (|z| >= 1e30 is unset)
        events_per_spill: Target events per spill (0 means exposure driven)
        pot_per_spill: Target exposure per spill
        surrounding_mass: Extra mass intercepted by the histogram beam cylinder in kg
        atmo_emin: Minimum atmospheric neutrino energy in GeV
        atmo_emax: Maximum atmospheric neutrino energy in GeV
        atmo_rl: Longitudinal radius of the atmospheric generation surface
        atmo_rt: Transverse radius of the atmospheric generation surface
        mixer_config: Flavor mixing configuration ('none' disables mixing)
        mixer_baseline: Travel distance used when the flux cannot report one
        fiducial_cut: Fiducial cut spec ('none' disables the cut)
        geom_scan: Geometry scan spec ('default' keeps scanner defaults)
        debug_flags: Debug bitmask
        random_seed: Random seed for reproducibility (None for random)
        spline_file: Cross-section spline table, resolved via the search path
        search_path: Directories searched for input files (None uses environment)
        output_path: Directory receiving teardown output files
    """
    flux_type: FluxType
    top_volume: str
    gen_flavors: Tuple[int, ...]
    flux_files: Tuple[str, ...] = ()
    detector_location: str = ''
    beam_name: str = ''
    beam_center: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    beam_direction: Tuple[float, float, float] = (0.0, 0.0, 1.0)
    beam_radius: float = 3.0
    mono_energy: float = 2.0
    flux_upstream_z: float = UNSET_UPSTREAM_Z
    events_per_spill: float = 0
    pot_per_spill: float = 5.0e13
    surrounding_mass: float = 0.0
    atmo_emin: float = 0.1
    atmo_emax: float = 10.0
    atmo_rl: float = 20.0
    atmo_rt: float = 20.0
    mixer_config: str = 'none'
    mixer_baseline: float = 0.0
    fiducial_cut: str = 'none'
    geom_scan: str = 'default'
    debug_flags: int = 0
    random_seed: Optional[int] = None
    spline_file: Optional[str] = None
    search_path: Optional[Tuple[str, ...]] = None
    output_path: str = '.'
    
    def __post_init__(self):
        """Normalize field types and validate."""
        from .validation import InvalidConfigurationError
        
        try:
            flux_type = FluxType(self.flux_type)
        except ValueError:
            raise InvalidConfigurationError(
                f"Unknown flux type '{self.flux_type}', expected one of "
                f"{[t.value for t in FluxType]}"
            )
        object.__setattr__(self, 'flux_type', flux_type)
        object.__setattr__(self, 'gen_flavors', tuple(sorted({int(f) for f in self.gen_flavors})))
        object.__setattr__(self, 'flux_files', tuple(str(f) for f in self.flux_files))
        object.__setattr__(self, 'beam_center', tuple(float(v) for v in self.beam_center))
        object.__setattr__(self, 'beam_direction', tuple(float(v) for v in self.beam_direction))
        if self.search_path is not None:
            object.__setattr__(self, 'search_path', tuple(str(d) for d in self.search_path))
        
        self._validate()
    
    def _validate(self) -> None:
        """Validate configuration parameters."""
        from .validation import InvalidConfigurationError
        
        if not self.top_volume or not isinstance(self.top_volume, str):
            raise InvalidConfigurationError("top_volume must be a non-empty string")
        
        if not self.gen_flavors:
            raise InvalidConfigurationError("gen_flavors must list at least one flavor")
        
        if len(self.beam_center) != 3 or len(self.beam_direction) != 3:
            raise InvalidConfigurationError(
                f"beam_center and beam_direction must have 3 components, got "
                f"{self.beam_center} and {self.beam_direction}"
            )
        
        if math.sqrt(sum(c * c for c in self.beam_direction)) == 0.0:
            raise InvalidConfigurationError("beam_direction must not be the null vector")
        
        if self.beam_radius <= 0:
            raise InvalidConfigurationError(f"beam_radius must be positive, got {self.beam_radius}")
        
        if self.events_per_spill < 0:
            raise InvalidConfigurationError(
                f"events_per_spill must be non-negative, got {self.events_per_spill}"
            )
        
        if self.pot_per_spill < 0:
            raise InvalidConfigurationError(
                f"pot_per_spill must be non-negative, got {self.pot_per_spill}"
            )
        
        if self.atmo_emin >= self.atmo_emax:
            raise InvalidConfigurationError(
                f"atmo_emin ({self.atmo_emin}) must be below atmo_emax ({self.atmo_emax})"
            )
        
        if self.atmo_rl <= 0 or self.atmo_rt <= 0:
            raise InvalidConfigurationError(
                f"atmosphere generation radii must be positive, got "
                f"Rl={self.atmo_rl}, Rt={self.atmo_rt}"
            )
    
    @property
    def upstream_z_is_set(self) -> bool:
        return abs(self.flux_upstream_z) < UPSTREAM_Z_LIMIT
    
    @classmethod
    def from_dict(cls, config_dict: dict) -> 'SourceConfig':
        """Build a configuration from a plain mapping, ignoring unknown keys."""
        from ..utils.logging import get_logger
        logger = get_logger()
        
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(config_dict) - known)
        if unknown:
            logger.warning(f"Ignoring unknown configuration keys: {unknown}")
        return cls(**{k: v for k, v in config_dict.items() if k in known})
    
    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'SourceConfig':
        """Load configuration from YAML file.
        
        Args:
            yaml_path: Path to YAML configuration file
            
        Returns:
            SourceConfig instance
        """
        with open(yaml_path, 'r') as f:
            config_dict = yaml.safe_load(f) or {}
        
        return cls.from_dict(config_dict)
    
    def to_dict(self) -> dict:
        config_dict = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, FluxType):
                value = value.value
            elif isinstance(value, tuple):
                value = list(value)
            config_dict[f.name] = value
        return config_dict
    
    def to_yaml(self, yaml_path: str) -> None:
        """Save configuration to YAML file.
        
        Args:
            yaml_path: Path to save YAML configuration
        """
        Path(yaml_path).parent.mkdir(parents=True, exist_ok=True)
        with open(yaml_path, 'w') as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False)
    
    @staticmethod
    def get_default_config() -> 'SourceConfig':
        """Get a default configuration for testing.
        
        Returns:
            SourceConfig for a 2 GeV monoenergetic numu beam
        """
        return SourceConfig(
            flux_type=FluxType.MONO,
            top_volume='volDetEnclosure',
            gen_flavors=(14,),
            mono_energy=2.0,
            events_per_spill=1,
        )
