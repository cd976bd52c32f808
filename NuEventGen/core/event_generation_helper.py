"""Top-level orchestration of flux driven event generation."""

from pathlib import Path
from typing import Dict, List, Optional
import torch
import yaml

from .cut_parser import CutSpecParser
from .data_models import Candidate, FluxRecord, FluxType, ScanSettings
from .flux_factory import FluxDriverFactory
from .geometry_scan import GeometryScanConfigurator, build_audit_summary
from .sampling_loop import SamplingLoop
from .spill_accounting import SpillAccountant
from .volume_selector import VolumeSelector, VolumeSelectorFactory
from ..flux.base import FluxSource
from ..flux.histogram import FluxHistogram
from ..flux.ntuple import NtupleFluxBase
from ..physics.constants import HIST_FLUX_UNAVAILABLE, MIN_PROBABILITY_SCALE
from ..utils.config import SourceConfig
from ..utils.logging import get_logger
from ..utils.path_utils import PathValidationError, SearchPath, validate_output_path
from ..utils.validation import InvalidConfigurationError, SpecParseError, validate_config


logger = get_logger()

PATH_LENGTH_FILE = 'maxpathlength.yaml'


class EventGenerationHelper:
    """Assembles flux, geometry and generator engine and runs the sampling loop.
    
    Typical use::
    
        helper = EventGenerationHelper(config, geometry, engine)
        helper.initialize()
        while not done:
            if helper.sample():
                ...
            if helper.stop():
                ...  # spill boundary
        helper.finalize()
    
    Attributes:
        config: Source configuration
        geometry: GeometryService
        engine: GeneratorEngine
        search_path: Directories searched for input files
        generator: Random number generator shared by all stochastic parts
        flux: Flux source handed to the engine
        raw_flux: Flux source before any mixing adapter
        flux_files: Resolved flux files
        selector: Installed fiducial selector, if any
        scan_settings: Geometry scan settings, if any
        audit_info: Setup summary written with the path length table
        accountant: Spill bookkeeping
        loop: Sampling loop
    """
    
    def __init__(
        self,
        config: SourceConfig,
        geometry,
        engine,
        search_path: Optional[SearchPath] = None
    ):
        """Initialize EventGenerationHelper.
        
        Args:
            config: Source configuration
            geometry: GeometryService implementation
            engine: GeneratorEngine implementation
            search_path: Directories searched for input files; defaults to
                ``config.search_path`` and then the environment
        """
        validate_config(config)
        self.config = config
        self.geometry = geometry
        self.engine = engine
        
        if search_path is not None:
            self.search_path = search_path
        elif config.search_path is not None:
            self.search_path = SearchPath(config.search_path)
        else:
            self.search_path = SearchPath.from_env()
        
        self.generator = torch.Generator()
        if config.random_seed is not None:
            self.generator.manual_seed(config.random_seed)
            logger.info(f"Random seed set to {config.random_seed}")
        else:
            self.generator.seed()
        
        self.flux: Optional[FluxSource] = None
        self.raw_flux: Optional[FluxSource] = None
        self.flux_files: List[str] = []
        self.histograms: Dict[int, FluxHistogram] = {}
        self.selector: Optional[VolumeSelector] = None
        self.scan_settings: Optional[ScanSettings] = None
        self.audit_info = ''
        self.spline_file: Optional[str] = None
        self.detector_mass = 0.0
        self.detector_length = 0.0
        self.events_per_spill = config.events_per_spill
        self.accountant: Optional[SpillAccountant] = None
        self.loop: Optional[SamplingLoop] = None
        
        logger.info(
            f"Flux type {config.flux_type.value}, flavors {list(config.gen_flavors)}, "
            f"top volume '{config.top_volume}'"
        )
    
    def initialize(self) -> None:
        """Build and wire every component.
        
        Raises:
            InvalidConfigurationError: On any fatal configuration problem
        """
        logger.info("=" * 60)
        logger.info("Initializing event generation")
        logger.info("=" * 60)
        
        self.spline_file = self._resolve_spline_file()
        
        logger.info("Step 1: Geometry and fiducial selection")
        self.geometry.set_top_volume_name(self.config.top_volume)
        self.initialize_fiducial_selection()
        self.detector_length = self.geometry.detector_length()
        self.detector_mass = self.geometry.total_mass(self.geometry.top_volume_name)
        
        logger.info("Step 2: Flux driver")
        factory = FluxDriverFactory(self.search_path, self.generator)
        self.flux = factory.build(self.config)
        self.raw_flux = factory.raw_flux
        self.flux_files = factory.flux_files
        self.histograms = factory.histograms
        self.events_per_spill = factory.events_per_spill
        
        self.engine.use_flux_source(self.flux)
        self.engine.use_geometry(self.geometry)
        
        logger.info("Step 3: Geometry scan")
        self.configure_geometry_scan()
        
        logger.info("Step 4: Generator engine")
        self.engine.configure()
        self.engine.use_splines(self.spline_file)
        
        self.accountant = SpillAccountant(
            self.config.flux_type,
            events_per_spill=self.events_per_spill,
            pot_per_spill=self.config.pot_per_spill,
            generator=self.generator
        )
        if self.config.flux_type == FluxType.HISTOGRAM and self.events_per_spill < 0.01:
            self.accountant.configure_histogram_rate(
                self.detector_mass,
                self.config.surrounding_mass,
                self.total_hist_flux()
            )
        if self.config.flux_type.is_atmospheric:
            self.accountant.use_atmospheric_flux(self.raw_flux, self.config.atmo_rt)
        
        self.loop = SamplingLoop(
            self.engine,
            self.geometry,
            self.flux,
            self.accountant,
            histograms=self.histograms,
            debug_flags=self.config.debug_flags
        )
        
        if self.events_per_spill != 0:
            logger.info(f"Generating {self.events_per_spill} events for each spill")
        else:
            logger.info(f"Using {self.config.pot_per_spill} POT for each spill")
    
    def initialize_fiducial_selection(self) -> None:
        """Install the configured fiducial cut; malformed cuts are skipped."""
        try:
            descriptor = CutSpecParser().parse(self.config.fiducial_cut)
        except SpecParseError as e:
            logger.warning(f"Fiducial cut '{e.spec}' not applied: {e}")
            return
        if descriptor is None:
            return
        self.selector = VolumeSelectorFactory().build(descriptor, self.geometry)
    
    def configure_geometry_scan(self) -> None:
        """Apply the configured geometry scan; malformed values are skipped."""
        try:
            self.scan_settings = GeometryScanConfigurator().configure(
                self.config.geom_scan,
                self.geometry,
                flux=self.flux,
                search_path=self.search_path
            )
        except SpecParseError as e:
            logger.warning(f"Geometry scan '{e.spec}' not applied: {e}")
            return
        
        if self.scan_settings is not None and self.scan_settings.write_audit:
            self.audit_info = build_audit_summary(
                flux_type=self.config.flux_type.value,
                beam_name=self.config.beam_name,
                flux_files=self.flux_files,
                detector_location=self.config.detector_location,
                geometry_file=self.geometry.geometry_file,
                world_volume=self.geometry.world_volume_name,
                top_volume=self.geometry.top_volume_name,
                fiducial_cut=self.config.fiducial_cut,
                geom_scan=self.config.geom_scan
            )
    
    def stop(self) -> bool:
        """Whether the current spill is complete; closes it if so."""
        self._require_initialized()
        return self.accountant.should_close_spill()
    
    def sample(self) -> bool:
        """Generate one interaction; False if none was viable."""
        self._require_initialized()
        return self.loop.sample_once()
    
    @property
    def last_candidate(self) -> Optional[Candidate]:
        return self.loop.last_candidate if self.loop else None
    
    @property
    def last_flux_record(self) -> Optional[FluxRecord]:
        return self.loop.last_flux_record if self.loop else None
    
    def total_hist_flux(self) -> float:
        if self.config.flux_type in (FluxType.NTUPLE, FluxType.MONO, FluxType.SIMPLE_FLUX):
            return HIST_FLUX_UNAVAILABLE
        return sum(h.integral() for h in self.histograms.values())
    
    def pot_used(self) -> float:
        return self.accountant.total_exposure if self.accountant else 0.0
    
    def flux_type(self) -> str:
        return self.config.flux_type.value
    
    def detector_location(self) -> str:
        return self.config.detector_location
    
    def total_mass(self) -> float:
        return self.detector_mass + self.config.surrounding_mass
    
    def flux_histograms(self) -> List[FluxHistogram]:
        return list(self.histograms.values())
    
    def finalize(self) -> Dict[str, float]:
        """Write requested teardown output and report exposure totals.
        
        Returns:
            Total exposure, probability scale, raw and corrected exposure
        """
        if self.audit_info:
            self._write_path_lengths()
        
        scale = self.engine.global_probability_scale()
        raw = 0.0
        if isinstance(self.raw_flux, NtupleFluxBase):
            raw = self.raw_flux.used_pots()
            logger.info(self.raw_flux.describe())
        
        summary = {
            'total_exposure': self.pot_used(),
            'probability_scale': scale,
            'raw_exposure': raw,
            'corrected_exposure': raw / max(scale, MIN_PROBABILITY_SCALE),
        }
        logger.info(
            f"Total exposure {summary['total_exposure']} probability scale {scale} "
            f"flux driver base exposure {raw} corrected exposure {summary['corrected_exposure']}"
        )
        return summary
    
    def _write_path_lengths(self) -> None:
        try:
            path = validate_output_path(Path(self.config.output_path) / PATH_LENGTH_FILE)
            logger.info(f"Saving max path lengths as '{path}'")
            self.geometry.max_path_lengths().to_yaml(path, comment=self.audit_info)
        except (OSError, PathValidationError, yaml.YAMLError) as e:
            logger.error(f"Failed to write max path lengths: {e}")
    
    def _resolve_spline_file(self) -> Optional[str]:
        if not self.config.spline_file:
            return None
        path = self.search_path.find_file(self.config.spline_file)
        if path is None:
            raise InvalidConfigurationError(
                f"Could not resolve full path for spline file '{self.config.spline_file}' "
                f"using {self.search_path.directories or ['.']}"
            )
        logger.info(f"Using spline file {path}")
        return str(path)
    
    def _require_initialized(self) -> None:
        if self.loop is None:
            raise RuntimeError("EventGenerationHelper.initialize() has not been called")
