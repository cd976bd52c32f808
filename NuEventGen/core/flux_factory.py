"""Construction of the flux driver selected by the configuration."""

from typing import Dict, List, Optional
import torch

from .data_models import DebugFlags, FluxType
from ..flux.atmospheric import AtmosphericFlux, BartolAtmoFlux, FlukaAtmoFlux
from ..flux.base import FluxSource
from ..flux.file_resolution import resolve_flux_files
from ..flux.histogram import CylindricalHistogramFlux, FluxHistogram, load_flux_histograms
from ..flux.mixing import MixingAdapter, resolve_flavor_mixer
from ..flux.mono import MonoEnergeticFlux
from ..flux.ntuple import NtupleFlux, NtupleFluxBase, SimpleNtupleFlux
from ..utils.config import SourceConfig
from ..utils.logging import get_logger
from ..utils.path_utils import SearchPath
from ..utils.validation import InvalidConfigurationError


logger = get_logger()


class FluxDriverFactory:
    """Builds the flux source for a SourceConfig.
    
    After :meth:`build` the factory also exposes what it resolved on the
    way: the flux files, the histograms of a histogram source and the
    per-spill event target, which a monoenergetic source forces to 1.
    
    Attributes:
        search_path: Directories searched for flux files
        generator: Random number generator handed to the flux source
        flux_files: Resolved flux files
        histograms: Loaded spectra of a histogram source
        events_per_spill: Effective per-spill event target
        raw_flux: Flux source before any mixing adapter
    """
    
    def __init__(
        self,
        search_path: Optional[SearchPath] = None,
        generator: Optional[torch.Generator] = None
    ):
        self.search_path = search_path if search_path is not None else SearchPath.from_env()
        self.generator = generator if generator is not None else torch.Generator()
        self.flux_files: List[str] = []
        self.histograms: Dict[int, FluxHistogram] = {}
        self.events_per_spill: float = 0
        self.raw_flux: Optional[FluxSource] = None
    
    def build(self, config: SourceConfig) -> FluxSource:
        """Build the flux source, wrapped in a MixingAdapter if mixing is requested.
        
        Args:
            config: Source configuration
            
        Returns:
            Flux source handed to the generator engine
            
        Raises:
            InvalidConfigurationError: If the flux inputs are unusable
        """
        flux_type = config.flux_type
        self.events_per_spill = config.events_per_spill
        self.flux_files = (
            resolve_flux_files(list(config.flux_files), flux_type, self.search_path)
            if config.flux_files else []
        )
        
        if flux_type == FluxType.MONO:
            flux = self._build_mono(config)
        elif flux_type == FluxType.HISTOGRAM:
            flux = self._build_histogram(config)
        elif flux_type.is_ntuple:
            flux = self._build_ntuple(config)
        elif flux_type.is_atmospheric:
            flux = self._build_atmospheric(config)
        else:
            raise InvalidConfigurationError(f"Unknown flux type: {flux_type}")
        
        self.raw_flux = flux
        return self._wrap_mixing(flux, config)
    
    def _build_mono(self, config: SourceConfig) -> MonoEnergeticFlux:
        weight = 1.0 / len(config.gen_flavors)
        flux = MonoEnergeticFlux(
            config.mono_energy,
            {pdg: weight for pdg in config.gen_flavors},
            generator=self.generator
        )
        flux.set_direction_cos(*config.beam_direction)
        flux.set_ray_origin(*config.beam_center)
        self.events_per_spill = 1
        logger.info(
            f"Generating monoenergetic ({config.mono_energy} GeV) neutrinos "
            f"with flavors {list(config.gen_flavors)}"
        )
        return flux
    
    def _build_histogram(self, config: SourceConfig) -> CylindricalHistogramFlux:
        if not self.flux_files:
            raise InvalidConfigurationError(
                f"Histogram flux needs a flux file, none resolved from {list(config.flux_files)}"
            )
        logger.info(
            f"Setting beam direction {list(config.beam_direction)} and center "
            f"{list(config.beam_center)} with radius {config.beam_radius}"
        )
        self.histograms = load_flux_histograms(self.flux_files[0], config.gen_flavors)
        
        flux = CylindricalHistogramFlux(generator=self.generator)
        for pdg, histogram in self.histograms.items():
            flux.add_energy_spectrum(pdg, histogram)
        flux.set_nu_direction(config.beam_direction)
        flux.set_beam_spot(config.beam_center)
        flux.set_transverse_radius(config.beam_radius)
        logger.info(f"Total histogram flux over desired flavors = {flux.total_flux}")
        return flux
    
    def _build_ntuple(self, config: SourceConfig) -> NtupleFluxBase:
        cls = NtupleFlux if config.flux_type == FluxType.NTUPLE else SimpleNtupleFlux
        flux = cls(generator=self.generator)
        flux.load_beam_sim_data(self.flux_files, config.detector_location)
        flux.set_flux_particles(config.gen_flavors)
        if config.upstream_z_is_set:
            flux.set_upstream_z(config.flux_upstream_z)
        return flux
    
    def _build_atmospheric(self, config: SourceConfig) -> AtmosphericFlux:
        flavors = list(config.gen_flavors)
        if len(flavors) != len(self.flux_files):
            raise InvalidConfigurationError(
                f"The number of generated neutrino flavors ({len(flavors)}) doesn't "
                f"correspond to the number of files ({len(self.flux_files)})"
            )
        if config.events_per_spill != 1:
            raise InvalidConfigurationError(
                f"For atmospheric neutrino generation events_per_spill needs to be 1, "
                f"not {config.events_per_spill}"
            )
        
        if config.flux_type == FluxType.ATMO_FLUKA:
            logger.info("The atmospheric fluxes are from FLUKA")
            flux: AtmosphericFlux = FlukaAtmoFlux(generator=self.generator)
        else:
            logger.info("The atmospheric fluxes are from BARTOL")
            flux = BartolAtmoFlux(generator=self.generator)
        logger.info(f"The energy range is between {config.atmo_emin} GeV and {config.atmo_emax} GeV")
        logger.info(f"Generation surface of ({config.atmo_rl}, {config.atmo_rt})")
        
        flux.force_min_energy(config.atmo_emin)
        flux.force_max_energy(config.atmo_emax)
        for pdg, file_path in zip(flavors, self.flux_files):
            logger.info(f"Flavor {pdg} flux file {file_path}")
            flux.set_flux_file(pdg, file_path)
        flux.load_flux_data()
        flux.set_radii(config.atmo_rl, config.atmo_rt)
        return flux
    
    def _wrap_mixing(self, flux: FluxSource, config: SourceConfig) -> FluxSource:
        try:
            wrap, mixer = resolve_flavor_mixer(config.mixer_config)
        except ValueError as e:
            raise InvalidConfigurationError(
                f"Bad flavor mixer configuration '{config.mixer_config}': {e}"
            ) from e
        if not wrap:
            return flux
        
        adapter = MixingAdapter(flux, mixer, baseline=config.mixer_baseline)
        if config.debug_flags & DebugFlags.PRINT_MIXER_CONFIG:
            if mixer is not None:
                logger.info(f"Flavor mixer config: {mixer.describe()}")
            logger.info(f"Mixing adapter config: {adapter.describe()}")
        return adapter
