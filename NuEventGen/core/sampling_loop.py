"""One-candidate-at-a-time sampling with scoped geometry state."""

from contextlib import contextmanager
from typing import Dict, Iterator, Optional
import numpy as np

from .data_models import Candidate, DebugFlags, FluxRecord, FluxType
from .spill_accounting import SpillAccountant
from ..flux.base import FluxSource
from ..flux.histogram import FluxHistogram
from ..flux.mixing import MixingAdapter
from ..utils.logging import get_logger


logger = get_logger()


@contextmanager
def active_volume(geometry, volume_name: str) -> Iterator:
    """Point ``geometry`` at ``volume_name``, restoring the world volume on exit."""
    geometry.set_active_volume(volume_name)
    try:
        yield geometry
    finally:
        geometry.set_active_volume(geometry.world_volume_name)


class SamplingLoop:
    """Drives the generator engine for one candidate per call.
    
    Attributes:
        engine: Configured GeneratorEngine
        geometry: GeometryService shared with the engine
        flux: Flux source handed to the engine
        accountant: Spill bookkeeping
        histograms: Spectra of a histogram source, for the flux record
        debug_flags: Debug bitmask
        last_candidate: Candidate of the most recent successful sample
        last_flux_record: Flux record of the most recent successful sample
    """
    
    def __init__(
        self,
        engine,
        geometry,
        flux: FluxSource,
        accountant: SpillAccountant,
        histograms: Optional[Dict[int, FluxHistogram]] = None,
        debug_flags: int = 0
    ):
        self.engine = engine
        self.geometry = geometry
        self.flux = flux
        self.accountant = accountant
        self.histograms = histograms or {}
        self.debug_flags = DebugFlags(debug_flags)
        self.last_candidate: Optional[Candidate] = None
        self.last_flux_record: Optional[FluxRecord] = None
    
    def sample_once(self) -> bool:
        """Generate one candidate.
        
        Ntuple exposure is updated from the engine's running totals even
        when no viable candidate was produced.
        
        Returns:
            True if an interaction was generated
        """
        with active_volume(self.geometry, self.geometry.top_volume_name):
            candidate = self.engine.generate_candidate()
        
        self.accountant.record_exposure(
            self.engine.cumulative_used_exposure(),
            self.engine.global_probability_scale()
        )
        
        if candidate is None:
            self.last_candidate = None
            self.last_flux_record = None
            return False
        
        self.accountant.record_event()
        self.last_candidate = candidate
        self.last_flux_record = self.pack_flux_record(candidate)
        self._debug_output(candidate)
        return True
    
    def pack_flux_record(self, candidate: Candidate) -> FluxRecord:
        position = np.asarray(self.flux.position(), dtype=float)
        vertex = np.asarray(candidate.vertex, dtype=float)
        record = FluxRecord(
            flux_type=self.accountant.flux_type,
            gen_position=position.copy(),
            gen_to_vertex=float(np.linalg.norm(position - vertex))
        )
        if isinstance(self.flux, MixingAdapter):
            record.decay_to_gen = self.flux.travel_distance
        
        if self.accountant.flux_type == FluxType.HISTOGRAM and self.histograms:
            first = next(iter(self.histograms.values()))
            ibin = first.find_bin(candidate.probe_energy)
            record.flux_by_flavor = {
                pdg: histogram.bin_content(ibin) for pdg, histogram in self.histograms.items()
            }
        return record
    
    def _debug_output(self, candidate: Candidate) -> None:
        if self.debug_flags & DebugFlags.PRINT_MIXER_STATE and isinstance(self.flux, MixingAdapter):
            logger.info(self.flux.describe_state())
        if self.debug_flags & DebugFlags.PRINT_VERTEX:
            record = self.last_flux_record
            logger.info(
                f"Vertex {np.asarray(candidate.vertex).tolist()} ray start "
                f"{record.gen_position.tolist()} gen2vtx {record.gen_to_vertex:.4g} "
                f"E={candidate.probe_energy:.4g} pdg={candidate.probe_pdg}"
            )
