"""Per-spill event and exposure bookkeeping."""

import math
from typing import Optional, Tuple
import torch

from .data_models import FluxType, SpillState
from ..physics.constants import (
    HISTOGRAM_POT_NORMALIZATION,
    M2_TO_CM2,
    MIN_PROBABILITY_SCALE,
    NUCLEON_MASS_KG,
    PI,
    REFERENCE_CROSS_SECTION_CM2
)
from ..utils.logging import get_logger


logger = get_logger()


class SpillAccountant:
    """Decides when a spill is complete and books exposure.
    
    Atmospheric sources and sources with a positive per-spill event target
    close on event count. Otherwise ntuple sources close on used exposure
    and histogram sources on a Poisson drawn event count.
    
    A spill closes at most once between two recorded samples, so repeated
    calls to :meth:`should_close_spill` without sampling leave the state
    alone. Histogram spills whose drawn target is zero are closed together
    with the spill before them and booked in :attr:`empty_spills`.

    Attributes:
        flux_type: Source type being accounted
        events_per_spill: Per-spill event target (0 = exposure driven)
        pot_per_spill: Per-spill exposure target
        state: Spill counters
        mean_events_per_spill: Poisson mean of histogram spill targets
        empty_spills: Histogram spills closed without any event
    """
    
    def __init__(
        self,
        flux_type: FluxType,
        events_per_spill: float = 0,
        pot_per_spill: float = 0.0,
        generator: Optional[torch.Generator] = None
    ):
        self.flux_type = FluxType(flux_type)
        self.events_per_spill = events_per_spill
        self.pot_per_spill = pot_per_spill
        self.generator = generator if generator is not None else torch.Generator()
        self.state = SpillState()
        self.mean_events_per_spill = 0.0
        self.empty_spills = 0
        self.atmo_flux = None
        self.atmo_rt = 1.0
        self._sampled_since_close = True
    
    @property
    def total_exposure(self) -> float:
        return self.state.total_exposure
    
    def use_atmospheric_flux(self, flux, rt: float) -> None:
        """Flux whose thrown-neutrino count normalizes atmospheric exposure."""
        self.atmo_flux = flux
        self.atmo_rt = float(rt)
    
    def configure_histogram_rate(self, detector_mass: float, surrounding_mass: float, total_flux: float) -> None:
        """Set the Poisson mean of histogram spill targets and draw the first target.
        
        Fluxes are in neutrinos/cm^2/1e20 POT integrated over energy and a
        fixed 1e-38 cm^2 cross section per nucleon is assumed.
        
        Args:
            detector_mass: Mass of the top volume in kg
            surrounding_mass: Extra mass intercepted by the beam in kg
            total_flux: Sum of histogram integrals over the generated flavors
        """
        xsec_mass_pot = REFERENCE_CROSS_SECTION_CM2 * HISTOGRAM_POT_NORMALIZATION
        xsec_mass_pot *= self.pot_per_spill * (detector_mass + surrounding_mass) / NUCLEON_MASS_KG
        self.mean_events_per_spill = xsec_mass_pot * total_flux
        logger.info(
            f"Number of events per spill will be based on poisson mean of "
            f"{self.mean_events_per_spill}"
        )
        self.state.target_events_this_spill = self.draw_spill_target()
    
    def draw_spill_target(self) -> int:
        mean = torch.tensor([max(self.mean_events_per_spill, 0.0)], dtype=torch.float64)
        return int(torch.poisson(mean, generator=self.generator).item())

    def draw_nonempty_target(self) -> Tuple[int, int]:
        """Draw spill targets until one is nonzero.

        The number of zero targets before the first nonzero one is geometric
        with success probability 1 - exp(-mean), and the nonzero target
        follows the zero-truncated Poisson distribution, so both are drawn
        directly instead of by repeated trials.

        Returns:
            Tuple of (number of empty spills, nonzero target). A zero mean
            gives (0, 0).
        """
        target = self.draw_spill_target()
        mean = self.mean_events_per_spill
        if target > 0 or mean <= 0:
            return 0, target

        n_more = math.log(1.0 - self._uniform()) / -mean
        if not math.isfinite(n_more):
            return 0, target
        n_empty = 1 + int(n_more)

        # Inverse CDF of the zero-truncated Poisson distribution, accumulated
        # from k = 1 to keep precision for small means
        u = -self._uniform() * math.expm1(-mean)
        target = 1
        pk = mean * math.exp(-mean)
        cdf = pk
        while u >= cdf and pk > 0:
            target += 1
            pk *= mean / target
            cdf += pk
        return n_empty, target

    def _uniform(self) -> float:
        return torch.rand(1, generator=self.generator, dtype=torch.float64).item()

    def record_exposure(self, cumulative_exposure: float, probability_scale: float) -> None:
        """Update the spill exposure of ntuple sources from driver totals."""
        if not self.flux_type.is_ntuple:
            return
        scale = max(probability_scale, MIN_PROBABILITY_SCALE)
        self.state.exposure_this_spill = cumulative_exposure / scale - self.state.total_exposure
        self._sampled_since_close = True
    
    def record_event(self) -> None:
        """Count one generated interaction toward the current spill."""
        self._sampled_since_close = True
        if self.flux_type in (FluxType.HISTOGRAM, FluxType.MONO):
            self.state.events_this_spill += 1
        elif self.events_per_spill > 0:
            self.state.events_this_spill += 1
    
    def spill_complete(self) -> bool:
        """Whether the current counters satisfy the spill target."""
        state = self.state
        if self.flux_type.is_atmospheric:
            return not (self.events_per_spill > 0 and state.events_this_spill < self.events_per_spill)
        if self.events_per_spill > 0:
            return state.events_this_spill >= self.events_per_spill
        if self.flux_type.is_ntuple:
            return state.exposure_this_spill >= self.pot_per_spill
        if self.flux_type == FluxType.HISTOGRAM:
            return state.events_this_spill >= state.target_events_this_spill
        return True
    
    def should_close_spill(self) -> bool:
        """Close the spill if its target is reached.
        
        Returns:
            True if the spill was closed by this call
        """
        if not self._sampled_since_close or not self.spill_complete():
            return False
        
        state = self.state
        if self.events_per_spill <= 0 and self.flux_type == FluxType.HISTOGRAM:
            state.exposure_this_spill = self.pot_per_spill
        
        if self.flux_type.is_atmospheric:
            booked = self.atmospheric_exposure()
            state.total_exposure += max(0.0, booked - state.total_exposure)
            logger.debug(f"Atmospheric exposure = {state.total_exposure} seconds")
        else:
            state.total_exposure += max(0.0, state.exposure_this_spill)
        
        state.reset_spill()
        if self.flux_type == FluxType.HISTOGRAM:
            if self.events_per_spill > 0:
                state.target_events_this_spill = self.draw_spill_target()
            else:
                n_empty, state.target_events_this_spill = self.draw_nonempty_target()
                if n_empty:
                    self.empty_spills += n_empty
                    state.total_exposure += n_empty * self.pot_per_spill
                    logger.debug(f"Closed {n_empty} empty spills")
        self._sampled_since_close = False
        return True
    
    def atmospheric_exposure(self) -> float:
        """Exposure in seconds from the neutrinos thrown on the generation surface.
        
        The 1e4 converts the flux tables' per m^2 into the per cm^2 used by
        the generator.
        """
        if self.atmo_flux is None:
            return self.state.total_exposure
        return M2_TO_CM2 * self.atmo_flux.n_flux_neutrinos / (PI * self.atmo_rt ** 2)
