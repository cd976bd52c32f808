"""Flavor mixing: mixer strategies, their registry and the wrapping adapter."""

from abc import ABC, abstractmethod
from dataclasses import replace
import re
from typing import Callable, Dict, List, Optional, Tuple, Type
import numpy as np

from .base import FluxSource
from ..physics.constants import (
    M_TO_KM,
    OSCILLATION_PHASE_CONSTANT,
    PDG_STERILE
)
from ..utils.logging import get_logger


logger = get_logger()

MAX_STERILE_REDRAWS = 10000


class FlavorMixer(ABC):
    """Transition probabilities between neutrino flavors."""
    
    @abstractmethod
    def config(self, config: str) -> None:
        """Configure from the text following the mixer name."""
    
    @abstractmethod
    def probability(self, pdg_init: int, pdg_final: int, energy: float, distance: float) -> float:
        """Probability that ``pdg_init`` is observed as ``pdg_final``."""
    
    def describe(self) -> str:
        return type(self).__name__


_MIXER_REGISTRY: Dict[str, Type[FlavorMixer]] = {}


def register_flavor_mixer(name: Optional[str] = None) -> Callable:
    """Class decorator adding a mixer to the registry under ``name``."""
    def decorator(cls: Type[FlavorMixer]) -> Type[FlavorMixer]:
        _MIXER_REGISTRY[name or cls.__name__] = cls
        return cls
    return decorator


def get_flavor_mixer(name: str) -> Optional[FlavorMixer]:
    """Instantiate the mixer registered under exactly ``name``, or None."""
    cls = _MIXER_REGISTRY.get(name)
    return cls() if cls is not None else None


def available_flavor_mixers() -> List[str]:
    return sorted(_MIXER_REGISTRY)


def _same_sign_flavors(pdg: int) -> Tuple[int, int, int]:
    sign = 1 if pdg > 0 else -1
    return (12 * sign, 14 * sign, 16 * sign)


@register_flavor_mixer()
class FlavorMap(FlavorMixer):
    """Energy and distance independent flavor transition table.
    
    Config forms::
    
        swap 12:14 14:12          each listed flavor becomes the other
        map 12:16                 same as swap
        fixedfrac {14:0.1,0.8,0.1} {-14:0,1,0}
    
    ``fixedfrac`` fractions are ordered (12, 14, 16) with the sign of the
    initial flavor. Fractions summing below one leave the remainder sterile.
    Flavors that are not mentioned are left unchanged.
    """
    
    def __init__(self):
        self._table: Dict[int, Dict[int, float]] = {}
        self._config = ''
    
    def config(self, config: str) -> None:
        self._config = config.strip()
        self._table = {}
        tokens = self._config.split(None, 1)
        if not tokens:
            return
        keyword = tokens[0].lower()
        body = tokens[1] if len(tokens) > 1 else ''
        
        if keyword in ('swap', 'map'):
            for pdg_from, pdg_to in re.findall(r'(-?\d+)\s*:\s*(-?\d+)', body):
                self._table[int(pdg_from)] = {int(pdg_to): 1.0}
        elif keyword == 'fixedfrac':
            for block in re.findall(r'\{([^}]*)\}', body):
                head, _, fractions = block.partition(':')
                pdg_from = int(head.strip())
                values = [float(v) for v in re.split(r'[\s,]+', fractions.strip()) if v]
                if len(values) != 3:
                    raise ValueError(
                        f"fixedfrac block '{{{block}}}' needs 3 fractions, got {len(values)}"
                    )
                if sum(values) > 1.0 + 1e-9:
                    raise ValueError(f"fixedfrac fractions for {pdg_from} exceed 1: {values}")
                self._table[pdg_from] = dict(zip(_same_sign_flavors(pdg_from), values))
        else:
            raise ValueError(f"FlavorMap does not understand '{keyword}'")
    
    def probability(self, pdg_init: int, pdg_final: int, energy: float, distance: float) -> float:
        row = self._table.get(pdg_init)
        if row is None:
            return 1.0 if pdg_init == pdg_final else 0.0
        return row.get(pdg_final, 0.0)
    
    def describe(self) -> str:
        return f"FlavorMap('{self._config}', table={self._table})"


@register_flavor_mixer()
class TwoFlavorOscillation(FlavorMixer):
    """Two-flavor vacuum oscillation.
    
    Config: ``<from> <to> <dm2 eV^2> <sin^2(2 theta)>``, distances in meters
    and energies in GeV. Applies to the matching antineutrinos as well.
    """
    
    def __init__(self):
        self.pdg_from = 14
        self.pdg_to = 16
        self.dm2 = 2.5e-3
        self.sin2_2theta = 1.0
    
    def config(self, config: str) -> None:
        tokens = config.replace(',', ' ').split()
        if len(tokens) != 4:
            raise ValueError(
                f"TwoFlavorOscillation needs '<from> <to> <dm2> <sin2_2theta>', got '{config}'"
            )
        self.pdg_from, self.pdg_to = abs(int(tokens[0])), abs(int(tokens[1]))
        self.dm2, self.sin2_2theta = float(tokens[2]), float(tokens[3])
    
    def oscillation_probability(self, energy: float, distance: float) -> float:
        if energy <= 0:
            return 0.0
        phase = OSCILLATION_PHASE_CONSTANT * self.dm2 * distance * M_TO_KM / energy
        return self.sin2_2theta * np.sin(phase) ** 2
    
    def probability(self, pdg_init: int, pdg_final: int, energy: float, distance: float) -> float:
        if abs(pdg_init) not in (self.pdg_from, self.pdg_to) or pdg_init * pdg_final < 0:
            return 1.0 if pdg_init == pdg_final else 0.0
        p_osc = self.oscillation_probability(energy, distance)
        partner = self.pdg_to if abs(pdg_init) == self.pdg_from else self.pdg_from
        if abs(pdg_final) == abs(pdg_init):
            return 1.0 - p_osc
        if abs(pdg_final) == partner:
            return p_osc
        return 0.0
    
    def describe(self) -> str:
        return (
            f"TwoFlavorOscillation({self.pdg_from}->{self.pdg_to}, "
            f"dm2={self.dm2}, sin2_2theta={self.sin2_2theta})"
        )


class MixingAdapter(FluxSource):
    """Wraps a flux source and remaps the flavor of every ray it produces.
    
    When the wrapped source cannot report a decay distance the fixed
    baseline is used as the travel distance. With no mixer the adapter
    passes rays through unchanged.
    
    Attributes:
        flux: Wrapped flux source
        mixer: Flavor mixer, or None
        baseline: Travel distance used when the flux reports none
        travel_distance: Travel distance of the current ray
        pdg_generated: Flavor before mixing of the current ray
        n_sterile: Rays dropped because they mixed into a sterile state
    """
    
    def __init__(self, flux: FluxSource, mixer: Optional[FlavorMixer] = None, baseline: float = 0.0):
        super().__init__(flux.generator)
        self.flux = flux
        self.flux_type = flux.flux_type
        self.mixer = mixer
        self.baseline = float(baseline)
        self.travel_distance = -1.0
        self.pdg_generated = 0
        self.n_sterile = 0
    
    def flux_particles(self) -> List[int]:
        return self.flux.flux_particles()
    
    def used_exposure(self) -> float:
        return self.flux.used_exposure()
    
    def decay_distance(self) -> Optional[float]:
        return self.travel_distance
    
    def remap_flavor(self, pdg: int, energy: float, distance: float) -> int:
        """Draw the flavor ``pdg`` is observed as; 0 means sterile."""
        if self.mixer is None:
            return pdg
        finals = _same_sign_flavors(pdg)
        probabilities = [self.mixer.probability(pdg, f, energy, distance) for f in finals]
        sterile = max(0.0, 1.0 - sum(probabilities))
        index = self._choose(probabilities + [sterile])
        return finals[index] if index < len(finals) else PDG_STERILE
    
    def generate_next(self) -> bool:
        for _ in range(MAX_STERILE_REDRAWS):
            if not self.flux.generate_next():
                return False
            ray = self.flux.current
            distance = ray.decay_distance if ray.decay_distance is not None else self.baseline
            self.travel_distance = distance
            self.pdg_generated = ray.pdg
            
            pdg = self.remap_flavor(ray.pdg, ray.energy, distance)
            if pdg == PDG_STERILE:
                self.n_sterile += 1
                continue
            self.current = replace(ray, pdg=pdg, decay_distance=distance)
            return True
        
        raise RuntimeError(
            f"MixingAdapter: {MAX_STERILE_REDRAWS} consecutive rays mixed into sterile states"
        )
    
    def describe(self) -> str:
        mixer = self.mixer.describe() if self.mixer is not None else 'no mixer'
        return f"MixingAdapter(baseline={self.baseline}, mixer={mixer}, flux={self.flux.describe()})"
    
    def describe_state(self) -> str:
        if self.current is None:
            return "MixingAdapter: no ray generated"
        return (
            f"MixingAdapter: generated {self.pdg_generated} -> {self.current.pdg} "
            f"E={self.current.energy:.4g} dist={self.travel_distance:.4g} "
            f"sterile={self.n_sterile}"
        )


def resolve_flavor_mixer(mixer_config: str) -> Tuple[bool, Optional[FlavorMixer]]:
    """Turn a mixer configuration string into a configured mixer.
    
    Args:
        mixer_config: e.g. ``'none'``, ``'swap 12:14'`` or
            ``'TwoFlavorOscillation 14 16 2.5e-3 1.0'``
            
    Returns:
        (wrap, mixer): whether the flux must be wrapped in a MixingAdapter,
        and the mixer (None if the name did not resolve)
        
    Raises:
        ValueError: If a resolved mixer rejects its configuration
    """
    config = mixer_config.strip()
    keyword = config.split(None, 1)[0] if config else 'none'
    if keyword.lower() == 'none':
        return False, None
    
    if keyword in ('map', 'swap', 'fixedfrac'):
        mixer = FlavorMap()
        mixer.config(config)
        return True, mixer
    
    mixer = get_flavor_mixer(keyword)
    if mixer is None:
        logger.warning(
            f"MixerConfig keyword was '{keyword}' but that did not map to a mixer; "
            f"MixingAdapter in use, but no mixer"
        )
        for i, name in enumerate(available_flavor_mixers()):
            logger.warning(f"   [{i:2d}]  {name}")
        return True, None
    
    mixer.config(config[len(keyword):].lstrip())
    return True, mixer
