"""Flux source drivers."""

from .base import FluxSource
from .mono import MonoEnergeticFlux
from .histogram import CylindricalHistogramFlux, FluxHistogram, load_flux_histograms
from .ntuple import NtupleFlux, SimpleNtupleFlux
from .atmospheric import AtmosphericFlux, BartolAtmoFlux, FlukaAtmoFlux
from .mixing import (
    FlavorMap,
    FlavorMixer,
    MixingAdapter,
    TwoFlavorOscillation,
    available_flavor_mixers,
    get_flavor_mixer,
    register_flavor_mixer,
    resolve_flavor_mixer
)
from .file_resolution import resolve_flux_files

__all__ = [
    'FluxSource',
    'MonoEnergeticFlux',
    'CylindricalHistogramFlux',
    'FluxHistogram',
    'load_flux_histograms',
    'NtupleFlux',
    'SimpleNtupleFlux',
    'AtmosphericFlux',
    'FlukaAtmoFlux',
    'BartolAtmoFlux',
    'FlavorMixer',
    'FlavorMap',
    'TwoFlavorOscillation',
    'MixingAdapter',
    'register_flavor_mixer',
    'get_flavor_mixer',
    'available_flavor_mixers',
    'resolve_flavor_mixer',
    'resolve_flux_files',
]
