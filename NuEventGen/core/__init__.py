"""Event generation orchestration components."""

from .data_models import (
    FluxType,
    DebugFlags,
    CutShape,
    CutDescriptor,
    ScanMethod,
    ScanSettings,
    PathLengthList,
    SpillState,
    FluxRay,
    Candidate,
    FluxRecord
)
from .cut_parser import CutSpecParser
from .volume_selector import (
    VolumeSelector,
    CylinderSelector,
    BoxSelector,
    PolygonSelector,
    SphereSelector,
    RockShellSelector,
    VolumeSelectorFactory
)
from .geometry_scan import GeometryScanConfigurator, build_audit_summary
from .flux_factory import FluxDriverFactory
from .spill_accounting import SpillAccountant
from .sampling_loop import SamplingLoop, active_volume
from .event_generation_helper import EventGenerationHelper

__all__ = [
    'FluxType',
    'DebugFlags',
    'CutShape',
    'CutDescriptor',
    'ScanMethod',
    'ScanSettings',
    'PathLengthList',
    'SpillState',
    'FluxRay',
    'Candidate',
    'FluxRecord',
    'CutSpecParser',
    'VolumeSelector',
    'CylinderSelector',
    'BoxSelector',
    'PolygonSelector',
    'SphereSelector',
    'RockShellSelector',
    'VolumeSelectorFactory',
    'GeometryScanConfigurator',
    'build_audit_summary',
    'FluxDriverFactory',
    'SpillAccountant',
    'SamplingLoop',
    'active_volume',
    'EventGenerationHelper',
]
