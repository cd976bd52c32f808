"""Configuration of the geometry's maximum path length scan.

Scan strings (case-insensitive)::

    default                                 keep the geometry's own settings
    file <table.yaml>                       load precomputed path lengths
    box <n_points> <n_rays> [safety] [write]
    flux <n_particles> [safety] [write]

Point, ray and particle counts of 10 or less fall back to the geometry's
defaults. A positive safety factor scales the computed path lengths and a
nonzero write flag requests the table plus an audit summary at teardown.
"""

from typing import List, Optional, Sequence

from .data_models import PathLengthList, ScanMethod, ScanSettings
from ..physics.constants import MIN_SCANNER_COUNT
from ..utils.logging import get_logger
from ..utils.path_utils import SearchPath
from ..utils.validation import InvalidConfigurationError, SpecParseError


logger = get_logger()

N_SCAN_VALUES = 4


class GeometryScanConfigurator:
    """Applies a scan string to a GeometryService."""
    
    def configure(
        self,
        spec: Optional[str],
        geometry,
        flux=None,
        search_path: Optional[SearchPath] = None
    ) -> Optional[ScanSettings]:
        """Parse ``spec`` and hand the resulting settings to ``geometry``.
        
        Args:
            spec: Scan string
            geometry: GeometryService to configure
            flux: Flux source sampled by the ``flux`` method
            search_path: Directories searched for a ``file`` table
            
        Returns:
            Settings handed to the geometry, or None for the default scan
            
        Raises:
            InvalidConfigurationError: Unknown method, unresolvable table
                file, or flux scan without a flux source
            SpecParseError: Non-numeric scan values
        """
        settings = self.parse(spec, geometry, flux, search_path)
        if settings is None:
            return None
        geometry.configure_scan(settings)
        return settings
    
    def parse(
        self,
        spec: Optional[str],
        geometry,
        flux=None,
        search_path: Optional[SearchPath] = None
    ) -> Optional[ScanSettings]:
        text = (spec or '').strip()
        if text == '' or 'default' in text.lower():
            return None
        
        # file names keep their case
        raw_tokens = text.split()
        text = text.lower()
        tokens = text.split()
        method_token = tokens[0]
        
        if ScanMethod.FILE.value in method_token:
            return self._from_file(raw_tokens, text, search_path)
        
        values = self._scan_values(tokens[1:], text)
        n_values = len(values)
        values += [0.0] * max(0, N_SCAN_VALUES - n_values)
        
        if ScanMethod.BOX.value in method_token:
            n_points, n_rays = int(values[0]), int(values[1])
            safety = values[2] if n_values >= 3 else 0.0
            write = values[3] if n_values >= 4 else 0.0
            if n_points <= MIN_SCANNER_COUNT:
                n_points = geometry.scanner_n_points
            if n_rays <= MIN_SCANNER_COUNT:
                n_rays = geometry.scanner_n_rays
            logger.info(f"Geometry scan using box {n_points} points, {n_rays} rays")
            settings = ScanSettings(method=ScanMethod.BOX, n_points=n_points, n_rays=n_rays)
        elif ScanMethod.FLUX.value in method_token:
            if flux is None:
                raise InvalidConfigurationError(
                    f"Geometry scan '{text}' needs the flux source to be built first"
                )
            n_particles = int(values[0])
            safety = values[1] if n_values >= 2 else 0.0
            write = values[2] if n_values >= 3 else 0.0
            if n_particles <= MIN_SCANNER_COUNT:
                n_particles = geometry.scanner_n_particles
            logger.info(f"Geometry scan using flux {n_particles} particles")
            settings = ScanSettings(method=ScanMethod.FLUX, n_particles=n_particles, flux=flux)
        else:
            raise InvalidConfigurationError(f"Unknown geometry scan method: '{text}'")
        
        if safety > 0:
            logger.info(f"Geometry scan safety factor set to {safety}")
            settings.safety_factor = safety
        settings.write_audit = write != 0
        return settings
    
    @staticmethod
    def _scan_values(tokens: Sequence[str], text: str) -> List[float]:
        values = []
        for token in tokens:
            if not token:
                continue
            try:
                values.append(float(token))
            except ValueError as e:
                raise SpecParseError(f"Non-numeric geometry scan value '{token}'", text) from e
        return values
    
    @staticmethod
    def _from_file(
        tokens: Sequence[str],
        text: str,
        search_path: Optional[SearchPath]
    ) -> ScanSettings:
        names = [t for t in tokens[1:] if t]
        if not names:
            raise InvalidConfigurationError(f"Geometry scan '{text}' names no path length file")
        search_path = search_path if search_path is not None else SearchPath.from_env()
        path = search_path.find_file(names[0])
        if path is None:
            raise InvalidConfigurationError(
                f"Path length file '{names[0]}' not found in search path "
                f"{search_path.directories or ['.']}"
            )
        logger.info(f"Geometry scan getting max path lengths from '{path}'")
        return ScanSettings(
            method=ScanMethod.FILE,
            path_length_file=str(path),
            path_lengths=PathLengthList.from_yaml(path)
        )


def build_audit_summary(
    flux_type: str,
    beam_name: str,
    flux_files: Sequence[str],
    detector_location: str,
    geometry_file: str,
    world_volume: str,
    top_volume: str,
    fiducial_cut: str,
    geom_scan: str
) -> str:
    """Describe the setup a path length table was computed for."""
    lines = [
        '',
        f"   FluxType:     {flux_type}",
        f"   BeamName:     {beam_name}",
        "   FluxFiles:    ",
    ]
    lines.extend(f"         {name}" for name in flux_files)
    lines.extend([
        f"   DetLocation:  {detector_location}",
        f"   GeometryFile: {geometry_file}",
        f"   WorldVolume:  {world_volume}",
        f"   TopVolume:    {top_volume}",
        f"   FiducialCut:  {fiducial_cut}",
        f"   GeomScan:     {geom_scan}",
    ])
    summary = '\n'.join(lines) + '\n'
    logger.info(f"Max path length audit info: {summary}")
    return summary
