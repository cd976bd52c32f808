"""Error taxonomy and runtime validation of source configurations."""

from pathlib import Path

from .logging import get_logger


logger = get_logger()


class ValidationError(Exception):
    """Base exception for validation errors."""
    pass


class InvalidConfigurationError(ValidationError):
    """Raised when a configuration problem makes the run invalid.
    
    Always fatal: selectors, scans and flux drivers must be exactly as
    configured, so initialization is aborted rather than defaulted.
    """
    pass


class SpecParseError(ValidationError):
    """Raised when a cut or scan spec string cannot be interpreted.
    
    Non-fatal: the orchestrator logs it and skips the refinement.
    """
    
    def __init__(self, message: str, spec: str = ''):
        super().__init__(message)
        self.spec = spec


def validate_config(config) -> None:
    """Runtime checks on a SourceConfig that cannot be done at construction.
    
    Missing input files are only warned about here; whether they are fatal
    depends on the flux type and is decided during file resolution.
    
    Args:
        config: SourceConfig instance
        
    Raises:
        InvalidConfigurationError: If configuration is invalid
    """
    try:
        for pattern in config.flux_files:
            if any(ch in pattern for ch in '*?'):
                continue
            path = Path(pattern)
            if path.is_absolute() and not path.exists():
                logger.warning(f"Flux file not found: {pattern}")
        
        if config.spline_file and Path(config.spline_file).is_absolute():
            if not Path(config.spline_file).exists():
                logger.warning(f"Spline file not found: {config.spline_file}")
        
        if config.flux_type.is_atmospheric and config.events_per_spill != 1:
            logger.warning(
                f"Atmospheric flux configured with events_per_spill="
                f"{config.events_per_spill}; initialization will refuse it"
            )
        
        logger.debug("Configuration validation passed")
        
    except Exception as e:
        if isinstance(e, InvalidConfigurationError):
            raise
        raise InvalidConfigurationError(f"Configuration validation failed: {str(e)}")
