"""Utility modules for configuration, logging, paths and validation."""

from .config import SourceConfig
from .logging import setup_logger, get_logger
from .path_utils import SearchPath, PathValidationError
from .validation import (
    ValidationError,
    InvalidConfigurationError,
    SpecParseError,
    validate_config
)

__all__ = [
    'SourceConfig',
    'setup_logger',
    'get_logger',
    'SearchPath',
    'PathValidationError',
    'ValidationError',
    'InvalidConfigurationError',
    'SpecParseError',
    'validate_config'
]
