"""Resolution of flux input names against the search path."""

import os
from typing import List, Optional, Sequence

from ..core.data_models import FluxType
from ..utils.logging import get_logger
from ..utils.path_utils import SearchPath
from ..utils.validation import InvalidConfigurationError


logger = get_logger()


def _has_wildcard(name: str) -> bool:
    return '*' in name or '?' in name


def resolve_flux_files(
    patterns: Sequence[str],
    flux_type: FluxType,
    search_path: Optional[SearchPath] = None
) -> List[str]:
    """Resolve configured flux file names and patterns.
    
    A single wildcard pattern is tried in every search directory. The
    directory with the most matches wins and the pattern itself, not its
    expansion, is kept for the flux driver to glob. Other names are looked
    up one by one.
    
    Args:
        patterns: Configured flux file names or glob patterns
        flux_type: Source type the files are for
        search_path: Directories to search
        
    Returns:
        Deduplicated, sorted list of resolved names
        
    Raises:
        InvalidConfigurationError: If an ntuple pattern matches no file
    """
    search_path = search_path if search_path is not None else SearchPath.from_env()
    resolved = set()
    
    if len(patterns) == 1 and _has_wildcard(patterns[0]):
        pattern = patterns[0]
        counts = search_path.count_pattern_matches(pattern)
        if counts:
            best = max(counts, key=lambda key: counts[key])
            logger.info(f"Flux pattern '{pattern}' resolved to '{best}' ({counts[best]} files)")
            resolved.add(best)
        elif flux_type.is_ntuple:
            raise InvalidConfigurationError(
                f"No flux file found for pattern '{pattern}' in search path "
                f"{search_path.directories or ['.']}"
            )
        else:
            logger.warning(f"No flux file found for pattern '{pattern}'")
        return sorted(resolved)
    
    for name in patterns:
        found = search_path.find_file(name)
        if found is not None:
            resolved.add(str(found))
        elif os.path.isabs(name):
            # keep absolute names so the driver reports the missing file itself
            resolved.add(name)
        else:
            logger.warning(f"Flux file '{name}' not found in search path, dropped")
    
    if not resolved and flux_type.is_ntuple and patterns:
        raise InvalidConfigurationError(f"None of the flux files {list(patterns)} could be found")
    
    return sorted(resolved)
