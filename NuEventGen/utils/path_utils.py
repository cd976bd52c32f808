"""Search-path lookup and output path validation."""

import fnmatch
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union


SEARCH_PATH_ENV = 'NUEVGEN_SEARCH_PATH'


class PathValidationError(Exception):
    """Raised when path validation fails."""
    pass


class SearchPath:
    """Ordered list of directories used to resolve relative file names.
    
    Attributes:
        directories: Directories searched, in priority order
    """
    
    def __init__(self, directories: Optional[Iterable[Union[str, Path]]] = None):
        self.directories: List[str] = [str(d) for d in (directories or [])]
    
    @classmethod
    def from_env(cls, variable: str = SEARCH_PATH_ENV) -> 'SearchPath':
        """Build a search path from a colon separated environment variable."""
        value = os.environ.get(variable, '')
        return cls([d for d in value.split(os.pathsep) if d])
    
    def find_file(self, name: str) -> Optional[Path]:
        """Return the first existing match for ``name``, or None.
        
        Absolute names are only checked for existence.
        """
        candidate = Path(name).expanduser()
        if candidate.is_absolute():
            return candidate if candidate.exists() else None
        
        for directory in self.directories:
            path = Path(directory).expanduser() / name
            if path.exists():
                return path.resolve()
        
        # Fall back to the working directory
        if candidate.exists():
            return candidate.resolve()
        return None
    
    def count_pattern_matches(self, pattern: str) -> Dict[str, int]:
        """Count files matching a glob pattern under each search directory.
        
        Wildcards are only honoured in the file-name part of the pattern,
        never in the directory part.
        
        Args:
            pattern: File pattern, e.g. ``flux/gsimple_*.h5``
            
        Returns:
            Mapping of full pattern (directory prepended) to number of matches,
            only for alternatives with at least one match
        """
        prefixes = self.directories or ['']
        counts: Dict[str, int] = {}
        
        for prefix in prefixes:
            full_pattern = str(Path(prefix) / pattern) if prefix else pattern
            directory, basename = os.path.split(full_pattern)
            directory = directory or os.getcwd()
            dir_path = Path(directory).expanduser()
            if not dir_path.is_dir():
                continue
            
            n_found = sum(
                1 for entry in dir_path.iterdir()
                if entry.name == basename or fnmatch.fnmatch(entry.name, basename)
            )
            if n_found > 0:
                counts[full_pattern] = counts.get(full_pattern, 0) + n_found
        
        return counts


def validate_path(path: Union[str, Path], must_exist: bool = False) -> Path:
    """Validate and sanitize a file path.
    
    Args:
        path: Path to validate
        must_exist: If True, path must exist
        
    Returns:
        Validated Path object
        
    Raises:
        PathValidationError: If path is invalid or unsafe
    """
    try:
        path_obj = Path(path).resolve()
    except (ValueError, OSError) as e:
        raise PathValidationError(f"Invalid path: {path}") from e
    
    if '..' in path_obj.parts:
        raise PathValidationError(f"Path contains directory traversal: {path}")
    
    if must_exist and not path_obj.exists():
        raise PathValidationError(f"Path does not exist: {path}")
    
    return path_obj


def validate_output_path(path: Union[str, Path], create_parents: bool = True) -> Path:
    """Validate and prepare an output path.
    
    Args:
        path: Output path to validate
        create_parents: If True, create parent directories
        
    Returns:
        Validated Path object
        
    Raises:
        PathValidationError: If path is invalid
    """
    path_obj = validate_path(path, must_exist=False)
    
    if create_parents:
        try:
            path_obj.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PathValidationError(
                f"Cannot create parent directories for: {path}"
            ) from e
    
    return path_obj
