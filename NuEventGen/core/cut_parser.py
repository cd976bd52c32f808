"""Parser for the fiducial cut mini-language.

Grammar::

    [0][m]<shape>:v1,v2,...

``0`` selects the complement of the shape, ``m`` marks coordinates given in
the master frame. Values may be separated by spaces, commas, semicolons or
any kind of bracket. Shapes and their values::

    zcyl:x0,y0,radius,zmin,zmax
    box:xmin,ymin,zmin,xmax,ymax,zmax
    zpoly:nfaces,x0,y0,r_in,phi,zmin,zmax
    sphere:x0,y0,z0,radius
    rock:xmin,ymin,zmin,xmax,ymax,zmax[,rockonly,wallmin,dedx,fudge]

Examples: ``0mbox:0,0,0.25,1,1,8.75`` and ``mzpoly:6,(2,-1),1.75,0,{0.25,8.75}``.
"""

import re
from typing import Dict, List, Optional

from .data_models import CutDescriptor, CutShape
from ..utils.logging import get_logger
from ..utils.validation import InvalidConfigurationError, SpecParseError


logger = get_logger()

VALUE_SEPARATORS = re.compile(r'[ ,;(){}\[\]]+')

# Probe order for the non-rock shapes; the first keyword found wins
SHAPE_PROBE_ORDER = (CutShape.ZCYL, CutShape.BOX, CutShape.ZPOLY, CutShape.SPHERE)

MIN_VALUES: Dict[CutShape, int] = {
    CutShape.ZCYL: 5,
    CutShape.BOX: 6,
    CutShape.ZPOLY: 7,
    CutShape.SPHERE: 4,
    CutShape.ROCK: 6,
}

# Value buffer sizes; rock carries up to four optional values
BUFFER_SIZE = 7
ROCK_BUFFER_SIZE = 10


class CutSpecParser:
    """Turns a fiducial cut string into a :class:`CutDescriptor`."""
    
    @staticmethod
    def normalize(spec: Optional[str]) -> str:
        return (spec or '').strip().lower()
    
    @staticmethod
    def parse_values(text: str, spec: str = '') -> List[float]:
        """Split a value list on the allowed separators.
        
        Raises:
            SpecParseError: If a value is not numeric
        """
        values = []
        for token in VALUE_SEPARATORS.split(text):
            if not token:
                continue
            try:
                values.append(float(token))
            except ValueError as e:
                raise SpecParseError(f"Non-numeric cut value '{token}'", spec) from e
        return values
    
    def parse(self, spec: Optional[str]) -> Optional[CutDescriptor]:
        """Parse a fiducial cut.
        
        Args:
            spec: Cut string; case and surrounding whitespace are ignored
            
        Returns:
            Descriptor, or None when no cut is requested ('' or 'none')
            
        Raises:
            SpecParseError: For malformed cuts, which callers may skip
            InvalidConfigurationError: For a rock cut with fewer than 6 values
        """
        text = self.normalize(spec)
        if text in ('', 'none'):
            return None
        
        parts = text.split(':')
        if len(parts) != 2:
            raise SpecParseError(
                f"No ':' separating shape from values (found {len(parts)} fields)", text
            )
        shape_token, value_text = parts
        
        if 'rock' in text:
            return self._parse_rock(value_text, text)
        
        shape = next((s for s in SHAPE_PROBE_ORDER if s.value in shape_token), None)
        if shape is None:
            raise SpecParseError(f"Unknown cut shape '{shape_token}'", text)
        
        values = self.parse_values(value_text, text)
        n_values = len(values)
        required = MIN_VALUES[shape]
        if n_values < required:
            raise SpecParseError(
                f"{shape.value} cut needs {required} values, not {n_values}", text
            )
        if shape == CutShape.ZPOLY and int(values[0]) < 3:
            raise SpecParseError(f"zpoly cut needs nfaces >= 3, not {int(values[0])}", text)
        
        values += [0.0] * max(0, BUFFER_SIZE - n_values)
        descriptor = CutDescriptor(
            shape=shape,
            values=tuple(values),
            n_values=n_values,
            reversed='0' in shape_token,
            convert_from_master_frame='m' in shape_token,
            spec=text
        )
        logger.info(f"Fiducial cut: {text}")
        return descriptor
    
    def _parse_rock(self, value_text: str, text: str) -> CutDescriptor:
        values = self.parse_values(value_text, text)
        n_values = len(values)
        if n_values < MIN_VALUES[CutShape.ROCK]:
            raise InvalidConfigurationError(
                f"Rock cut needs at least {MIN_VALUES[CutShape.ROCK]} values, "
                f"found {n_values} in '{value_text}' (cut '{text}')"
            )
        values += [0.0] * max(0, ROCK_BUFFER_SIZE - n_values)
        logger.info(f"Fiducial (rock) cut: {text}")
        return CutDescriptor(
            shape=CutShape.ROCK,
            values=tuple(values),
            n_values=n_values,
            spec=text
        )
