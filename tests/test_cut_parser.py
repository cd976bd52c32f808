"""Tests for the fiducial cut mini-language parser."""

import pytest

from NuEventGen.core.cut_parser import CutSpecParser
from NuEventGen.core.data_models import CutShape
from NuEventGen.utils.validation import InvalidConfigurationError, SpecParseError


@pytest.fixture
def parser():
    return CutSpecParser()


class TestNoCut:
    """Strings that request no selector."""
    
    @pytest.mark.parametrize("spec", ["", "none", " NONE ", "None", "\tnone\n", None])
    def test_no_op(self, parser, spec):
        assert parser.parse(spec) is None


class TestShapes:
    """Shape keyword, flags and value parsing."""
    
    def test_cylinder_with_brackets(self, parser):
        cut = parser.parse("zcyl:(3,4),5.5,-2,10")
        
        assert cut.shape == CutShape.ZCYL
        assert cut.values[:5] == (3.0, 4.0, 5.5, -2.0, 10.0)
        assert cut.n_values == 5
        assert not cut.reversed
        assert not cut.convert_from_master_frame
    
    def test_reversed_master_box(self, parser):
        cut = parser.parse("0mbox:0,0,0.25,1,1,8.75")
        
        assert cut.shape == CutShape.BOX
        assert cut.values[:6] == (0.0, 0.0, 0.25, 1.0, 1.0, 8.75)
        assert cut.reversed
        assert cut.convert_from_master_frame
    
    def test_polygon_mixed_separators(self, parser):
        cut = parser.parse("mzpoly:6,(2,-1),1.75,0,{0.25,8.75}")
        
        assert cut.shape == CutShape.ZPOLY
        assert cut.values == (6.0, 2.0, -1.0, 1.75, 0.0, 0.25, 8.75)
        assert cut.convert_from_master_frame
        assert not cut.reversed
    
    def test_sphere_semicolons_and_case(self, parser):
        cut = parser.parse("  SPHERE:1;2;3;[4]  ")
        
        assert cut.shape == CutShape.SPHERE
        assert cut.values[:4] == (1.0, 2.0, 3.0, 4.0)
        assert cut.spec == "sphere:1;2;3;[4]"
    
    def test_values_padded(self, parser):
        cut = parser.parse("sphere:0,0,0,1")
        
        assert cut.n_values == 4
        assert len(cut.values) == 7
        assert cut.values[4:] == (0.0, 0.0, 0.0)
    
    def test_probe_order_resolves_ambiguity(self, parser):
        cut = parser.parse("zcylbox:0,0,1,0,1,0")
        
        assert cut.shape == CutShape.ZCYL


class TestMalformed:
    """Non-fatal parse errors."""
    
    @pytest.mark.parametrize("spec", [
        "zcyl:0,0,1,2",
        "box:0,0,0,1,1",
        "zpoly:6,0,0,1,0,1",
        "sphere:1,2,3",
    ])
    def test_too_few_values(self, parser, spec):
        with pytest.raises(SpecParseError, match="needs"):
            parser.parse(spec)
    
    def test_polygon_needs_three_faces(self, parser):
        with pytest.raises(SpecParseError, match="nfaces"):
            parser.parse("zpoly:2,0,0,1,0,0,1")
    
    def test_unknown_shape(self, parser):
        with pytest.raises(SpecParseError, match="Unknown cut shape"):
            parser.parse("cone:1,2,3,4")
    
    def test_missing_colon(self, parser):
        with pytest.raises(SpecParseError, match="':'"):
            parser.parse("box 0,0,0,1,1,1")
    
    def test_non_numeric_value(self, parser):
        with pytest.raises(SpecParseError) as excinfo:
            parser.parse("sphere:1,2,three,4")
        
        assert excinfo.value.spec == "sphere:1,2,three,4"
    
    def test_parse_error_is_not_fatal_config_error(self, parser):
        with pytest.raises(SpecParseError) as excinfo:
            parser.parse("sphere:1")
        
        assert not isinstance(excinfo.value, InvalidConfigurationError)


class TestRock:
    """Rock shell cuts."""
    
    def test_six_values(self, parser):
        cut = parser.parse("rock:0,0,0,10,10,10")
        
        assert cut.shape == CutShape.ROCK
        assert cut.n_values == 6
        assert cut.values[:6] == (0.0, 0.0, 0.0, 10.0, 10.0, 10.0)
        assert len(cut.values) == 10
    
    def test_rock_keyword_wins_over_box(self, parser):
        cut = parser.parse("ROCKBOX:(-1,-1,-1),(1,1,1),0,500")
        
        assert cut.shape == CutShape.ROCK
        assert cut.n_values == 8
        assert cut.values[6:8] == (0.0, 500.0)
    
    def test_too_few_values_is_fatal(self, parser):
        with pytest.raises(InvalidConfigurationError, match="at least 6"):
            parser.parse("rock:0,0,0,10")
