"""Tests for volume selectors and their installation on the geometry."""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from NuEventGen.core.cut_parser import CutSpecParser
from NuEventGen.core.volume_selector import (
    BoxSelector,
    CylinderSelector,
    PolygonSelector,
    RockShellSelector,
    SphereSelector,
    VolumeSelectorFactory,
)
from NuEventGen.testing import BoxGeometry, BoxVolume
from NuEventGen.utils.validation import InvalidConfigurationError

from conftest import DETECTOR, WORLD


def build(spec, geometry):
    descriptor = CutSpecParser().parse(spec)
    return VolumeSelectorFactory().build(descriptor, geometry)


def random_points(n=300, scale=4.0, seed=7):
    rng = np.random.default_rng(seed)
    return rng.uniform(-scale, scale, size=(n, 3))


class TestAnalyticMembership:
    """Selector decisions match independent inclusion tests."""
    
    @pytest.mark.parametrize("flag", ["", "0"])
    def test_cylinder(self, box_geometry, flag):
        selector = build(f"{flag}zcyl:0.5,-0.5,2,-1,3", box_geometry)
        
        assert isinstance(selector, CylinderSelector)
        for p in random_points():
            inside = (p[0] - 0.5) ** 2 + (p[1] + 0.5) ** 2 <= 4 and -1 <= p[2] <= 3
            assert selector.contains(p) == (inside != bool(flag))
    
    @pytest.mark.parametrize("flag", ["", "0"])
    def test_box(self, box_geometry, flag):
        selector = build(f"{flag}box:-1,-2,-3,1,2,3", box_geometry)
        
        assert isinstance(selector, BoxSelector)
        for p in random_points():
            inside = abs(p[0]) <= 1 and abs(p[1]) <= 2 and abs(p[2]) <= 3
            assert selector.contains(p) == (inside != bool(flag))
    
    @pytest.mark.parametrize("flag", ["", "0"])
    def test_sphere(self, box_geometry, flag):
        selector = build(f"{flag}sphere:1,0,-1,2.5", box_geometry)
        
        assert isinstance(selector, SphereSelector)
        for p in random_points():
            inside = (p[0] - 1) ** 2 + p[1] ** 2 + (p[2] + 1) ** 2 <= 2.5 ** 2
            assert selector.contains(p) == (inside != bool(flag))
    
    @pytest.mark.parametrize("flag", ["", "0"])
    def test_square_polygon(self, box_geometry, flag):
        selector = build(f"{flag}zpoly:4,0,0,2,0,-3,3", box_geometry)
        
        assert isinstance(selector, PolygonSelector)
        for p in random_points():
            inside = abs(p[0]) <= 2 and abs(p[1]) <= 2 and abs(p[2]) <= 3
            assert selector.contains(p) == (inside != bool(flag))
    
    def test_rotated_square_polygon(self, box_geometry):
        selector = build("zpoly:4,0,0,1,45,-1,1", box_geometry)
        
        assert not selector.contains((0.9, 0.9, 0.0))
        assert selector.contains((1.2, 0.0, 0.0))
        assert not selector.contains((1.5, 0.0, 0.0))
    
    def test_hexagon(self, box_geometry):
        selector = build("zpoly:6,(2,-1),1.75,0,{0.25,8.75}", box_geometry)
        
        assert selector.contains((2 + 1.7, -1.0, 0.5))
        assert not selector.contains((2 + 1.8, -1.0, 0.5))
        assert not selector.contains((2.0, -1.0, 9.0))
        assert_allclose(np.degrees(np.arctan2(*selector.face_normals()[1][::-1])), 60.0)


class TestMasterFrame:
    """Coordinates given in the master frame are moved to the top volume frame."""
    
    @pytest.fixture
    def shifted_geometry(self):
        return BoxGeometry(
            [
                BoxVolume(WORLD, (-100, -100, -100), (100, 100, 100)),
                BoxVolume(DETECTOR, (0, -5, -5), (20, 5, 5)),
            ],
            world_volume=WORLD,
            top_offset=(10.0, 0.0, 0.0)
        )
    
    def test_box_converted(self, shifted_geometry):
        selector = build("mbox:10,0,0,11,1,1", shifted_geometry)
        
        assert selector.convert_from_master_frame
        assert_allclose(selector.xyz_min, [0, 0, 0])
        assert_allclose(selector.xyz_max, [1, 1, 1])
        assert selector.contains((0.5, 0.5, 0.5))
    
    def test_without_flag_unchanged(self, shifted_geometry):
        selector = build("box:10,0,0,11,1,1", shifted_geometry)
        
        assert not selector.convert_from_master_frame
        assert_allclose(selector.xyz_min, [10, 0, 0])
    
    def test_sphere_and_cylinder_converted(self, shifted_geometry):
        sphere = build("msphere:10,0,0,1", shifted_geometry)
        cylinder = build("mzcyl:12,1,1,-2,2", shifted_geometry)
        
        assert_allclose(sphere.center, [0, 0, 0])
        assert (cylinder.x0, cylinder.y0) == pytest.approx((2.0, 1.0))
        assert (cylinder.zmin, cylinder.zmax) == pytest.approx((-2.0, 2.0))


class TestInstallation:
    def test_selector_installed(self, box_geometry):
        selector = build("sphere:0,0,0,1", box_geometry)
        
        assert box_geometry.selector is selector
        assert selector.remove_entries
        assert box_geometry.accepts(np.zeros(3))
        assert not box_geometry.accepts(np.array([2.0, 0.0, 0.0]))


class TestRockShell:
    """Rock shell cuts."""
    
    def test_defaults_from_six_values(self, box_geometry):
        box_geometry.set_top_volume_name(DETECTOR)
        selector = build("rock:0,0,0,10,10,10", box_geometry)
        
        assert isinstance(selector, RockShellSelector)
        assert_allclose(selector.rock_box_min, [0, 0, 0])
        assert_allclose(selector.rock_box_max, [10, 10, 10])
        assert selector.minimum_wall == 800.0
        assert selector.de_dx == pytest.approx(0.00425 / 1.05)
        assert selector.rock_only
        assert isinstance(selector.interior, BoxSelector)
        assert_allclose(selector.interior.xyz_min, [0, 0, 0])
        assert_allclose(selector.interior.xyz_max, [10, 10, 10])
        assert box_geometry.top_volume_name == WORLD
        assert box_geometry.selector is selector
    
    def test_optional_values(self, box_geometry):
        selector = build("rock:0,0,0,10,10,10,0,500,0.002,2.0", box_geometry)
        
        assert not selector.rock_only
        assert selector.minimum_wall == 500.0
        assert selector.de_dx == pytest.approx(0.001)
        assert isinstance(selector.interior, SphereSelector)
        assert selector.interior.radius == pytest.approx(1.0e-10)
    
    def test_membership(self, box_geometry):
        selector = build("rock:0,0,0,10,10,10", box_geometry)
        
        assert not selector.contains((5, 5, 5))
        assert selector.contains((-100, 5, 5))
        assert not selector.contains((-900, 5, 5))
        # a 10 GeV muon reaches further than the minimum wall
        assert selector.contains((-900, 5, 5), energy=10.0)
    
    def test_non_rock_only_keeps_interior(self, box_geometry):
        selector = build("rock:0,0,0,10,10,10,0", box_geometry)
        
        assert selector.contains((5, 5, 5))
    
    def test_zero_fudge_is_fatal(self, box_geometry):
        with pytest.raises(InvalidConfigurationError, match="fudge"):
            build("rock:0,0,0,10,10,10,1,800,0.004,0", box_geometry)
    
    def test_master_frame_conversion_is_a_no_op(self, box_geometry):
        selector = build("rock:0,0,0,10,10,10", box_geometry)
        selector.convert_master_to_top(lambda point: point + 100.0)
        
        assert_allclose(selector.rock_box_min, [0, 0, 0])
        assert_allclose(selector.rock_box_max, [10, 10, 10])
        assert_allclose(selector.interior.xyz_min, [0, 0, 0])
