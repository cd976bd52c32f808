"""Tests for source configuration and its runtime validation."""

import logging

import pytest

from NuEventGen.core.data_models import FluxType
from NuEventGen.utils.config import SourceConfig
from NuEventGen.utils.validation import InvalidConfigurationError, validate_config

from conftest import DETECTOR


class TestSourceConfig:
    def test_normalization(self):
        config = SourceConfig(
            flux_type='simple_flux',
            top_volume=DETECTOR,
            gen_flavors=[14, 12, 14, -14],
            flux_files=['a.h5'],
            beam_center=[0, 0, -5],
        )
        
        assert config.flux_type is FluxType.SIMPLE_FLUX
        assert config.gen_flavors == (-14, 12, 14)
        assert config.flux_files == ('a.h5',)
        assert config.beam_center == (0.0, 0.0, -5.0)
        assert not config.upstream_z_is_set
    
    def test_frozen(self):
        config = SourceConfig.get_default_config()
        
        with pytest.raises(AttributeError):
            config.top_volume = 'other'
    
    @pytest.mark.parametrize("kwargs", [
        {'flux_type': 'laser'},
        {'gen_flavors': ()},
        {'top_volume': ''},
        {'beam_direction': (0.0, 0.0, 0.0)},
        {'beam_center': (0.0, 0.0)},
        {'beam_radius': 0.0},
        {'events_per_spill': -1},
        {'pot_per_spill': -1.0},
        {'atmo_emin': 10.0, 'atmo_emax': 1.0},
        {'atmo_rt': 0.0},
    ])
    def test_invalid(self, kwargs):
        params = {'flux_type': 'mono', 'top_volume': DETECTOR, 'gen_flavors': (14,)}
        params.update(kwargs)
        
        with pytest.raises(InvalidConfigurationError):
            SourceConfig(**params)
    
    def test_upstream_z(self):
        config = SourceConfig(flux_type='ntuple', top_volume=DETECTOR, gen_flavors=(14,),
                              flux_upstream_z=-300.0)
        
        assert config.upstream_z_is_set


class TestSerialization:
    def test_yaml_round_trip(self, tmp_path):
        config = SourceConfig(
            flux_type='atmo_BARTOL',
            top_volume=DETECTOR,
            gen_flavors=(12, 14),
            flux_files=('bartol_nue.dat', 'bartol_numu.dat'),
            events_per_spill=1,
            search_path=(str(tmp_path),),
            random_seed=5,
        )
        path = tmp_path / 'configs' / 'run.yaml'
        config.to_yaml(str(path))
        
        assert SourceConfig.from_yaml(str(path)) == config
    
    def test_unknown_keys_are_ignored(self, caplog):
        with caplog.at_level(logging.WARNING, logger='nuevgen'):
            config = SourceConfig.from_dict({
                'flux_type': 'mono',
                'top_volume': DETECTOR,
                'gen_flavors': [14],
                'colour': 'blue',
            })
        
        assert config.flux_type is FluxType.MONO
        assert 'colour' in caplog.text


class TestValidateConfig:
    def test_missing_absolute_flux_file_warns(self, tmp_path, caplog):
        config = SourceConfig(
            flux_type='ntuple',
            top_volume=DETECTOR,
            gen_flavors=(14,),
            flux_files=(str(tmp_path / 'absent.h5'), str(tmp_path / 'g_*.h5')),
        )
        with caplog.at_level(logging.WARNING, logger='nuevgen'):
            validate_config(config)
        
        assert 'absent.h5' in caplog.text
        assert 'g_*.h5' not in caplog.text
    
    def test_atmospheric_events_per_spill_warns(self, caplog):
        config = SourceConfig(flux_type='atmo_FLUKA', top_volume=DETECTOR, gen_flavors=(14,))
        with caplog.at_level(logging.WARNING, logger='nuevgen'):
            validate_config(config)
        
        assert 'events_per_spill' in caplog.text
