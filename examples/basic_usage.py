"""
Basic usage example for flux driven event generation.

This example demonstrates how to:
1. Describe a detector geometry and a generator engine
2. Configure a monoenergetic and a histogram flux
3. Run spills and read the exposure summary
4. Save and reload a configuration
"""

import numpy as np
import h5py
from pathlib import Path

from NuEventGen import EventGenerationHelper, SourceConfig
from NuEventGen.testing import BoxGeometry, BoxVolume, RayTraceEngine
from NuEventGen.utils import SearchPath, setup_logger


def create_detector():
    """Create a 3 m detector box inside a rock-sized world.
    
    Returns:
        BoxGeometry with world volume 'volWorld'
    """
    return BoxGeometry(
        [
            BoxVolume('volWorld', (-5000.0, -5000.0, -5000.0), (5000.0, 5000.0, 5000.0), mass=2.6e12),
            BoxVolume('volDetEnclosure', (-150.0, -150.0, -150.0), (150.0, 150.0, 150.0), mass=2.7e4),
            BoxVolume('volTPC', (-100.0, -100.0, -100.0), (100.0, 100.0, 100.0), mass=1.1e4),
        ],
        world_volume='volWorld',
        geometry_file='example_detector.gdml'
    )


def create_histogram_flux(output_dir: str = './flux_data') -> str:
    """Write a two-flavor histogram flux file.
    
    Args:
        output_dir: Directory to save the flux file
    """
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)
    
    edges = np.linspace(0.0, 5.0, 21)
    centers = 0.5 * (edges[:-1] + edges[1:])
    numu = 5.0e11 * centers * np.exp(-centers)
    
    flux_path = output_path / 'hist_flux.h5'
    with h5py.File(flux_path, 'w') as f:
        for name, contents in (('numu', numu), ('nue', 0.01 * numu)):
            group = f.create_group(name)
            group.create_dataset('bin_edges', data=edges)
            group.create_dataset('contents', data=contents)
    
    print(f"Histogram flux created: {flux_path}")
    return str(flux_path)


def example_mono_beam():
    """Monoenergetic beam with a fiducial cylinder."""
    print("\n=== Example 1: Monoenergetic beam ===\n")
    
    config = SourceConfig(
        flux_type='mono',
        top_volume='volDetEnclosure',
        gen_flavors=(14,),
        mono_energy=3.0,
        beam_center=(0.0, 0.0, -1000.0),
        fiducial_cut='zcyl:0,0,80,-100,100',
        mixer_config='TwoFlavorOscillation 14 16 2.5e-3 1.0',
        mixer_baseline=1.3e6,
        random_seed=12345,
    )
    
    engine = RayTraceEngine(max_attempts=10)
    helper = EventGenerationHelper(config, create_detector(), engine)
    helper.initialize()
    
    n_events = 0
    flavors = {}
    for _ in range(200):
        if helper.sample():
            n_events += 1
            pdg = helper.last_candidate.probe_pdg
            flavors[pdg] = flavors.get(pdg, 0) + 1
        helper.stop()
    
    print(f"Generated {n_events} events, flavors after mixing: {flavors}")
    print(f"Summary: {helper.finalize()}")
    return helper


def example_histogram_beam():
    """Histogram beam with Poisson spill targets and an audit table."""
    print("\n=== Example 2: Histogram beam ===\n")
    
    flux_path = create_histogram_flux()
    config = SourceConfig(
        flux_type='histogram',
        top_volume='volDetEnclosure',
        gen_flavors=(12, 14),
        flux_files=(Path(flux_path).name,),
        beam_center=(0.0, 0.0, -1000.0),
        beam_radius=150.0,
        pot_per_spill=5.0e13,
        geom_scan='box 500 500 1.1 1',
        output_path='./results/',
        random_seed=2024,
    )
    
    engine = RayTraceEngine(max_attempts=10)
    helper = EventGenerationHelper(
        config, create_detector(), engine,
        search_path=SearchPath([Path(flux_path).parent])
    )
    helper.initialize()
    
    print(f"Total histogram flux: {helper.total_hist_flux():.4e}")
    print(f"Mean events per spill: {helper.accountant.mean_events_per_spill:.4g}")
    
    n_spills = 0
    n_events = 0
    while n_spills < 10:
        if helper.stop():
            n_spills += 1
            continue
        if helper.sample():
            n_events += 1
    
    print(f"{n_events} events in {n_spills} spills, {helper.pot_used():.3e} POT")
    print(f"Summary: {helper.finalize()}")
    return helper


def example_configuration():
    """Example of configuration management."""
    print("\n=== Example 3: Configuration ===\n")
    
    config = SourceConfig(
        flux_type='simple_flux',
        top_volume='volDetEnclosure',
        gen_flavors=(14, -14, 12),
        flux_files=('gsimple_near_*.h5',),
        detector_location='near',
        pot_per_spill=4.0e13,
        fiducial_cut='mzpoly:6,(0,0),120,0,{-140,140}',
        geom_scan='flux 20000 1.2',
    )
    
    print("Configuration created:")
    print(f"  Flux type: {config.flux_type.value}")
    print(f"  Flavors: {config.gen_flavors}")
    print(f"  POT per spill: {config.pot_per_spill}")
    print(f"  Fiducial cut: {config.fiducial_cut}")
    
    config_path = './flux_data/config.yaml'
    config.to_yaml(config_path)
    print(f"\nConfiguration saved to: {config_path}")
    
    loaded_config = SourceConfig.from_yaml(config_path)
    print(f"Configuration loaded from YAML, identical: {loaded_config == config}")
    
    return config


if __name__ == '__main__':
    print("Flux Driven Event Generation - Basic Usage Examples")
    print("=" * 60)
    
    setup_logger(level=20)
    
    try:
        example_mono_beam()
        example_histogram_beam()
        example_configuration()
        
        print("\n" + "=" * 60)
        print("Examples completed successfully!")
    except KeyboardInterrupt:
        print("\n\nExamples interrupted by user")
    except Exception as e:
        print(f"\n\nError running examples: {e}")
        import traceback
        traceback.print_exc()
