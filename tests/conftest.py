"""Pytest configuration and shared fixtures for NuEventGen tests."""

import h5py
import numpy as np
import pytest
import torch

from NuEventGen.testing import BoxGeometry, BoxVolume, RayTraceEngine
from NuEventGen.utils.path_utils import SearchPath


WORLD = 'volWorld'
DETECTOR = 'volDetEnclosure'


@pytest.fixture
def generator():
    """Seeded random number generator."""
    return torch.Generator().manual_seed(1234)


@pytest.fixture
def box_geometry():
    """World box of half size 1000 around a detector box of half size 10."""
    return BoxGeometry(
        [
            BoxVolume(WORLD, (-1000.0, -1000.0, -1000.0), (1000.0, 1000.0, 1000.0), mass=5.0e6),
            BoxVolume(DETECTOR, (-10.0, -10.0, -10.0), (10.0, 10.0, 10.0), mass=1.0e3),
        ],
        world_volume=WORLD,
        geometry_file='boxes.gdml'
    )


@pytest.fixture
def engine(generator):
    return RayTraceEngine(generator=generator)


@pytest.fixture
def search_path(tmp_path):
    return SearchPath([tmp_path])


def write_histogram_file(path, spectra):
    """Write an HDF5 histogram flux file.
    
    Args:
        path: Output file
        spectra: Mapping of histogram name to (bin_edges, contents)
    """
    with h5py.File(path, 'w') as f:
        for name, (edges, contents) in spectra.items():
            group = f.create_group(name)
            group.create_dataset('bin_edges', data=np.asarray(edges, dtype=float))
            group.create_dataset('contents', data=np.asarray(contents, dtype=float))


def write_ntuple_file(path, n_rows=20, pot=1.0e10, pdgs=(14, 12), simple=True, location=None, weights=None):
    """Write an HDF5 flux ntuple of rays travelling along +z from z = -50."""
    pdg = np.resize(np.asarray(pdgs, dtype=int), n_rows)
    columns = {
        'pdg': pdg,
        'energy': np.linspace(1.0, 3.0, n_rows),
        'x': np.linspace(-1.0, 1.0, n_rows),
        'y': np.zeros(n_rows),
        'z': np.full(n_rows, -50.0),
        'dx': np.zeros(n_rows),
        'dy': np.zeros(n_rows),
        'dz': np.ones(n_rows),
    }
    if simple:
        columns['dist'] = np.full(n_rows, 500.0)
    else:
        columns['vx'] = np.zeros(n_rows)
        columns['vy'] = np.zeros(n_rows)
        columns['vz'] = np.full(n_rows, -650.0)
    if weights is not None:
        columns['weight'] = np.asarray(weights, dtype=float)
    
    with h5py.File(path, 'w') as f:
        f.attrs['pot'] = pot
        node = f.create_group(location) if location else f
        for name, values in columns.items():
            node.create_dataset(name, data=values)


def write_atmo_table(path, bartol=False, energies=(0.5, 1.0, 2.0, 50.0), cos_zenith=(-0.5, 0.5)):
    """Write a whitespace separated atmospheric flux table."""
    lines = ['# atmospheric flux table']
    for energy in energies:
        for cz in cos_zenith:
            flux = 100.0 / energy
            if bartol:
                lines.append(f"{energy} {cz} {flux}")
            else:
                lines.append(f"{cz} {energy} {flux}")
    path.write_text('\n'.join(lines) + '\n')


@pytest.fixture
def histogram_file(tmp_path):
    path = tmp_path / 'hist_flux.h5'
    write_histogram_file(path, {
        'numu': ([0.0, 1.0, 2.0, 3.0], [10.0, 30.0, 20.0]),
        'nue': ([0.0, 1.0, 2.0, 3.0], [1.0, 2.0, 1.0]),
    })
    return path


@pytest.fixture
def simple_ntuple_file(tmp_path):
    path = tmp_path / 'gsimple_run1.h5'
    write_ntuple_file(path)
    return path


@pytest.fixture
def full_ntuple_file(tmp_path):
    path = tmp_path / 'gnumi_run1.h5'
    write_ntuple_file(path, simple=False)
    return path


@pytest.fixture
def fluka_tables(tmp_path):
    paths = []
    for name in ('fluka_nue.dat', 'fluka_numu.dat'):
        path = tmp_path / name
        write_atmo_table(path)
        paths.append(path)
    return paths
