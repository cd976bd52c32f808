"""Generate small example flux inputs for every flux type."""

import numpy as np
import h5py
from pathlib import Path
import sys

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from NuEventGen.physics.constants import FLAVOR_HISTOGRAM_NAMES


def generate_histogram_flux(output_path: str, flavors=(12, 14, -14)) -> str:
    """Write a histogram flux file with one falling spectrum per flavor.
    
    Contents are neutrinos/cm^2/1e20 POT per 0.25 GeV bin.
    """
    print("Generating histogram flux...")
    
    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    
    bin_edges = np.linspace(0.0, 10.0, 41)
    centers = 0.5 * (bin_edges[:-1] + bin_edges[1:])
    peak = 1.0e11 * centers ** 2 * np.exp(-centers / 0.8)
    scale = {12: 0.01, 14: 1.0, -14: 0.05, -12: 0.002, 16: 0.0, -16: 0.0}
    
    with h5py.File(output_file, 'w') as f:
        for pdg in flavors:
            group = f.create_group(FLAVOR_HISTOGRAM_NAMES[pdg])
            group.create_dataset('bin_edges', data=bin_edges)
            group.create_dataset('contents', data=peak * scale[pdg])
    
    print(f"✓ Histogram flux generated: {output_file}")
    return str(output_file)


def generate_ntuple_flux(output_path: str, n_rows: int = 5000, pot: float = 1.0e18,
                         simple: bool = True, location: str = 'near', seed: int = 1) -> str:
    """Write a beam ntuple with rays crossing the z = -50 plane toward +z.
    
    Simple ntuples carry the decay-to-ray distance (``dist``), full ones the
    decay vertex (``vx``, ``vy``, ``vz``).
    """
    print(f"Generating {'simple' if simple else 'full'} flux ntuple...")
    
    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    rng = np.random.default_rng(seed)
    
    pdg = rng.choice([14, -14, 12], size=n_rows, p=[0.93, 0.06, 0.01])
    energy = rng.gamma(2.0, 1.2, size=n_rows)
    decay_z = rng.uniform(-700.0, -60.0, size=n_rows)
    x = rng.normal(0.0, 2.0, size=n_rows)
    y = rng.normal(0.0, 2.0, size=n_rows)
    z = np.full(n_rows, -50.0)
    
    # Direction from a decay on the beam axis to the ray start
    direction = np.stack([x, y, z - decay_z], axis=1)
    direction /= np.linalg.norm(direction, axis=1, keepdims=True)
    
    with h5py.File(output_file, 'w') as f:
        f.attrs['pot'] = pot
        node = f.create_group(location) if location else f
        node.create_dataset('pdg', data=pdg)
        node.create_dataset('energy', data=energy)
        node.create_dataset('x', data=x)
        node.create_dataset('y', data=y)
        node.create_dataset('z', data=z)
        node.create_dataset('dx', data=direction[:, 0])
        node.create_dataset('dy', data=direction[:, 1])
        node.create_dataset('dz', data=direction[:, 2])
        node.create_dataset('weight', data=rng.uniform(0.5, 1.0, size=n_rows))
        if simple:
            node.create_dataset('dist', data=np.sqrt(x ** 2 + y ** 2 + (z - decay_z) ** 2))
        else:
            node.create_dataset('vx', data=np.zeros(n_rows))
            node.create_dataset('vy', data=np.zeros(n_rows))
            node.create_dataset('vz', data=decay_z)
    
    print(f"✓ Flux ntuple generated: {output_file} ({pot:.2e} POT)")
    return str(output_file)


def generate_atmospheric_tables(output_dir: str, bartol: bool = False) -> list:
    """Write nue and numu atmospheric flux tables on an (E, cos zenith) grid."""
    print(f"Generating {'BARTOL' if bartol else 'FLUKA'} atmospheric tables...")
    
    output = Path(output_dir)
    output.mkdir(parents=True, exist_ok=True)
    energies = np.logspace(-1, 2, 31)
    cos_zenith = np.linspace(-0.95, 0.95, 20)
    prefix = 'bartol' if bartol else 'fluka'
    
    paths = []
    for name, norm in (('nue', 0.5), ('numu', 1.0)):
        path = output / f"{prefix}_{name}.dat"
        with open(path, 'w') as f:
            f.write(f"# {prefix} {name} flux [1/(m^2 s sr GeV)]\n")
            for energy in energies:
                for cz in cos_zenith:
                    flux = norm * 1.0e3 * energy ** -2.7 * (1.0 + 0.5 * abs(cz))
                    if bartol:
                        f.write(f"{energy:.5e} {cz:.4f} {flux:.5e}\n")
                    else:
                        f.write(f"{cz:.4f} {energy:.5e} {flux:.5e}\n")
        paths.append(str(path))
    
    print(f"✓ Atmospheric tables generated in {output}")
    return paths


def main():
    """Generate all example flux inputs."""
    print("=" * 60)
    print("Generating Example Flux Files")
    print("=" * 60)
    
    output_dir = Path('flux_data')
    hist_path = generate_histogram_flux(str(output_dir / 'hist_flux.h5'))
    simple_paths = [
        generate_ntuple_flux(str(output_dir / f"gsimple_near_{run:03d}.h5"), seed=run)
        for run in range(1, 4)
    ]
    full_path = generate_ntuple_flux(str(output_dir / 'gnumi_near_001.h5'), simple=False)
    fluka_paths = generate_atmospheric_tables(str(output_dir))
    bartol_paths = generate_atmospheric_tables(str(output_dir), bartol=True)
    
    print("\n" + "=" * 60)
    print("Flux Generation Complete")
    print("=" * 60)
    print(f"\nHistogram flux: {hist_path}")
    print(f"Simple ntuples: {len(simple_paths)} files")
    print(f"Full ntuple: {full_path}")
    print(f"Atmospheric tables: {fluka_paths + bartol_paths}")
    print(f"\nAdd '{output_dir.resolve()}' to NUEVGEN_SEARCH_PATH to use them.")


if __name__ == '__main__':
    main()
