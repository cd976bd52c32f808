"""Physical constants and numeric defaults for event generation."""

import math

# Fundamental constants
NUCLEON_MASS_KG = 1.67262158e-27  # Proton mass in kg
PI = math.pi

# Histogram flux normalization
# Histograms are neutrinos/cm^2/1e20 POT/energy bin, rates use a 1e-38 cm^2 scale
REFERENCE_CROSS_SECTION_CM2 = 1.0e-38
HISTOGRAM_POT_NORMALIZATION = 1.0e-20

# Conversion factors
M2_TO_CM2 = 1.0e4  # Atmospheric tables are per m^2, generation is per cm^2
M_TO_KM = 1.0e-3

# Rock shell defaults (geometry in cm)
DEFAULT_ROCK_WALL_MIN_CM = 800.0  # 8 meter buffer
DEFAULT_ROCK_DEDX_GEV_PER_CM = 2.5 * 1.7e-3  # rho=2.5, rock-like loss
DEFAULT_ROCK_DEDX_FUDGE = 1.05
ROCK_BUBBLE_RADIUS = 1.0e-10

# Flux driver sentinels
UNSET_UPSTREAM_Z = -2.0e30
UPSTREAM_Z_LIMIT = 1.0e30
HIST_FLUX_UNAVAILABLE = -999.0

# Geometry scanning
MIN_SCANNER_COUNT = 10  # Counts at or below this fall back to scanner defaults
DEFAULT_SCANNER_N_POINTS = 200
DEFAULT_SCANNER_N_RAYS = 200
DEFAULT_SCANNER_N_PARTICLES = 10000

# Numerical limits
MIN_PROBABILITY_SCALE = 1.0e-100

# Vacuum oscillation phase constant (dm2 in eV^2, L in km, E in GeV)
OSCILLATION_PHASE_CONSTANT = 1.267

# PDG codes of neutrino species
PDG_NUE = 12
PDG_NUEBAR = -12
PDG_NUMU = 14
PDG_NUMUBAR = -14
PDG_NUTAU = 16
PDG_NUTAUBAR = -16
PDG_STERILE = 0

NEUTRINO_FLAVORS = (
    PDG_NUE, PDG_NUMU, PDG_NUTAU,
    PDG_NUEBAR, PDG_NUMUBAR, PDG_NUTAUBAR,
)

# Histogram names per flavor in histogram flux files
FLAVOR_HISTOGRAM_NAMES = {
    PDG_NUE: 'nue',
    PDG_NUEBAR: 'nuebar',
    PDG_NUMU: 'numu',
    PDG_NUMUBAR: 'numubar',
    PDG_NUTAU: 'nutau',
    PDG_NUTAUBAR: 'nutaubar',
}
