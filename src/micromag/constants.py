"""Physical constants: single source of truth for the entire codebase.

All values sourced from ``scipy.constants`` (CODATA 2018) except the
gyromagnetic ratio, which uses the conventional micromagnetic value.
Import from here instead of defining local constants.
"""

import scipy.constants as _sc

# Electromagnetic
e = _sc.e                     # Elementary charge [C]
mu_0 = _sc.mu_0               # Vacuum permeability [H/m]
mu_B = _sc.physical_constants["Bohr magneton"][0]  # Bohr magneton [J/T]

# Magnetization dynamics
gamma_0 = 1.7595e11           # Gyromagnetic ratio [rad/(T*s)]

# Engine limits
MAX_REGIONS = 256             # Size of every region-indexed parameter table
