"""
Physical and mathematical constants.

Sources:
    - IAU 2012 for astronomical constants
    - IERS conventions for Earth parameters
    - CGPM 1901 for standard gravity
"""

import numpy as np

# ---------------------------------------------------------------------------
# Mathematical constants
# ---------------------------------------------------------------------------
TWO_PI = 2.0 * np.pi
DEG2RAD = np.pi / 180.0

# ---------------------------------------------------------------------------
# Time constants
# ---------------------------------------------------------------------------
MJD_J2000 = 51544.5                     # MJD of J2000.0 epoch (2000-01-01 12:00 TT)
SECONDS_PER_DAY = 86400.0
DAYS_PER_CENTURY = 36525.0

# ---------------------------------------------------------------------------
# Earth parameters
# ---------------------------------------------------------------------------
MU_EARTH = 398600.4418                  # Gravitational parameter [km³/s²]
R_EARTH = 6378.137                      # Equatorial radius [km]
F_EARTH = 1.0 / 298.257223563           # WGS84 flattening
OMEGA_EARTH = 7.2921150e-5              # Earth rotation rate [rad/s]

# ---------------------------------------------------------------------------
# Propulsion
# ---------------------------------------------------------------------------
G0 = 9.80665                            # Standard gravitational acceleration [m/s²]
MIN_ISP_S = 1e-3                        # Smallest accepted specific impulse [s]

# ---------------------------------------------------------------------------
# Numerical
# ---------------------------------------------------------------------------
KEPLER_TOLERANCE = 1e-14                # Eccentric longitude convergence [rad]
KEPLER_MAX_ITER = 50
