"""
Default constants for lepton_mc.

All defaults live here. Use explicit imports:
    from lepton_mc.config.defaults import DEFAULT_ACCURACY, STEP_MIN

Units: GeV, m, kg/m^3, kg/m^2, T.
"""

from lepton_mc.config.enums import Event

# =============================================================================
# Step size control
# =============================================================================

# Maximum fractional energy loss per step
DEFAULT_ACCURACY = 1E-02

# Longest path of a transport call, and step ceiling when nothing else
# bounds the step (m)
DEFAULT_DOMAIN_EXTENT = 1E+09

# Resolution of boundary location, also the step taken when a geometry
# proposal is too small to move the particle (m)
STEP_MIN = 1E-07

# Maximum bending angle per step in a magnetic field (rad)
MAGNETIC_ANGLE_MAX = 1E-01

# =============================================================================
# Physics tables
# =============================================================================

# Fractional energy transfer above which losses are sampled as discrete
DEFAULT_CUTOFF = 5E-02

# Conversion from GeV / (T m) to the bending curvature of a unit charge
LARMOR_FACTOR = 0.299792458

# =============================================================================
# Events
# =============================================================================

# Order in which simultaneous conditions are reported
DEFAULT_EVENT_PRIORITY = (
    Event.MEDIUM,
    Event.LIMIT_KINETIC,
    Event.LIMIT_DISTANCE,
    Event.LIMIT_GRAMMAGE,
    Event.LIMIT_TIME,
    Event.DECAY,
    Event.WEIGHT,
)
