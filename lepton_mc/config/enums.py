"""
Enumerations used to configure a transport context.

Import Policy:
    from lepton_mc.config.enums import Event, Scheme, DecayMode, RangePolicy
"""

from enum import Enum, IntFlag


class Scheme(Enum):
    """Energy loss and scattering scheme of the stepper.

    Options:
        CSDA: Deterministic continuous slowing down, straight steps
        HYBRID: Continuous soft losses, sampled hard losses above the table
            cutoff, optional transverse scattering (see Context.longitudinal)
        DETAILED: Like HYBRID, with straggling of the soft losses and
            transverse scattering always applied
    """
    CSDA = "csda"
    HYBRID = "hybrid"
    DETAILED = "detailed"

    @property
    def stochastic(self) -> bool:
        return self is not Scheme.CSDA


class DecayMode(Enum):
    """How decays of unstable leptons are accounted for.

    Options:
        DISABLED: The particle is treated as stable
        WEIGHT: The weight is multiplied by the survival probability
        PROCESS: The decay vertex is sampled and stops the transport
            (forward mode only)
    """
    DISABLED = "disabled"
    WEIGHT = "weight"
    PROCESS = "process"


class RangePolicy(Enum):
    """Behaviour for kinetic energies above the tabulated range.

    Options:
        CLAMP: Extrapolate from the last table node (default)
        RAISE: Abort the transport with a ValueOutOfRangeError
    """
    CLAMP = "clamp"
    RAISE = "raise"


class Event(IntFlag):
    """Transport events.

    Used both as a bitmask of the conditions a caller wants to stop on
    (Context.event) and as the tag returned by a transport call.
    """
    NONE = 0
    MEDIUM = 1
    LIMIT_KINETIC = 2
    LIMIT_DISTANCE = 4
    LIMIT_GRAMMAGE = 8
    LIMIT_TIME = 16
    DECAY = 32
    WEIGHT = 64

    LIMIT = LIMIT_KINETIC | LIMIT_DISTANCE | LIMIT_GRAMMAGE | LIMIT_TIME
