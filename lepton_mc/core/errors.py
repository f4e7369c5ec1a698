"""
Typed errors raised by the transport engine.

Every error carries a ReturnCode. Before an error propagates, the engine
notifies the error sink bound to the Context, if any.
"""

from enum import Enum


class ReturnCode(Enum):
    """Error codes reported to error sinks."""
    SUCCESS = 0
    CONFIGURATION_ERROR = 1
    DENSITY_ERROR = 2
    DIRECTION_ERROR = 3
    MEDIUM_ERROR = 4
    MATERIAL_ERROR = 5
    RANDOM_ERROR = 6
    STATE_ERROR = 7
    VALUE_ERROR = 8


class TransportError(Exception):
    """Base class of all lepton_mc errors."""

    code = ReturnCode.VALUE_ERROR

    def __init__(self, message: str, code: ReturnCode = None):
        super().__init__(message)
        if code is not None:
            self.code = code


class ConfigurationError(TransportError):
    """Invalid context configuration, detected before any step is taken."""

    code = ReturnCode.CONFIGURATION_ERROR


class StateError(TransportError):
    """The input state violates an invariant (direction, energy, weight)."""

    code = ReturnCode.STATE_ERROR


class CollaboratorError(TransportError):
    """A caller-supplied callback broke its contract during a step."""

    code = ReturnCode.MEDIUM_ERROR


class ValueOutOfRangeError(TransportError):
    """A table lookup fell outside of the tabulated range."""

    code = ReturnCode.VALUE_ERROR
