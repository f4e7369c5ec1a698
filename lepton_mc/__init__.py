"""
LEPTON_MC: Monte Carlo transport of muons and taus

Forward and backward transport of a charged lepton through a heterogeneous
medium described by caller callbacks, with deterministic (CSDA), hybrid and
detailed energy loss schemes.

Modules:
    config: Enumerations, default constants and YAML settings
    core: State, media, contexts and errors
    physics: Loss tables, energy loss and angular deflections
    transport: Step-size control and the transport stepper
"""

__version__ = "0.1.0"
__author__ = "William Comaskey"

from lepton_mc.config.enums import DecayMode, Event, RangePolicy, Scheme
from lepton_mc.core.context import Context, create_context, destroy_context
from lepton_mc.core.errors import (
    CollaboratorError,
    ConfigurationError,
    ReturnCode,
    StateError,
    TransportError,
    ValueOutOfRangeError,
)
from lepton_mc.core.medium import Locals, Medium, UniformMedium
from lepton_mc.core.particle import MUON, TAU, Particle
from lepton_mc.core.random import GeneratorSource
from lepton_mc.core.state import State
from lepton_mc.physics.tables import MaterialData, PhysicsTables, uniform_loss_tables
from lepton_mc.transport.engine import TransportResult, transport

__all__ = [
    "DecayMode",
    "Event",
    "RangePolicy",
    "Scheme",
    "Context",
    "create_context",
    "destroy_context",
    "CollaboratorError",
    "ConfigurationError",
    "ReturnCode",
    "StateError",
    "TransportError",
    "ValueOutOfRangeError",
    "Locals",
    "Medium",
    "UniformMedium",
    "MUON",
    "TAU",
    "Particle",
    "GeneratorSource",
    "State",
    "MaterialData",
    "PhysicsTables",
    "uniform_loss_tables",
    "TransportResult",
    "transport",
]
