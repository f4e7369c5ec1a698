"""Core module: lepton state, media, transport contexts and errors."""

from lepton_mc.core.state import State
from lepton_mc.core.medium import Locals, Medium, UniformMedium
from lepton_mc.core.particle import Particle, MUON, TAU

__all__ = ["State", "Locals", "Medium", "UniformMedium", "Particle", "MUON", "TAU"]
