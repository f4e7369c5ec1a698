"""Physics module: loss tables, energy loss, scattering."""

from lepton_mc.physics.tables import PhysicsTables, MaterialData
from lepton_mc.physics.energy_loss import EnergyLoss
from lepton_mc.physics.scattering import MultipleScattering

__all__ = ["PhysicsTables", "MaterialData", "EnergyLoss", "MultipleScattering"]
