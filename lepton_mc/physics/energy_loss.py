"""
Energy loss of leptons along a step.

Continuous losses are applied by inverting the CSDA range tables, which is
exact for a uniform density over the step:

    forward:   K1 = R^-1( R(K0) - X )
    backward:  K1 = R^-1( R(K0) + X ),   w *= S(K1) / S(K0)

The backward weight factor keeps the flux estimator unbiased, see e.g. the
characteristic solution phi(E, X) = phi0(E0) S(E0) / S(E) of the CSDA
transport equation.

Discrete (radiative) losses above the table cutoff nu_c are sampled from a
1/nu spectrum, i.e. log-uniformly on [nu_c, 1).
"""

from typing import Tuple

import numpy as np

from lepton_mc.physics.tables import PhysicsTables


class EnergyLoss:
    """
    Continuous and discrete energy losses for one set of tables.

    Usage:
        loss = EnergyLoss(tables)
        K1, w = loss.continuous(material, K0, grammage, forward=True)
    """

    def __init__(self, tables: PhysicsTables):
        self.tables = tables
        self.cutoff = tables.cutoff

    def continuous(self, material: int, kinetic: float, grammage: float,
                   forward: bool = True,
                   restricted: bool = False) -> Tuple[float, float]:
        """
        Apply the mean continuous loss over a column depth.

        Parameters:
            material: Material index
            kinetic: Initial kinetic energy [GeV]
            grammage: Column depth of the step [kg/m^2]
            forward: Transport direction
            restricted: Only soft losses (below the cutoff) if True

        Returns:
            (kinetic, weight_factor): Final kinetic energy [GeV] and the
            multiplicative weight factor (1 in forward mode)
        """
        if grammage <= 0.0:
            return kinetic, 1.0

        tables = self.tables
        r0 = tables.range(material, kinetic, restricted)
        if forward:
            r1 = r0 - grammage
            if r1 <= 0.0:
                return 0.0, 1.0
            return tables.kinetic_from_range(material, r1, restricted), 1.0

        k1 = tables.kinetic_from_range(material, r0 + grammage, restricted)
        if kinetic <= 0.0:
            # The stopping power ratio is taken at the first table node
            s0 = tables.dedx(material, tables.kinetic[0], restricted)
        else:
            s0 = tables.dedx(material, kinetic, restricted)
        weight = tables.dedx(material, k1, restricted) / s0
        return k1, weight

    def grammage_to(self, material: int, kinetic: float, target: float,
                    restricted: bool = False) -> float:
        """Column depth [kg/m^2] needed to go from kinetic to target [GeV]."""
        tables = self.tables
        return abs(tables.range(material, kinetic, restricted) -
                   tables.range(material, target, restricted))

    def accuracy_grammage(self, material: int, kinetic: float,
                          accuracy: float, restricted: bool = False) -> float:
        """
        Column depth over which the mean loss is a fraction accuracy of kinetic.

        Returns 0 (no bound) below the lowest table node, where the
        stopping power is constant and the range inversion is exact.
        """
        if kinetic < self.tables.kinetic[0]:
            return 0.0
        return accuracy * kinetic / self.tables.dedx(material, kinetic, restricted)

    def straggling_sigma(self, material: int, kinetic: float,
                         grammage: float) -> float:
        """Standard deviation [GeV] of the soft losses over a column depth."""
        if grammage <= 0.0 or kinetic <= 0.0:
            return 0.0
        return float(np.sqrt(self.tables.straggling(material, kinetic) * grammage))

    def interaction_grammage(self, material: int, kinetic: float,
                             u: float) -> float:
        """
        Sample the column depth to the next discrete loss.

        Returns:
            Column depth [kg/m^2], or inf when no discrete loss is possible
        """
        if kinetic <= 0.0:
            return np.inf
        sigma = self.tables.cross_section(material, kinetic)
        if sigma <= 0.0:
            return np.inf
        return -np.log(1.0 - u) / sigma

    def discrete(self, material: int, kinetic: float, u: float,
                 forward: bool = True) -> Tuple[float, float]:
        """
        Apply a discrete loss with fractional transfer nu in [cutoff, 1).

        In backward mode the particle gains energy, K1 = K0 / (1 - nu), and
        the weight is multiplied by the Jacobian of the forward transition
        density, sigma(K1) K1 / (sigma(K0) K0).

        Returns:
            (kinetic, weight_factor)
        """
        nu = self.cutoff ** (1.0 - u)
        if forward:
            return kinetic * (1.0 - nu), 1.0

        k1 = kinetic / (1.0 - nu)
        sigma0 = self.tables.cross_section(material, kinetic)
        sigma1 = self.tables.cross_section(material, k1)
        return k1, (sigma1 * k1) / (sigma0 * kinetic)
