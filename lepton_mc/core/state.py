"""
Lepton Monte Carlo state.

A State is owned by the caller and updated in place by each transport call.
"""

from typing import Sequence

import numpy as np


class State:
    """Kinematic and bookkeeping state of a transported lepton."""

    __slots__ = ("charge", "kinetic", "weight", "position", "direction",
                 "distance", "grammage", "time", "survival", "decayed")

    def __init__(self, kinetic: float,
                 direction: Sequence[float] = (0.0, 0.0, 1.0),
                 position: Sequence[float] = (0.0, 0.0, 0.0),
                 charge: float = -1.0, weight: float = 1.0,
                 distance: float = 0.0, grammage: float = 0.0,
                 time: float = 0.0, survival: float = 1.0,
                 decayed: bool = False):
        """
        Initialize a lepton state.

        Parameters:
            kinetic: Kinetic energy [GeV]
            direction: (ux, uy, uz) momentum direction (unit vector)
            position: (x, y, z) position [m]
            charge: Electric charge sign (-1 or +1)
            weight: Monte Carlo weight
            distance: Accumulated path length [m]
            grammage: Accumulated column depth [kg/m^2]
            time: Accumulated proper time [m/c]
            survival: Accumulated decay survival probability
            decayed: True once the particle has decayed
        """
        self.charge = float(charge)
        self.kinetic = float(kinetic)
        self.weight = float(weight)
        self.position = np.array(position, dtype=np.float64)
        self.direction = np.array(direction, dtype=np.float64)
        self.distance = float(distance)
        self.grammage = float(grammage)
        self.time = float(time)
        self.survival = float(survival)
        self.decayed = bool(decayed)

    def copy(self) -> "State":
        """Independent copy of this state."""
        other = State.__new__(State)
        for name in self.__slots__:
            value = getattr(self, name)
            if isinstance(value, np.ndarray):
                value = value.copy()
            setattr(other, name, value)
        return other

    def normalise(self):
        """Rescale the direction to unit length."""
        self.direction /= np.linalg.norm(self.direction)

    def __repr__(self) -> str:
        return (f"State(kinetic={self.kinetic:.5E} GeV, "
                f"position={self.position.tolist()}, "
                f"direction={self.direction.tolist()}, "
                f"weight={self.weight:.5E})")
