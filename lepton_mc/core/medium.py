"""
Media and local properties.

A Medium binds a material of the physics tables to a locals callback. Media
are compared by identity: two distinct Medium objects are different media
even if they share a material. Subclass Medium to attach extra data, e.g.
a uniform density or per-medium statistics.
"""

from typing import Callable, NamedTuple, Tuple, Union

import numpy as np


class Locals(NamedTuple):
    """Local properties of a medium at the particle position.

    Attributes:
        density: Mass density [kg/m^3]
        magnet: Magnetic field (Bx, By, Bz) [T]
        step: Proposed maximum step [m]; <= 0 for uniform conditions
    """
    density: float
    magnet: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    step: float = 0.0


LocalsCallback = Callable[["Medium", object], Union[Locals, tuple]]


class Medium:
    """A propagation medium."""

    def __init__(self, material: int, locals: LocalsCallback):
        """
        Parameters:
            material: Material index in the physics tables
            locals: Callback (medium, state) -> (density, magnet, step)
        """
        self.material = material
        self.locals = locals

    def __repr__(self) -> str:
        return f"{type(self).__name__}(material={self.material})"


class UniformMedium(Medium):
    """Medium with a constant density and magnetic field."""

    def __init__(self, material: int, density: float,
                 magnet: Tuple[float, float, float] = (0.0, 0.0, 0.0)):
        super().__init__(material, UniformMedium._uniform_locals)
        self.density = density
        self.magnet = tuple(magnet)

    @staticmethod
    def _uniform_locals(medium: "UniformMedium", state) -> Locals:
        return Locals(medium.density, medium.magnet, 0.0)


def as_locals(result) -> Locals:
    """Normalise the return value of a locals callback."""
    density, magnet, step = result
    magnet = np.asarray(magnet, dtype=np.float64)
    return Locals(float(density), magnet, float(step))
