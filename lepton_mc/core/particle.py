"""
Lepton species transported by the engine.
"""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class Particle:
    """Physical properties of a transported lepton.

    Attributes:
        name: Species name
        mass: Rest mass [GeV/c^2]
        ctau: Proper decay length [m] (inf for a stable particle)
    """
    name: str
    mass: float
    ctau: float

    @property
    def unstable(self) -> bool:
        return bool(np.isfinite(self.ctau))

    def momentum(self, kinetic: float) -> float:
        """Momentum [GeV/c] for a kinetic energy [GeV]."""
        return float(np.sqrt(kinetic * (kinetic + 2.0 * self.mass)))


MUON = Particle("muon", 0.10565839, 658.654)
TAU = Particle("tau", 1.77682, 87.03E-06)

PARTICLES = {
    'muon': MUON,
    'mu': MUON,
    'tau': TAU,
}


def parse_particle(name: str) -> Particle:
    """Parse 'muon' / 'tau' → Particle"""
    try:
        return PARTICLES[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown particle '{name}'. "
                         f"Available: {list(PARTICLES.keys())}") from None
