"""Pytest configuration and shared fixtures for lepton_mc tests."""

import numpy as np
import pytest

from lepton_mc.config.enums import DecayMode, Scheme
from lepton_mc.core.context import create_context
from lepton_mc.core.medium import Medium, UniformMedium
from lepton_mc.core.random import GeneratorSource
from lepton_mc.physics.tables import uniform_loss_tables


# Energy loss coefficients (a [GeV m^2/kg], b [m^2/kg], X0 [kg/m^2])
STANDARD_ROCK = (2.2E-04, 4.0E-07, 265.4)
WATER = (2.0E-04, 3.5E-07, 360.8)
AIR = (1.8E-04, 3.0E-07, 366.2)

ROCK_DENSITY = 2.65E+03
WATER_DENSITY = 1.00E+03
AIR_DENSITY = 1.205


# Geometries


class SlabGeometry:
    """Stack of media along z, each layer given as (z_low, z_high, medium)."""

    def __init__(self, layers):
        self.layers = list(layers)

    def __call__(self, context, state):
        z = state.position[2]
        uz = state.direction[2] if context.forward else -state.direction[2]
        for low, high, medium in self.layers:
            if low <= z < high:
                if uz > 0.0:
                    step = (high - z) / uz
                elif uz < 0.0:
                    step = (z - low) / -uz
                else:
                    step = 0.0
                return medium, step
        return None, 0.0


class UniformGeometry:
    """Infinite medium, with an optional constant step proposal."""

    def __init__(self, medium, step=0.0):
        self.medium = medium
        self.step = step

    def __call__(self, context, state):
        return self.medium, self.step


class RecordingMedium(Medium):
    """Uniform medium recording the path length at each locals call."""

    def __init__(self, material, density, step=0.0):
        super().__init__(material, RecordingMedium._record)
        self.density = density
        self.step = step
        self.distances = []

    @staticmethod
    def _record(medium, state):
        medium.distances.append(state.distance)
        return medium.density, (0.0, 0.0, 0.0), medium.step


class ExponentialAtmosphere(Medium):
    """Medium with density rho0 exp(-z / h) and per-medium call statistics."""

    def __init__(self, material, rho0, scale_height, step):
        super().__init__(material, ExponentialAtmosphere._locals)
        self.rho0 = rho0
        self.scale_height = scale_height
        self.step = step
        self.calls = 0

    @staticmethod
    def _locals(medium, state):
        medium.calls += 1
        density = medium.rho0 * np.exp(-state.position[2] / medium.scale_height)
        return density, (0.0, 0.0, 0.0), medium.step


# Fixtures for physics tables


@pytest.fixture(scope="session")
def muon_tables():
    """Muon tables with energy independent a and b coefficients."""
    return uniform_loss_tables(
        "muon",
        {"StandardRock": STANDARD_ROCK, "Water": WATER, "Air": AIR},
    )


@pytest.fixture(scope="session")
def tau_tables():
    """Tau tables in standard rock."""
    return uniform_loss_tables("tau", {"StandardRock": STANDARD_ROCK})


@pytest.fixture
def rock_index(muon_tables):
    return muon_tables.material_index("StandardRock")


# Fixtures for media and geometries


@pytest.fixture
def rock(rock_index):
    """Uniform standard rock."""
    return UniformMedium(rock_index, ROCK_DENSITY)


@pytest.fixture
def water(muon_tables):
    return UniformMedium(muon_tables.material_index("Water"), WATER_DENSITY)


@pytest.fixture
def air(muon_tables):
    return UniformMedium(muon_tables.material_index("Air"), AIR_DENSITY)


@pytest.fixture
def source():
    """Seeded random source."""
    return GeneratorSource(seed=20241018)


@pytest.fixture
def csda_context(muon_tables):
    """Forward CSDA context without decays; set the medium callback in tests."""
    return create_context(
        muon_tables,
        scheme=Scheme.CSDA,
        decay=DecayMode.DISABLED,
    )


@pytest.fixture
def make_context(muon_tables, source):
    """Factory of contexts with a seeded random source."""
    def factory(medium, tables=None, **settings):
        settings.setdefault("decay", DecayMode.DISABLED)
        return create_context(tables if tables is not None else muon_tables,
                              medium=medium, random=source, **settings)
    return factory
