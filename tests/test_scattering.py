"""Tests for multiple scattering and magnetic bending."""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from lepton_mc.config.defaults import LARMOR_FACTOR, MAGNETIC_ANGLE_MAX
from lepton_mc.physics.scattering import (
    MultipleScattering,
    highland_angle,
    magnetic_rotation,
    rotate_direction,
    sample_scattering_angle,
)


class TestHighlandAngle:
    """Tests for the Highland RMS angle."""

    def test_one_radiation_length(self):
        mass, kinetic = 0.10565839, 10.0
        momentum = np.sqrt(kinetic * (kinetic + 2.0 * mass))
        beta_p = momentum**2 / (kinetic + mass)
        theta = highland_angle(kinetic, mass, 265.4, 265.4)
        assert theta == pytest.approx(13.6E-03 / beta_p)

    def test_no_scattering(self):
        assert highland_angle(10.0, 0.1, 0.0, 265.4) == 0.0
        assert highland_angle(0.0, 0.1, 100.0, 265.4) == 0.0

    def test_decreases_with_energy(self):
        low = highland_angle(1.0, 0.1, 100.0, 265.4)
        high = highland_angle(100.0, 0.1, 100.0, 265.4)
        assert high < low

    def test_rayleigh_inversion(self):
        # Median of a Rayleigh law is theta_rms sqrt(2 ln 2)
        assert sample_scattering_angle(1.0, 0.5) == pytest.approx(np.sqrt(2.0 * np.log(2.0)))
        assert sample_scattering_angle(1.0, 0.0) == 0.0


class TestRotateDirection:
    """Tests for direction rotation."""

    @pytest.mark.parametrize("direction", [
        (0.0, 0.0, 1.0),
        (1.0, 0.0, 0.0),
        (0.0, -1.0, 0.0),
        (0.6, 0.0, 0.8),
    ])
    def test_polar_angle(self, direction):
        u = np.array(direction)
        rotated = rotate_direction(u, 0.3, 1.1)
        assert np.linalg.norm(rotated) == pytest.approx(1.0, abs=1e-12)
        assert np.dot(rotated, u) == pytest.approx(np.cos(0.3), abs=1e-12)

    def test_zero_angle(self):
        u = np.array([0.0, 0.6, 0.8])
        assert_allclose(rotate_direction(u, 0.0, 2.0), u)


class TestMagneticRotation:
    """Tests for the bending in a uniform magnetic field."""

    def test_rotation_angle(self):
        u = np.array([1.0, 0.0, 0.0])
        magnet = np.array([0.0, 0.0, 2.0])
        curvature, step = 0.05, 3.0
        rotated = magnetic_rotation(u, magnet, curvature, step)
        assert np.dot(rotated, u) == pytest.approx(np.cos(curvature * 2.0 * step))
        assert rotated[2] == pytest.approx(0.0, abs=1e-15)

    def test_reversed_step(self):
        u = np.array([0.0, 0.6, 0.8])
        magnet = np.array([1.0, 0.5, 0.0])
        forward = magnetic_rotation(u, magnet, 0.1, 2.0)
        back = magnetic_rotation(forward, magnet, 0.1, -2.0)
        assert_allclose(back, u, atol=1e-12)

    def test_opposite_charges(self):
        u = np.array([1.0, 0.0, 0.0])
        magnet = np.array([0.0, 0.0, 1.0])
        negative = magnetic_rotation(u, magnet, -0.1, 1.0)
        positive = magnetic_rotation(u, magnet, 0.1, 1.0)
        assert negative[1] == pytest.approx(-positive[1])

    def test_parallel_field(self):
        u = np.array([0.0, 0.0, 1.0])
        magnet = np.array([0.0, 0.0, 1.5])
        assert_allclose(magnetic_rotation(u, magnet, 0.1, 10.0), u, atol=1e-15)


class TestMultipleScattering:
    """Tests for the MultipleScattering helper."""

    def test_rms_angle(self, muon_tables, rock_index):
        ms = MultipleScattering(muon_tables)
        x0 = muon_tables.radiation_length[rock_index]
        expected = highland_angle(5.0, muon_tables.particle.mass, x0, x0)
        assert ms.calculate_rms_angle(rock_index, 5.0, x0) == pytest.approx(expected)

    def test_scatter_keeps_unit_norm(self, muon_tables, source):
        ms = MultipleScattering(muon_tables)
        u = np.array([0.0, 0.0, 1.0])
        for _ in range(100):
            u = ms.scatter(u, 0.05, source(), source())
            assert np.linalg.norm(u) == pytest.approx(1.0, abs=1e-12)

    def test_magnetic_step(self, muon_tables):
        ms = MultipleScattering(muon_tables)
        u = np.array([1.0, 0.0, 0.0])
        kinetic = 10.0
        momentum = muon_tables.particle.momentum(kinetic)
        step = ms.magnetic_step(u, np.array([0.0, 0.0, 1.0]), kinetic)
        assert step == pytest.approx(MAGNETIC_ANGLE_MAX * momentum / LARMOR_FACTOR)
        assert ms.magnetic_step(u, np.array([3.0, 0.0, 0.0]), kinetic) == 0.0
