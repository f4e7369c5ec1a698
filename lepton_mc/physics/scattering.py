"""
Angular deflections: multiple Coulomb scattering and magnetic bending.

Implements the Highland approximation for small-angle multiple scattering
and the rotation of the momentum direction in a magnetic field.

Random variates are never drawn here: callers pass uniform variates from
the context random source, so that no global generator state is involved.

References:
    - Highland, NIM 129, 497 (1975)
    - PDG Review of Particle Physics (Passage of particles through matter)
"""

import numpy as np
import numba

from lepton_mc.config.defaults import LARMOR_FACTOR, MAGNETIC_ANGLE_MAX


@numba.njit(fastmath=True, cache=True)
def highland_angle(kinetic: float, mass: float, grammage: float,
                   radiation_length: float) -> float:
    """
    Calculate RMS scattering angle using Highland approximation.

    Highland formula (accurate to ~11% for 10^-3 < x/X0 < 100):
        theta_0 = (13.6 MeV / beta c p) * |z| * sqrt(x/X0) * [1 + 0.038 ln(x/X0)]

    Parameters:
        kinetic: Kinetic energy [GeV]
        mass: Rest mass [GeV/c^2]
        grammage: Column depth of the step [kg/m^2]
        radiation_length: X0 of the material [kg/m^2]

    Returns:
        Projected RMS scattering angle [radians]
    """
    if kinetic <= 0.0:
        return 0.0

    E_total = kinetic + mass
    momentum = np.sqrt(kinetic * (kinetic + 2.0 * mass))
    beta_p = momentum * momentum / E_total

    x_over_X0 = grammage / radiation_length
    if x_over_X0 <= 1e-10:  # Avoid log(0)
        return 0.0

    correction = 1.0 + 0.038 * np.log(x_over_X0)
    if correction <= 0.0:
        return 0.0
    return (13.6E-03 / beta_p) * np.sqrt(x_over_X0) * correction


@numba.njit(fastmath=True, cache=True)
def sample_scattering_angle(theta_rms: float, u: float) -> float:
    """
    Sample the polar deflection angle for a Gaussian projected distribution.

    With two independent projected angles ~ N(0, theta_rms), the polar angle
    follows a Rayleigh law, sampled here by inversion.
    """
    return theta_rms * np.sqrt(-2.0 * np.log(1.0 - u))


@numba.njit(fastmath=True, cache=True)
def rotate_direction(direction: np.ndarray, theta: float,
                     phi: float) -> np.ndarray:
    """
    Rotate direction vector by scattering angles (theta, phi).

    Parameters:
        direction: Initial direction unit vector [x, y, z]
        theta: Polar scattering angle [radians]
        phi: Azimuthal angle [radians]

    Returns:
        Rotated direction unit vector [x, y, z]

    Algorithm:
        1. Build an orthonormal basis (e1, e2) perpendicular to direction
        2. new = cos(theta) u + sin(theta) (cos(phi) e1 + sin(phi) e2)
    """
    ux, uy, uz = direction[0], direction[1], direction[2]

    result = np.empty(3, dtype=np.float64)
    if theta < 1e-15:
        result[0] = ux
        result[1] = uy
        result[2] = uz
        return result

    # First perpendicular axis, avoiding the dominant component
    if abs(uz) < 0.9:
        norm = np.sqrt(ux * ux + uy * uy)
        e1x, e1y, e1z = -uy / norm, ux / norm, 0.0
    else:
        norm = np.sqrt(uy * uy + uz * uz)
        e1x, e1y, e1z = 0.0, -uz / norm, uy / norm

    # e2 = u x e1
    e2x = uy * e1z - uz * e1y
    e2y = uz * e1x - ux * e1z
    e2z = ux * e1y - uy * e1x

    cos_theta = np.cos(theta)
    sin_theta = np.sin(theta)
    cos_phi = np.cos(phi)
    sin_phi = np.sin(phi)

    new_x = ux * cos_theta + sin_theta * (cos_phi * e1x + sin_phi * e2x)
    new_y = uy * cos_theta + sin_theta * (cos_phi * e1y + sin_phi * e2y)
    new_z = uz * cos_theta + sin_theta * (cos_phi * e1z + sin_phi * e2z)

    # Normalize (numerical stability)
    norm = np.sqrt(new_x**2 + new_y**2 + new_z**2)
    result[0] = new_x / norm
    result[1] = new_y / norm
    result[2] = new_z / norm
    return result


@numba.njit(fastmath=True, cache=True)
def magnetic_rotation(direction: np.ndarray, magnet: np.ndarray,
                      curvature: float, step: float) -> np.ndarray:
    """
    Bend the momentum direction in a uniform magnetic field.

    Solves du/ds = curvature * (u x B) over a step with Rodrigues' formula,
    i.e. a rotation around B by the angle -curvature * |B| * step.

    Parameters:
        direction: Momentum direction [x, y, z]
        magnet: Magnetic field [T]
        curvature: charge * 0.2998 / p [1 / (T m)]
        step: Signed path length [m] (negative for backward transport)
    """
    b = np.sqrt(magnet[0]**2 + magnet[1]**2 + magnet[2]**2)
    if b <= 0.0 or curvature == 0.0 or step == 0.0:
        return direction.copy()

    nx, ny, nz = magnet[0] / b, magnet[1] / b, magnet[2] / b
    ux, uy, uz = direction[0], direction[1], direction[2]
    alpha = -curvature * b * step

    cos_a = np.cos(alpha)
    sin_a = np.sin(alpha)
    dot = nx * ux + ny * uy + nz * uz

    # v cos(a) + (n x v) sin(a) + n (n.v) (1 - cos(a))
    cross_x = ny * uz - nz * uy
    cross_y = nz * ux - nx * uz
    cross_z = nx * uy - ny * ux
    one_minus_cos = 1.0 - cos_a

    new_x = ux * cos_a + cross_x * sin_a + nx * dot * one_minus_cos
    new_y = uy * cos_a + cross_y * sin_a + ny * dot * one_minus_cos
    new_z = uz * cos_a + cross_z * sin_a + nz * dot * one_minus_cos

    norm = np.sqrt(new_x**2 + new_y**2 + new_z**2)
    result = np.empty(3, dtype=np.float64)
    result[0] = new_x / norm
    result[1] = new_y / norm
    result[2] = new_z / norm
    return result


@numba.njit(fastmath=True, cache=True)
def transverse_field(direction: np.ndarray, magnet: np.ndarray) -> float:
    """Magnitude of the field component perpendicular to direction [T]."""
    cx = direction[1] * magnet[2] - direction[2] * magnet[1]
    cy = direction[2] * magnet[0] - direction[0] * magnet[2]
    cz = direction[0] * magnet[1] - direction[1] * magnet[0]
    return np.sqrt(cx * cx + cy * cy + cz * cz)


class MultipleScattering:
    """
    Deflections of a lepton species in the materials of a set of tables.

    Usage:
        ms = MultipleScattering(tables)
        theta_rms = ms.calculate_rms_angle(material, kinetic, grammage)
        new_direction = ms.scatter(direction, theta_rms, u1, u2)
    """

    def __init__(self, tables):
        """
        Parameters:
            tables: PhysicsTables providing the species and radiation lengths
        """
        self.tables = tables
        self.mass = tables.particle.mass

    def calculate_rms_angle(self, material: int, kinetic: float,
                            grammage: float) -> float:
        """RMS projected scattering angle [radians] over a step of grammage [kg/m^2]."""
        return highland_angle(kinetic, self.mass, grammage,
                              self.tables.radiation_length[material])

    def scatter(self, direction: np.ndarray, theta_rms: float,
                u1: float, u2: float) -> np.ndarray:
        """Deflect direction using two uniform variates in [0, 1)."""
        theta = sample_scattering_angle(theta_rms, u1)
        return rotate_direction(direction, theta, 2.0 * np.pi * u2)

    def magnetic_step(self, direction: np.ndarray, magnet: np.ndarray,
                      kinetic: float) -> float:
        """Step [m] for which the bending angle reaches MAGNETIC_ANGLE_MAX."""
        b_perp = transverse_field(direction, magnet)
        if b_perp <= 0.0:
            return 0.0
        momentum = np.sqrt(kinetic * (kinetic + 2.0 * self.mass))
        return MAGNETIC_ANGLE_MAX * momentum / (LARMOR_FACTOR * b_perp)

    def bend(self, direction: np.ndarray, magnet: np.ndarray, kinetic: float,
             charge: float, step: float) -> np.ndarray:
        """Rotate direction in the field over a signed step [m]."""
        momentum = np.sqrt(kinetic * (kinetic + 2.0 * self.mass))
        if momentum <= 0.0:
            return direction.copy()
        curvature = charge * LARMOR_FACTOR / momentum
        return magnetic_rotation(direction, magnet, curvature, step)
