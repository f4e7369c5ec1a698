"""
Energy loss, range and cross-section tables for leptons in matter.

Tables are built once from per-material energy loss coefficients sampled on a
common kinetic energy grid, using the parametrisation

    dE/dX = a(K) + b(K) * K

where a(K) is the ionisation loss [GeV m^2/kg] and b(K) the radiative loss
coefficient [m^2/kg]. Radiative transfers are modelled with a 1/nu spectrum
in the fractional energy loss nu, which splits the loss at the cutoff nu_c
into a continuous (restricted) part and a discrete part:

    dE/dX (restricted)  = a(K) + b(K) * K * nu_c
    sigma (nu > nu_c)   = b(K) * ln(1 / nu_c)

Once built, a PhysicsTables instance is immutable: all arrays are flagged
read-only and may be shared between threads.

References:
    - Groom, Mokhov & Striganov, Atomic Data and Nuclear Data Tables 78 (2001)
    - PDG Review of Particle Physics (Passage of particles through matter)
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Union

import numpy as np
import numba
from scipy.integrate import cumulative_trapezoid

from lepton_mc.config.defaults import DEFAULT_CUTOFF
from lepton_mc.config.enums import RangePolicy
from lepton_mc.core.errors import ConfigurationError, ReturnCode, ValueOutOfRangeError
from lepton_mc.core.particle import Particle, parse_particle

logger = logging.getLogger(__name__)


@dataclass
class MaterialData:
    """Energy loss coefficients of a material, sampled on the table grid.

    Attributes:
        ionisation: a(K), ionisation loss [GeV m^2/kg]
        radiative: b(K), radiative loss coefficient [m^2/kg]
        radiation_length: X0 [kg/m^2]
    """
    ionisation: np.ndarray
    radiative: np.ndarray
    radiation_length: float

    def __post_init__(self):
        self.ionisation = np.asarray(self.ionisation, dtype=np.float64)
        self.radiative = np.asarray(self.radiative, dtype=np.float64)
        self.radiation_length = float(self.radiation_length)

        if self.ionisation.shape != self.radiative.shape:
            raise ValueError(
                f"Ionisation length {self.ionisation.size} must match "
                f"radiative length {self.radiative.size}"
            )
        if np.any(~np.isfinite(self.ionisation)) or np.any(self.ionisation <= 0):
            raise ValueError("Ionisation loss must be positive and finite")
        if np.any(~np.isfinite(self.radiative)) or np.any(self.radiative < 0):
            raise ValueError("Radiative coefficient must be non-negative and finite")
        if not self.radiation_length > 0:
            raise ValueError("Radiation length must be positive")


# ============================================================================
# Interpolation kernels
# ============================================================================

@numba.njit(fastmath=True, cache=True)
def power_law_interpolate(x_array: np.ndarray, y_array: np.ndarray,
                          x: float) -> float:
    """
    Binary search + power-law interpolation, clamped at the table ends.

    Uses log-log interpolation:
        y(x) = y1 * (x/x1)^a,   a = log(y2/y1) / log(x2/x1)

    Falls back to linear interpolation when a node value is not positive.
    """
    n = len(x_array)
    ir = np.searchsorted(x_array, x)

    if ir <= 0:
        return y_array[0]
    elif ir >= n:
        return y_array[n - 1]

    y0 = y_array[ir - 1]
    y1 = y_array[ir]
    if y0 > 0.0 and y1 > 0.0:
        a = np.log(y1 / y0) / np.log(x_array[ir] / x_array[ir - 1])
        return y1 * (x / x_array[ir])**a

    h = (x - x_array[ir - 1]) / (x_array[ir] - x_array[ir - 1])
    return y0 + h * (y1 - y0)


@numba.njit(cache=True)
def linear_interpolate(x: float, xp: np.ndarray, fp: np.ndarray) -> float:
    """Binary search + linear interpolation, xp strictly increasing."""
    lo = 0
    hi = len(xp) - 1
    if x <= xp[lo]:
        return fp[lo]
    if x >= xp[hi]:
        return fp[hi]
    while hi - lo > 1:
        mid = (lo + hi) // 2
        if xp[mid] <= x:
            lo = mid
        else:
            hi = mid
    h = (x - xp[lo]) / (xp[hi] - xp[lo])
    return fp[lo] + h * (fp[hi] - fp[lo])


@numba.njit(cache=True)
def range_of_kinetic(kinetic: float, k_array: np.ndarray,
                     log_k_array: np.ndarray, r_array: np.ndarray,
                     dedx_min: float, dedx_max: float) -> float:
    """
    CSDA range [kg/m^2] of a kinetic energy [GeV].

    Linear in log(K) between nodes; below the grid the stopping power is
    taken constant, above it the range is extrapolated with the last node
    stopping power.
    """
    if kinetic <= 0.0:
        return 0.0
    if kinetic <= k_array[0]:
        return kinetic / dedx_min
    n = len(k_array)
    if kinetic >= k_array[n - 1]:
        return r_array[n - 1] + (kinetic - k_array[n - 1]) / dedx_max
    return linear_interpolate(np.log(kinetic), log_k_array, r_array)


@numba.njit(cache=True)
def kinetic_of_range(grammage: float, k_array: np.ndarray,
                     log_k_array: np.ndarray, r_array: np.ndarray,
                     dedx_min: float, dedx_max: float) -> float:
    """Inverse of range_of_kinetic."""
    if grammage <= 0.0:
        return 0.0
    if grammage <= r_array[0]:
        return grammage * dedx_min
    n = len(r_array)
    if grammage >= r_array[n - 1]:
        return k_array[n - 1] + (grammage - r_array[n - 1]) * dedx_max
    return np.exp(linear_interpolate(grammage, r_array, log_k_array))


def _cumulative_range(kinetic: np.ndarray, dedx: np.ndarray) -> np.ndarray:
    """Tabulate R(K) = int_0^K dK' / S(K'), with S constant below the grid."""
    log_k = np.log(kinetic)
    # dK / S = (K / S) dlnK
    r = cumulative_trapezoid(kinetic / dedx, log_k, initial=0.0)
    return r + kinetic[0] / dedx[0]


def _frozen(array: np.ndarray) -> np.ndarray:
    array = np.ascontiguousarray(array, dtype=np.float64)
    array.flags.writeable = False
    return array


class PhysicsTables:
    """
    Read-only physics tables for one lepton species.

    Usage:
        tables = PhysicsTables('muon', kinetic, {'StandardRock': data})
        index = tables.material_index('StandardRock')
        dedx = tables.dedx(index, 10.0)
    """

    def __init__(self, particle: Union[str, Particle], kinetic: np.ndarray,
                 materials: Dict[str, MaterialData],
                 cutoff: float = DEFAULT_CUTOFF):
        """
        Build the tables.

        Parameters:
            particle: Transported species, or its name
            kinetic: Strictly increasing kinetic energy grid [GeV]
            materials: Energy loss data per material name
            cutoff: Fractional energy transfer above which losses are discrete
        """
        self.particle = (parse_particle(particle) if isinstance(particle, str)
                         else particle)

        kinetic = np.asarray(kinetic, dtype=np.float64)
        if kinetic.ndim != 1 or kinetic.size < 2:
            raise ValueError("Kinetic grid must have at least 2 points")
        if kinetic[0] <= 0 or not np.all(np.diff(kinetic) > 0):
            raise ValueError("Kinetic grid must be positive and strictly increasing")
        if not 0.0 < cutoff <= 1.0:
            raise ValueError(f"Cutoff must be in (0, 1], got {cutoff}")
        if not materials:
            raise ValueError("At least one material is required")

        self.cutoff = float(cutoff)
        self.kinetic = _frozen(kinetic)
        self.log_kinetic = _frozen(np.log(kinetic))

        self._names = list(materials.keys())
        self._indices = {name: i for i, name in enumerate(self._names)}

        n_materials, n_kinetic = len(self._names), kinetic.size
        dedx_total = np.zeros((n_materials, n_kinetic))
        dedx_restricted = np.zeros((n_materials, n_kinetic))
        cross_section = np.zeros((n_materials, n_kinetic))
        straggling = np.zeros((n_materials, n_kinetic))
        range_total = np.zeros((n_materials, n_kinetic))
        range_restricted = np.zeros((n_materials, n_kinetic))
        radiation_length = np.zeros(n_materials)

        log_inverse_cut = -np.log(self.cutoff)
        for i, name in enumerate(self._names):
            data = materials[name]
            if data.ionisation.shape != kinetic.shape:
                raise ValueError(
                    f"Material '{name}': {data.ionisation.size} values for "
                    f"{kinetic.size} kinetic nodes"
                )
            a, b = data.ionisation, data.radiative
            dedx_total[i] = a + b * kinetic
            dedx_restricted[i] = a + b * kinetic * self.cutoff
            cross_section[i] = b * log_inverse_cut
            straggling[i] = 0.5 * b * (kinetic * self.cutoff)**2
            range_total[i] = _cumulative_range(kinetic, dedx_total[i])
            range_restricted[i] = _cumulative_range(kinetic, dedx_restricted[i])
            radiation_length[i] = data.radiation_length

        self.dedx_total = _frozen(dedx_total)
        self.dedx_restricted = _frozen(dedx_restricted)
        self.cross_section_table = _frozen(cross_section)
        self.straggling_table = _frozen(straggling)
        self.range_total = _frozen(range_total)
        self.range_restricted = _frozen(range_restricted)
        self.radiation_length = _frozen(radiation_length)

        logger.debug("Built %s tables: %d material(s), %d kinetic nodes "
                     "[%.3E, %.3E] GeV, cutoff %.3f", self.particle.name,
                     n_materials, n_kinetic, kinetic[0], kinetic[-1],
                     self.cutoff)

    # ------------------------------------------------------------------
    # Material lookup
    # ------------------------------------------------------------------

    @property
    def n_materials(self) -> int:
        return len(self._names)

    def material_index(self, name: str) -> int:
        """Index of a material from its name."""
        try:
            return self._indices[name]
        except KeyError:
            raise ConfigurationError(
                f"Unknown material '{name}'. Available: {self._names}",
                ReturnCode.MATERIAL_ERROR) from None

    def material_name(self, index: int) -> str:
        """Name of a material from its index."""
        if not self.has_material(index):
            raise ConfigurationError(f"Invalid material index {index}",
                                     ReturnCode.MATERIAL_ERROR)
        return self._names[index]

    def has_material(self, index) -> bool:
        return (isinstance(index, (int, np.integer))
                and 0 <= index < len(self._names))

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def check_kinetic(self, kinetic: float,
                      policy: RangePolicy = RangePolicy.CLAMP):
        """Raise if kinetic is above the table grid and policy is RAISE."""
        if policy is RangePolicy.RAISE and kinetic > self.kinetic[-1]:
            raise ValueOutOfRangeError(
                f"Kinetic energy {kinetic:.5E} GeV above table maximum "
                f"{self.kinetic[-1]:.5E} GeV")

    def dedx(self, material: int, kinetic: float,
             restricted: bool = False) -> float:
        """Mass stopping power [GeV m^2/kg], total or restricted to soft losses."""
        table = self.dedx_restricted if restricted else self.dedx_total
        return power_law_interpolate(self.kinetic, table[material], kinetic)

    def range(self, material: int, kinetic: float,
              restricted: bool = False) -> float:
        """CSDA range [kg/m^2]."""
        dedx = self.dedx_restricted if restricted else self.dedx_total
        r = self.range_restricted if restricted else self.range_total
        return range_of_kinetic(kinetic, self.kinetic, self.log_kinetic,
                                r[material], dedx[material, 0],
                                dedx[material, -1])

    def kinetic_from_range(self, material: int, grammage: float,
                           restricted: bool = False) -> float:
        """Kinetic energy [GeV] whose CSDA range is grammage [kg/m^2]."""
        dedx = self.dedx_restricted if restricted else self.dedx_total
        r = self.range_restricted if restricted else self.range_total
        return kinetic_of_range(grammage, self.kinetic, self.log_kinetic,
                                r[material], dedx[material, 0],
                                dedx[material, -1])

    def cross_section(self, material: int, kinetic: float) -> float:
        """Macroscopic cross-section of discrete losses [m^2/kg]."""
        return power_law_interpolate(self.kinetic,
                                     self.cross_section_table[material],
                                     kinetic)

    def straggling(self, material: int, kinetic: float) -> float:
        """Variance of the soft losses per unit grammage [GeV^2 m^2/kg]."""
        return power_law_interpolate(self.kinetic,
                                     self.straggling_table[material], kinetic)

    def __repr__(self) -> str:
        return (f"PhysicsTables({self.particle.name}, "
                f"materials={self._names}, "
                f"K=[{self.kinetic[0]:.1E}, {self.kinetic[-1]:.1E}] GeV)")


def uniform_loss_tables(particle: Union[str, Particle],
                        materials: Dict[str, tuple],
                        kinetic: Optional[np.ndarray] = None,
                        cutoff: float = DEFAULT_CUTOFF) -> PhysicsTables:
    """
    Tables with energy independent a and b coefficients.

    Parameters:
        particle: Transported species
        materials: {name: (a [GeV m^2/kg], b [m^2/kg], X0 [kg/m^2])}
        kinetic: Kinetic grid [GeV] (default: 1 MeV to 1 PeV, 100 nodes per decade)
        cutoff: Discrete loss cutoff

    Returns:
        PhysicsTables
    """
    if kinetic is None:
        kinetic = np.logspace(-3, 6, 901)
    data = {
        name: MaterialData(np.full(len(kinetic), a), np.full(len(kinetic), b), x0)
        for name, (a, b, x0) in materials.items()
    }
    return PhysicsTables(particle, kinetic, data, cutoff)


# ============================================================================
# Example Usage
# ============================================================================

if __name__ == "__main__":
    # Standard rock, approximate muon coefficients
    tables = uniform_loss_tables('muon', {'StandardRock': (2.2E-04, 4.0E-07, 265.0)})
    rock = tables.material_index('StandardRock')

    print(f"\n{tables}")
    for K in [1.0, 10.0, 100.0, 1000.0]:
        X = tables.range(rock, K)
        print(f"  {K:7.1f} GeV: dE/dX = {tables.dedx(rock, K):.3E} GeV m^2/kg, "
              f"range = {X / 2.65E+03:8.1f} m of rock")
