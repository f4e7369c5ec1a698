"""
Step size control.

Each source of constraint proposes a maximum step length [m]; the stepper
takes the smallest positive proposal. A proposal <= 0 (or inf) imposes no
bound. The source of the selected proposal is returned as well, so that
limits reached by construction can be set exactly.
"""

from typing import Dict, Hashable, Optional, Tuple

import numpy as np

# Bound sources that are not events
GEOMETRY = "geometry"
LOCALS = "locals"
ACCURACY = "accuracy"
EXTENT = "extent"
MAGNETIC = "magnetic"


def select_step(proposals: Dict[Hashable, float],
                fallback: float) -> Tuple[float, Optional[Hashable]]:
    """
    Select the smallest positive finite proposal.

    Parameters:
        proposals: {source: step [m]}
        fallback: Step used when no proposal bounds it [m]

    Returns:
        (step, source), with source None for the fallback

    Example:
        >>> select_step({"geometry": 2.0, "locals": 0.0}, 1E+09)
        (2.0, 'geometry')
    """
    step, source = fallback, None
    for key, value in proposals.items():
        if 0.0 < value < step:
            step, source = value, key
    return step, source


def grammage_step(grammage: float, density: float) -> float:
    """Path length [m] for a column depth [kg/m^2], 0 (no bound) in vacuum."""
    if density <= 0.0 or not np.isfinite(grammage):
        return 0.0
    return grammage / density


def remaining(limit: float, value: float) -> float:
    """Remaining amount before a limit; 0 (no bound) once it is reached."""
    return limit - value if value < limit else 0.0
