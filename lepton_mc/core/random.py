"""
Random sources for transport contexts.

The engine never draws from a global generator: each Context holds its own
random callable, `random(context) -> float in [0, 1)`.
"""

from typing import Optional

import numpy as np


class GeneratorSource:
    """Random source backed by a numpy Generator, one per context.

    Usage:
        context.random = GeneratorSource(seed=1234)
    """

    def __init__(self, seed: Optional[int] = None,
                 generator: Optional[np.random.Generator] = None):
        self.generator = (generator if generator is not None
                          else np.random.default_rng(seed))

    def __call__(self, context=None) -> float:
        return float(self.generator.random())

    def spawn(self) -> "GeneratorSource":
        """Independent source for another context (e.g. another thread)."""
        return GeneratorSource(generator=self.generator.spawn(1)[0])
