"""
Transport context: the configuration of the stepper.

A Context binds the read-only physics tables to the caller collaborators
(medium resolver, random source, error sink) and to the transport settings.
It is not thread safe: use one Context per thread, see Context.clone.

Collaborator signatures:
    medium(context, state) -> (Medium | None, step)
    random(context) -> float in [0, 1)
    error_handler(code, origin, message) -> None
"""

import logging
from typing import Any, Callable, Optional, Tuple

import numpy as np

from lepton_mc.config.defaults import (
    DEFAULT_ACCURACY,
    DEFAULT_DOMAIN_EXTENT,
    DEFAULT_EVENT_PRIORITY,
)
from lepton_mc.config.enums import DecayMode, Event, RangePolicy, Scheme
from lepton_mc.core.errors import (
    CollaboratorError,
    ConfigurationError,
    ReturnCode,
    TransportError,
)
from lepton_mc.physics.energy_loss import EnergyLoss
from lepton_mc.physics.scattering import MultipleScattering
from lepton_mc.physics.tables import PhysicsTables

logger = logging.getLogger(__name__)

ErrorHandler = Callable[[ReturnCode, str, str], None]

# Settings copied by clone and accepted by configure
_SETTINGS = (
    "scheme",
    "forward",
    "longitudinal",
    "decay",
    "event",
    "kinetic_limit",
    "distance_max",
    "grammage_max",
    "time_max",
    "weight_limit",
    "accuracy",
    "domain_extent",
    "range_policy",
    "event_priority",
    "medium",
    "random",
    "error_handler",
)


class Context:
    """
    Configuration of the transport stepper.

    Attributes:
        tables: Read-only PhysicsTables of the transported species
        scheme: Scheme.CSDA, Scheme.HYBRID or Scheme.DETAILED
        forward: Forward (True) or backward (False) transport
        longitudinal: Omit transverse scattering in the hybrid scheme
        decay: DecayMode of unstable species
        event: Bitmask of the Event conditions that stop the transport
        kinetic_limit: Kinetic energy limit [GeV] (lower bound forward,
            upper bound backward)
        distance_max: Path length limit [m]
        grammage_max: Column depth limit [kg/m^2]
        time_max: Proper time limit [m/c]
        weight_limit: Weight below which Event.WEIGHT is raised
        accuracy: Maximum fractional energy loss per step
        domain_extent: Longest path of a transport call, also the step
            used when nothing else bounds it [m]
        range_policy: RangePolicy for energies above the tables
        event_priority: Order in which simultaneous events are reported
        medium: Medium resolver callback
        random: Random source callback
        error_handler: Error sink, notified before an error propagates
    """

    def __init__(self, tables: PhysicsTables, user_data: Any = None,
                 **settings):
        if not isinstance(tables, PhysicsTables):
            raise ConfigurationError("Context requires PhysicsTables")
        self.tables = tables
        self._user_data = user_data
        self._destroyed = False

        self.energy_loss = EnergyLoss(tables)
        self.scattering = MultipleScattering(tables)

        self.scheme = Scheme.DETAILED
        self.forward = True
        self.longitudinal = False
        self.decay = (DecayMode.WEIGHT if tables.particle.unstable
                      else DecayMode.DISABLED)
        self.event = Event.NONE
        self.kinetic_limit = 0.0
        self.distance_max = 0.0
        self.grammage_max = 0.0
        self.time_max = 0.0
        self.weight_limit = 0.0
        self.accuracy = DEFAULT_ACCURACY
        self.domain_extent = DEFAULT_DOMAIN_EXTENT
        self.range_policy = RangePolicy.CLAMP
        self.event_priority: Tuple[Event, ...] = DEFAULT_EVENT_PRIORITY
        self.medium: Optional[Callable] = None
        self.random: Optional[Callable] = None
        self.error_handler: Optional[ErrorHandler] = None

        self.configure(**settings)

    @property
    def user_data(self) -> Any:
        """Caller data bound for the lifetime of the context."""
        return self._user_data

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def configure(self, **settings) -> "Context":
        """
        Update settings by keyword, e.g. context.configure(forward=False).

        Raises:
            ConfigurationError: On unknown setting names
        """
        unknown = [key for key in settings if key not in _SETTINGS]
        if unknown:
            raise ConfigurationError(f"Unknown setting(s): {unknown}")
        for key, value in settings.items():
            setattr(self, key, value)
        return self

    def clone(self, user_data: Any = None,
              random: Optional[Callable] = None) -> "Context":
        """
        New context sharing the tables, with a copy of the settings.

        The random source is not shared: a source with a spawn() method is
        spawned for the clone, any other source must be given as random.

        Raises:
            ConfigurationError: If no random source can be made for the clone
        """
        settings = {key: getattr(self, key) for key in _SETTINGS}
        if random is not None:
            settings["random"] = random
        elif hasattr(self.random, "spawn"):
            settings["random"] = self.random.spawn()
        elif self.random is not None:
            raise ConfigurationError(
                "Cannot spawn the random source of the context, pass random "
                "to clone")
        return Context(self.tables, user_data, **settings)

    # ========================================================================
    # Validation
    # ========================================================================

    def validate(self):
        """
        Check the configuration before any step is taken.

        All problems are collected and reported in a single error.

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        errors = []

        if self._destroyed:
            errors.append("context has been destroyed")
        if not isinstance(self.scheme, Scheme):
            errors.append(f"invalid scheme {self.scheme!r}")
        if not isinstance(self.decay, DecayMode):
            errors.append(f"invalid decay mode {self.decay!r}")
        if not isinstance(self.range_policy, RangePolicy):
            errors.append(f"invalid range policy {self.range_policy!r}")
        try:
            mask = Event(self.event)
        except (TypeError, ValueError):
            mask = Event.NONE
            errors.append(f"invalid event mask {self.event!r}")

        for name in ("kinetic_limit", "distance_max", "grammage_max",
                     "time_max", "weight_limit"):
            value = getattr(self, name)
            if not (np.isfinite(value) and value >= 0.0):
                errors.append(f"{name} must be finite and >= 0, got {value}")
        for event, name in ((Event.LIMIT_DISTANCE, "distance_max"),
                            (Event.LIMIT_GRAMMAGE, "grammage_max"),
                            (Event.LIMIT_TIME, "time_max")):
            if mask & event and not getattr(self, name) > 0.0:
                errors.append(f"{event.name} is enabled but {name} is not > 0")
        if (mask & Event.LIMIT_KINETIC and not self.forward
                and not self.kinetic_limit > 0.0):
            errors.append("backward LIMIT_KINETIC requires kinetic_limit > 0")

        if not 0.0 < self.accuracy <= 1.0:
            errors.append(f"accuracy must be in (0, 1], got {self.accuracy}")
        if not self.domain_extent > 0.0:
            errors.append(f"domain_extent must be > 0, got {self.domain_extent}")

        for event in self.event_priority:
            if not isinstance(event, Event) or bin(int(event)).count("1") != 1:
                errors.append(f"invalid event {event!r} in event_priority")

        if self.medium is None or not callable(self.medium):
            errors.append("no medium callback")

        stochastic = isinstance(self.scheme, Scheme) and self.scheme.stochastic
        process = (self.decay is DecayMode.PROCESS and
                   self.tables.particle.unstable)
        if (stochastic or process) and not callable(self.random):
            errors.append("a random callback is required by the "
                          f"{'scheme' if stochastic else 'decay process'}")
        if process and not self.forward:
            errors.append("decay process is only supported in forward mode")

        if errors:
            raise ConfigurationError(
                "Invalid context: " + "; ".join(errors))

    # ========================================================================
    # Collaborators
    # ========================================================================

    def notify(self, error: TransportError, origin: str) -> TransportError:
        """Forward an error to the error sink and return it for raising."""
        logger.debug("%s: %s (%s)", origin, error, error.code.name)
        if self.error_handler is not None:
            self.error_handler(error.code, origin, str(error))
        return error

    def uniform(self) -> float:
        """Draw a variate in [0, 1) from the random callback."""
        u = self.random(self)
        try:
            u = float(u)
        except (TypeError, ValueError):
            raise CollaboratorError(f"Invalid random variate {u!r}",
                                    ReturnCode.RANDOM_ERROR) from None
        if not 0.0 <= u < 1.0:
            raise CollaboratorError(f"Random variate {u} outside of [0, 1)",
                                    ReturnCode.RANDOM_ERROR)
        return u

    def __repr__(self) -> str:
        direction = "forward" if self.forward else "backward"
        return (f"Context({self.tables.particle.name}, {self.scheme.name}, "
                f"{direction}, event={self.event!r})")


def create_context(tables: PhysicsTables, user_data: Any = None,
                   **settings) -> Context:
    """Create a transport context; see Context for the settings."""
    context = Context(tables, user_data, **settings)
    logger.debug("Created %r", context)
    return context


def destroy_context(context: Context):
    """Release a context; further transport calls with it are rejected."""
    context._destroyed = True
    context.medium = None
    context.random = None
    context.error_handler = None
    context._user_data = None
