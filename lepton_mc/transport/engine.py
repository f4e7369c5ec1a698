"""
Monte Carlo transport engine for leptons in heterogeneous media.

Integrates:
    - Continuous energy loss (CSDA range tables)
    - Sampled radiative losses and straggling (hybrid and detailed schemes)
    - Multiple Coulomb scattering and magnetic bending
    - Decays of unstable species
    - Step-size control and boundary location

A transport call advances a caller owned State, one elementary step at a
time, until an Event occurs:

    INIT -> RESOLVE_MEDIUM -> COMPUTE_STEP -> APPLY_PHYSICS -> CHECK_EVENTS
              ^                                                    |
              +------------------------ no event ------------------+

In backward mode the particle moves against its momentum direction and
gains energy; the weight is multiplied so that forward observables are
estimated without bias.
"""

import logging
from typing import NamedTuple, Optional, Tuple

import numpy as np

from lepton_mc.config.defaults import STEP_MIN, DEFAULT_EVENT_PRIORITY
from lepton_mc.config.enums import DecayMode, Event, Scheme
from lepton_mc.core.context import Context
from lepton_mc.core.errors import (
    CollaboratorError,
    ReturnCode,
    StateError,
    TransportError,
)
from lepton_mc.core.medium import Locals, Medium, as_locals
from lepton_mc.core.state import State
from lepton_mc.transport.step_size import (
    ACCURACY,
    EXTENT,
    GEOMETRY,
    LOCALS,
    MAGNETIC,
    grammage_step,
    remaining,
    select_step,
)

logger = logging.getLogger(__name__)

# Tolerance on the norm of input directions
DIRECTION_TOLERANCE = 1E-06


class TransportResult(NamedTuple):
    """Outcome of a transport call.

    Attributes:
        event: The Event that stopped the transport
        media: (medium of the last step start, medium at the final position),
            None when outside of the simulation volume
    """
    event: Event
    media: Tuple[Optional[Medium], Optional[Medium]]


def transport(context: Context, state: State) -> TransportResult:
    """
    Transport a lepton until an event occurs.

    A call travels at most context.domain_extent [m]. A particle reaching
    it is outside of the simulation: Event.MEDIUM is returned with None as
    the final medium.

    Parameters:
        context: Configured transport Context
        state: Lepton state, updated in place

    Returns:
        TransportResult

    Raises:
        TransportError: ConfigurationError, StateError, CollaboratorError or
            ValueOutOfRangeError. The context error_handler is notified first
            and the state is left at the last valid step.
    """
    return Stepper(context, state).run()


class Stepper:
    """
    Step loop of a single transport call.

    Usage:
        result = Stepper(context, state).run()
    """

    def __init__(self, context: Context, state: State):
        self.context = context
        self.state = state
        self.tables = context.tables
        self.particle = context.tables.particle
        self.sign = 1.0 if context.forward else -1.0
        self.stage = "init"
        self.extent_end = np.inf

    def run(self) -> TransportResult:
        try:
            return self._run()
        except TransportError as error:
            self.context.notify(error, f"transport:{self.stage}")
            raise

    def _run(self) -> TransportResult:
        context, state = self.context, self.state

        context.validate()
        self._check_state()
        self.extent_end = state.distance + context.domain_extent

        self.stage = "medium"
        medium, geometry_step = self._resolve(state)
        if medium is None:
            return self._terminate(Event.MEDIUM, None, None)

        event = self._select(self._initial_conditions())
        if event:
            return self._terminate(event, medium, medium)

        decay_time = self._sample_decay()
        while True:
            self.stage = "locals"
            local = self._locals(medium)

            self.stage = "step"
            event, end_medium = self._step(medium, local, geometry_step,
                                           decay_time)
            if event:
                return self._terminate(event, medium, end_medium)

            self.stage = "medium"
            previous = medium
            medium, geometry_step = self._resolve(state)
            if medium is None:
                return self._terminate(Event.MEDIUM, previous, None)

    # ========================================================================
    # Collaborators
    # ========================================================================

    def _resolve(self, state: State) -> Tuple[Optional[Medium], float]:
        """Call the medium resolver and check its result."""
        result = self.context.medium(self.context, state)
        try:
            medium, step = result
            step = float(step)
        except (TypeError, ValueError):
            raise CollaboratorError(
                f"Medium callback returned {result!r}, expected "
                "(medium, step)") from None
        if np.isnan(step):
            raise CollaboratorError("Medium callback returned a NaN step")

        if medium is not None:
            if not isinstance(medium, Medium):
                raise CollaboratorError(f"Invalid medium object {medium!r}")
            if not self.tables.has_material(medium.material):
                raise CollaboratorError(
                    f"Invalid material index {medium.material!r} for "
                    f"{medium!r}", ReturnCode.MATERIAL_ERROR)
        return medium, step

    def _locals(self, medium: Medium) -> Locals:
        """Call the locals callback of a medium and check its result."""
        result = medium.locals(medium, self.state)
        try:
            local = as_locals(result)
        except (TypeError, ValueError):
            raise CollaboratorError(
                f"Locals callback of {medium!r} returned {result!r}, "
                "expected (density, magnet, step)") from None

        if not (np.isfinite(local.density) and local.density >= 0.0):
            raise CollaboratorError(
                f"Invalid density {local.density} in {medium!r}",
                ReturnCode.DENSITY_ERROR)
        if local.magnet.shape != (3,) or not np.all(np.isfinite(local.magnet)):
            raise CollaboratorError(
                f"Invalid magnetic field {local.magnet} in {medium!r}")
        if np.isnan(local.step):
            raise CollaboratorError(f"NaN locals step in {medium!r}")
        return local

    def _gaussian(self) -> float:
        """Standard normal variate (Box-Muller) from the context random source."""
        u1 = self.context.uniform()
        u2 = self.context.uniform()
        return np.sqrt(-2.0 * np.log(1.0 - u1)) * np.cos(2.0 * np.pi * u2)

    # ========================================================================
    # Initialisation
    # ========================================================================

    def _check_state(self):
        state = self.state
        direction = np.asarray(state.direction, dtype=np.float64)
        position = np.asarray(state.position, dtype=np.float64)

        if direction.shape != (3,) or not np.all(np.isfinite(direction)):
            raise StateError(f"Invalid direction {state.direction!r}",
                             ReturnCode.DIRECTION_ERROR)
        if abs(np.linalg.norm(direction) - 1.0) > DIRECTION_TOLERANCE:
            raise StateError(
                f"Direction {direction.tolist()} is not a unit vector",
                ReturnCode.DIRECTION_ERROR)
        if position.shape != (3,) or not np.all(np.isfinite(position)):
            raise StateError(f"Invalid position {state.position!r}")
        if not (np.isfinite(state.kinetic) and state.kinetic >= 0.0):
            raise StateError(f"Invalid kinetic energy {state.kinetic}")
        if not (np.isfinite(state.weight) and state.weight >= 0.0):
            raise StateError(f"Invalid weight {state.weight}")
        if state.charge not in (-1.0, 1.0):
            raise StateError(f"Invalid charge {state.charge}, expected -1 or 1")
        if state.decayed:
            raise StateError("The particle has already decayed")

        self.tables.check_kinetic(state.kinetic, self.context.range_policy)
        state.direction = direction
        state.position = position

    def _initial_conditions(self) -> Event:
        """Conditions already holding before the first step."""
        context, state = self.context, self.state
        holding = self._kinetic_condition(state.kinetic)
        enabled = context.event
        if enabled & Event.LIMIT_DISTANCE and state.distance >= context.distance_max:
            holding |= Event.LIMIT_DISTANCE
        if enabled & Event.LIMIT_GRAMMAGE and state.grammage >= context.grammage_max:
            holding |= Event.LIMIT_GRAMMAGE
        if enabled & Event.LIMIT_TIME and state.time >= context.time_max:
            holding |= Event.LIMIT_TIME
        if enabled & Event.WEIGHT and state.weight <= context.weight_limit:
            holding |= Event.WEIGHT
        return holding

    def _sample_decay(self) -> float:
        """Proper time [m/c] of the decay, inf if decays are not sampled."""
        context = self.context
        if context.decay is DecayMode.PROCESS and self.particle.unstable:
            u = context.uniform()
            return self.state.time - self.particle.ctau * np.log(1.0 - u)
        return np.inf

    # ========================================================================
    # Elementary step
    # ========================================================================

    def _kinetic_target(self) -> float:
        """Kinetic energy the step must not cross [GeV], nan if none."""
        context = self.context
        if context.event & Event.LIMIT_KINETIC:
            return context.kinetic_limit
        return 0.0 if context.forward else np.nan

    def _step(self, medium: Medium, local: Locals, geometry_step: float,
              decay_time: float) -> Tuple[Event, Optional[Medium]]:
        """Perform one elementary step and check the event conditions."""
        context, state = self.context, self.state
        loss = context.energy_loss
        forward = context.forward
        stochastic = context.scheme.stochastic
        material, density = medium.material, local.density
        kinetic = state.kinetic
        magnetised = bool(np.any(local.magnet != 0.0))

        # Step size proposals
        proposals = {LOCALS: local.step,
                     EXTENT: remaining(self.extent_end, state.distance)}
        if geometry_step > 0.0:
            # Pushed by STEP_MIN only when the proposal does not move the particle
            end = state.position + self.sign * geometry_step * state.direction
            if np.array_equal(end, state.position):
                geometry_step = STEP_MIN
            proposals[GEOMETRY] = geometry_step

        target = self._kinetic_target()
        if not np.isnan(target):
            proposals[Event.LIMIT_KINETIC] = grammage_step(
                loss.grammage_to(material, kinetic, target, stochastic),
                density)

        enabled = context.event
        if enabled & Event.LIMIT_DISTANCE:
            proposals[Event.LIMIT_DISTANCE] = remaining(
                context.distance_max, state.distance)
        if enabled & Event.LIMIT_GRAMMAGE:
            proposals[Event.LIMIT_GRAMMAGE] = grammage_step(
                remaining(context.grammage_max, state.grammage), density)

        # Proper time per unit length, from the momentum at the step start
        momentum = self.particle.momentum(kinetic)
        time_rate = self.particle.mass / momentum if momentum > 0.0 else 0.0
        if time_rate > 0.0:
            if enabled & Event.LIMIT_TIME:
                proposals[Event.LIMIT_TIME] = remaining(
                    context.time_max, state.time) / time_rate
            if np.isfinite(decay_time):
                proposals[Event.DECAY] = remaining(
                    decay_time, state.time) / time_rate

        reference = kinetic if forward else max(kinetic, self.tables.kinetic[0])
        proposals[ACCURACY] = grammage_step(
            loss.accuracy_grammage(material, reference, context.accuracy,
                                   stochastic), density)
        if magnetised:
            proposals[MAGNETIC] = context.scattering.magnetic_step(
                state.direction, local.magnet, kinetic)

        step, source = select_step(proposals, context.domain_extent)

        # Distance to the next discrete loss
        discrete = False
        if stochastic and density > 0.0:
            interaction = grammage_step(
                loss.interaction_grammage(material, kinetic, context.uniform()),
                density)
            if 0.0 < interaction < step:
                step, source, discrete = interaction, None, True

        # Check the medium at the end of the chord, before any physics
        start = state.position.copy()
        direction = state.direction.copy()
        probe = state.copy()
        probe.position = start + self.sign * step * direction
        end_medium, _ = self._resolve(probe)
        if end_medium is not medium:
            located, end_medium = self._locate_boundary(
                medium, end_medium, probe, start, direction, step)
            if located < step:
                step, source, discrete = located, None, False

        # Continuous energy loss
        grammage = density * step
        k_end, weight_factor = loss.continuous(material, kinetic, grammage,
                                               forward, stochastic)
        if source is Event.LIMIT_KINETIC:
            k_end = target
        elif context.scheme is Scheme.DETAILED:
            sigma = loss.straggling_sigma(material, kinetic, grammage)
            if sigma > 0.0:
                delta = sigma * self._gaussian()
                if forward:
                    k_end = min(max(k_end - delta, target), kinetic)
                else:
                    k_end = max(k_end + delta, kinetic)
                    if not np.isnan(target):
                        k_end = min(k_end, target)
        if k_end < 0.0:
            k_end = 0.0

        # Accumulated path, column depth and proper time
        distance = state.distance + step
        if source is Event.LIMIT_DISTANCE:
            distance = context.distance_max
        elif source is EXTENT:
            distance = self.extent_end
        total_grammage = state.grammage + grammage
        if source is Event.LIMIT_GRAMMAGE:
            total_grammage = context.grammage_max
        if time_rate <= 0.0 and k_end > 0.0:
            time_rate = self.particle.mass / self.particle.momentum(k_end)
        time = state.time + step * time_rate
        if source is Event.LIMIT_TIME:
            time = context.time_max
        elif source is Event.DECAY:
            time = decay_time

        survival_factor = 1.0
        if context.decay is not DecayMode.DISABLED and self.particle.unstable:
            survival_factor = np.exp(-(time - state.time) / self.particle.ctau)
        if context.decay is DecayMode.WEIGHT:
            weight_factor *= survival_factor

        # Deflections, evaluated at the mean step energy
        k_mean = 0.5 * (kinetic + k_end)
        new_direction = direction
        scatter = (context.scheme is Scheme.DETAILED or
                   (context.scheme is Scheme.HYBRID and not context.longitudinal))
        if scatter and grammage > 0.0:
            theta_rms = context.scattering.calculate_rms_angle(
                material, k_mean, grammage)
            if theta_rms > 0.0:
                new_direction = context.scattering.scatter(
                    new_direction, theta_rms, context.uniform(),
                    context.uniform())
        if magnetised:
            new_direction = context.scattering.bend(
                new_direction, local.magnet, k_mean, state.charge,
                self.sign * step)

        # Discrete loss at the end of the step
        if discrete and k_end > 0.0:
            k_end, factor = loss.discrete(material, k_end, context.uniform(),
                                          forward)
            weight_factor *= factor

        self.tables.check_kinetic(k_end, context.range_policy)

        # Commit
        state.kinetic = float(k_end)
        state.weight *= float(weight_factor)
        state.position = probe.position
        state.direction = np.asarray(new_direction, dtype=np.float64)
        state.normalise()
        state.distance = float(distance)
        state.grammage = float(total_grammage)
        state.time = float(time)
        state.survival *= float(survival_factor)
        if source is Event.DECAY:
            state.decayed = True

        # Beyond the domain extent the particle is outside of the simulation
        if state.distance >= self.extent_end:
            end_medium = None

        return self._select(self._end_conditions(medium, end_medium)), end_medium

    def _locate_boundary(self, medium: Medium, end_medium: Optional[Medium],
                         probe: State, start: np.ndarray,
                         direction: np.ndarray,
                         step: float) -> Tuple[float, Optional[Medium]]:
        """
        Bisect the step chord for the first change of medium.

        Returns the shortest step [m] found in the next medium, within
        STEP_MIN past the boundary, and that medium.
        """
        low, high = 0.0, step
        while high - low > STEP_MIN:
            middle = 0.5 * (low + high)
            probe.position = start + self.sign * middle * direction
            found, _ = self._resolve(probe)
            if found is medium:
                low = middle
            else:
                high, end_medium = middle, found
        probe.position = start + self.sign * high * direction
        return high, end_medium

    # ========================================================================
    # Events
    # ========================================================================

    def _kinetic_condition(self, kinetic: float) -> Event:
        context = self.context
        if context.forward:
            if kinetic <= 0.0:
                return Event.LIMIT_KINETIC
            if context.event & Event.LIMIT_KINETIC and kinetic <= context.kinetic_limit:
                return Event.LIMIT_KINETIC
        elif context.event & Event.LIMIT_KINETIC and kinetic >= context.kinetic_limit:
            return Event.LIMIT_KINETIC
        return Event.NONE

    def _end_conditions(self, medium: Medium,
                        end_medium: Optional[Medium]) -> Event:
        """Conditions holding at the end of a step."""
        context, state = self.context, self.state
        holding = self._initial_conditions()
        if end_medium is None:
            holding |= Event.MEDIUM
        elif end_medium is not medium and context.event & Event.MEDIUM:
            holding |= Event.MEDIUM
        if state.decayed:
            holding |= Event.DECAY
        return holding

    def _select(self, holding: Event) -> Event:
        """First holding condition in order of priority."""
        if not holding:
            return Event.NONE
        for event in tuple(self.context.event_priority) + DEFAULT_EVENT_PRIORITY:
            if holding & event:
                return event
        return Event.NONE

    def _terminate(self, event: Event, start: Optional[Medium],
                   end: Optional[Medium]) -> TransportResult:
        logger.debug("Transport stopped on %s: %r -> %r, %r",
                     event.name, start, end, self.state)
        return TransportResult(event, (start, end))


# ============================================================================
# Example Usage
# ============================================================================

if __name__ == "__main__":
    from lepton_mc.core.context import create_context
    from lepton_mc.core.medium import UniformMedium
    from lepton_mc.core.random import GeneratorSource
    from lepton_mc.physics.tables import uniform_loss_tables

    print("\n" + "="*70)
    print("Backward muon flux below 100 m of rock")
    print("="*70)

    tables = uniform_loss_tables('muon', {
        'StandardRock': (2.2E-04, 4.0E-07, 265.4),
        'Air': (1.8E-04, 3.0E-07, 366.2),
    })
    rock = UniformMedium(tables.material_index('StandardRock'), 2.65E+03)
    air = UniformMedium(tables.material_index('Air'), 1.205)

    def layers(context, state):
        """Rock for z < 100 m, then 10 km of air."""
        z = state.position[2]
        uz = state.direction[2] if context.forward else -state.direction[2]
        for low, high, medium in ((0.0, 100.0, rock), (100.0, 1.01E+04, air)):
            if low <= z < high:
                if uz > 0.0:
                    return medium, (high - z) / uz
                if uz < 0.0:
                    return medium, (z - low) / -uz
                return medium, 0.0
        return None, 0.0

    context = create_context(tables, medium=layers,
                             random=GeneratorSource(seed=0),
                             forward=False, decay=DecayMode.WEIGHT)

    # Vertical downgoing muons observed at z = 0, sampled log-uniformly
    k_min, k_max, n_events = 1E-01, 1E+03, 1000
    flux, flux2 = 0.0, 0.0
    for i in range(n_events):
        u = context.uniform()
        kinetic = k_min * (k_max / k_min)**u
        state = State(kinetic, direction=(0.0, 0.0, -1.0),
                      weight=kinetic * np.log(k_max / k_min))
        result = transport(context, state)
        if result.media[1] is None:
            # Power law primary spectrum at the top of the atmosphere
            w = state.weight * 1.4E+03 * state.kinetic**-2.7
            flux += w
            flux2 += w * w

    flux /= n_events
    sigma = np.sqrt(max(flux2 / n_events - flux * flux, 0.0) / n_events)
    print(f"\nFlux: {flux:.3E} +- {sigma:.3E} GeV^-1 m^-2 s^-1 sr^-1 (arbitrary units)")
