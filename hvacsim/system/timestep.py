"""SYSTEM TIME STEP CONTROL
-------------------------
The zone heat balance is solved at a fixed zone time step. When the zone air
temperatures change too much during one zone time step, the HVAC system is
simulated with a shorter system time step: the zone time step is divided in
N equal system time steps, N being chosen so that the zone air temperature
change per system time step stays within a tolerance.

In each system time step the zone air model predicts the loads the HVAC
system must meet, the HVAC system is solved, and the zone air model corrects
the zone air temperatures with the output the HVAC system actually delivered.
"""
from __future__ import annotations
from typing import TYPE_CHECKING
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
import math
from ..logging import ModuleLogger
from ..air_flow.heat_to_return import set_heat_to_return_air_flag
from .. import Quantity
from .context import SolverContext, CallingPoint

if TYPE_CHECKING:
    from .convergence import ConvergenceSolver, SolverResult

logger = ModuleLogger.get_logger(__name__)

Q_ = Quantity


class ZoneAirModel(ABC):
    """Predictor/corrector model of the zone air, which is not part of this
    package.

    The predictor sets the energy and moisture demand of the zones
    (`zone.energy_demand.set_required(...)` and
    `zone.moisture_demand.set_required(...)`) for the current system time
    step. The corrector updates the zone air temperature and humidity ratio
    at the zone nodes with the output delivered by the HVAC system.
    """

    def get_zone_setpoints(self, context: SolverContext) -> None:
        pass

    @abstractmethod
    def predict(self, context: SolverContext, shorten_time_step: bool, use_zone_history: bool) -> None:
        """Predicts the zone loads.

        Parameters
        ----------
        context:
            The solver context (`context.time_step_sys` is the length of the
            system time step in seconds).
        shorten_time_step:
            True when the zone time step has been divided in shorter system
            time steps.
        use_zone_history:
            True if the zone air history of the zone time step must be used,
            False if the history of the previous system time step must be
            used.
        """
        ...

    @abstractmethod
    def correct(self, context: SolverContext, shorten_time_step: bool, use_zone_history: bool) -> float:
        """Corrects the zone air conditions and returns the largest change of
        the zone air temperature over the time step in K.
        """
        ...

    def push_system_timestep_history(self, context: SolverContext) -> None:
        pass

    def push_zone_timestep_history(self, context: SolverContext) -> None:
        pass


@dataclass
class TimestepResult:
    num_sys_time_steps: int
    time_step_sys: float  # s
    solver_results: list[SolverResult] = field(default_factory=list)


class TimestepController:
    """Runs the HVAC simulation of one zone time step.

    Parameters
    ----------
    context:
        The solver context.
    solver:
        The HVAC convergence solver.
    zone_air_model:
        The predictor/corrector model of the zone air.
    time_step_zone:
        Length of the zone time step, in seconds.
    max_zone_temp_diff:
        Maximum allowed change of the zone air temperature within one system
        time step, in K.
    min_time_step_sys:
        Minimum length of a system time step, in seconds.
    """

    def __init__(
        self,
        context: SolverContext,
        solver: ConvergenceSolver,
        zone_air_model: ZoneAirModel,
        time_step_zone: float = 3600.0,
        max_zone_temp_diff: float = 0.3,
        min_time_step_sys: float = 60.0
    ):
        self.context = context
        self.solver = solver
        self.zone_air_model = zone_air_model
        self.time_step_zone = time_step_zone
        self.max_zone_temp_diff = max_zone_temp_diff
        self.min_time_step_sys = min_time_step_sys
        self.num_sys_steps_last_zone_step = 1

    @classmethod
    def create(
        cls,
        context: SolverContext,
        solver: ConvergenceSolver,
        zone_air_model: ZoneAirModel,
        time_step_zone: Quantity = Q_(1.0, 'hr'),
        max_zone_temp_diff: Quantity = Q_(0.3, 'delta_degC'),
        min_time_step_sys: Quantity = Q_(1.0, 'minute')
    ) -> TimestepController:
        """Creates a `TimestepController` with its time steps and temperature
        tolerance given as quantities.
        """
        return cls(
            context,
            solver,
            zone_air_model,
            time_step_zone=time_step_zone.to('s').m,
            max_zone_temp_diff=max_zone_temp_diff.to('delta_degC').m,
            min_time_step_sys=min_time_step_sys.to('s').m
        )

    @property
    def limit_num_sys_steps(self) -> int:
        """Maximum number of system time steps in a zone time step."""
        return max(1, int(self.time_step_zone / self.min_time_step_sys))

    def num_sys_steps(self, zone_temp_change: float) -> int:
        """Returns the number of system time steps needed to keep the zone
        air temperature change per system time step within the tolerance.
        """
        if zone_temp_change <= self.max_zone_temp_diff:
            return 1
        n = math.ceil(zone_temp_change / self.max_zone_temp_diff)
        return min(n, self.limit_num_sys_steps)

    def _solve(self) -> list[SolverResult]:
        # one HVAC solve, repeated while the condenser entering temperature
        # optimization asks for it
        context = self.context
        results = [self.solver.solve()]
        if (
            context.any_ideal_cond_ent_setpoint
            and not context.warmup
            and context.meters_initialized
        ):
            context.run_opt_cond_ent_temp = True
            passes = 0
            while context.run_opt_cond_ent_temp and passes < context.limits.max_opt_passes:
                results.append(self.solver.solve())
                passes += 1
            context.run_opt_cond_ent_temp = False
        return results

    def manage(self) -> TimestepResult:
        """Simulates the HVAC system over one zone time step, divided in as
        many system time steps as needed.
        """
        context = self.context
        model = self.zone_air_model
        network = context.network

        for zone in network.zones:
            zone.T_avg = 0.0
            zone.W_avg = 0.0
        context.time_step_zone = self.time_step_zone
        context.time_step_sys = self.time_step_zone
        context.first_time_step_sys = True
        context.sys_time_elapsed = 0.0

        context.run_hooks(CallingPoint.BEGIN_TIMESTEP_BEFORE_PREDICTOR)
        model.get_zone_setpoints(context)
        if context.air_loops_sim_once:
            set_heat_to_return_air_flag(network, first_call=not context.heat_to_return_checked)
            context.heat_to_return_checked = True

        # full zone time step
        model.predict(context, shorten_time_step=False, use_zone_history=True)
        results = self._solve()
        zone_temp_change = model.correct(context, shorten_time_step=False, use_zone_history=True)

        if zone_temp_change > self.max_zone_temp_diff and not context.kick_off_simulation:
            num_steps = self.num_sys_steps(zone_temp_change)
            context.time_step_sys = max(self.time_step_zone / num_steps, self.min_time_step_sys)
            logger.debug(
                f"zone temperature change {zone_temp_change:.3f} K: zone time "
                f"step divided in {num_steps} system time steps"
            )
        else:
            num_steps = 1
        context.num_of_sys_time_steps = num_steps

        for i in range(num_steps):
            if context.stop_simulation:
                break
            if context.time_step_sys < self.time_step_zone:
                # history of the previous system time step on all but the
                # first system time step
                use_zone_history = i == 0
                model.predict(context, shorten_time_step=True, use_zone_history=use_zone_history)
                results.extend(self._solve())
                model.correct(context, shorten_time_step=True, use_zone_history=use_zone_history)
                model.push_system_timestep_history(context)
            frac = context.time_step_sys / self.time_step_zone
            for zone in network.zones:
                zone_air = network.zone_air(zone)
                zone.T_avg += zone_air.T * frac
                zone.W_avg += zone_air.W * frac
            context.run_hooks(CallingPoint.END_SYSTEM_TIMESTEP_BEFORE_REPORTING)
            context.run_hooks(CallingPoint.END_SYSTEM_TIMESTEP_AFTER_REPORTING)
            context.sys_time_elapsed += context.time_step_sys
            context.sim_time += context.time_step_sys
            context.first_time_step_sys = False

        model.push_zone_timestep_history(context)
        self.num_sys_steps_last_zone_step = num_steps
        return TimestepResult(num_steps, context.time_step_sys, results)
