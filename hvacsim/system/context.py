"""SOLVER CONTEXT
---------------
State of one simulation run that is shared by the timestep controller, the
convergence solver and the subsystems: the air network, the re-simulation
flags, the timing of the current system time step, warm-up and stop signals,
warning counters and the convergence traces.

A context is created at the start of a run and passed explicitly to every
call. At the start of each simulation environment (design day or run period)
`begin_environment()` resets the environment-dependent state.
"""
from __future__ import annotations
from typing import Callable
from enum import Enum
from ..air_flow.nodes import NodeId, AirLoopId
from ..air_flow.topology import AirNetwork
from ..fluids import (
    STANDARD_PRESSURE,
    STANDARD_TEMPERATURE,
    enthalpy,
    humidity_ratio_from_dew_point
)
from .. import Quantity
from .flags import SimulationFlags
from .parameters import ConvergenceLimits, InterfaceTolerances
from .trace import ConvergenceTrace, TraceKind, INTERFACE_QUANTITIES


class CallingPoint(Enum):
    """Points in the time step where external hooks can intervene."""
    BEGIN_TIMESTEP_BEFORE_PREDICTOR = 'begin time step before predictor'
    BEFORE_HVAC_MANAGERS = 'before HVAC managers'
    AFTER_HVAC_MANAGERS = 'after HVAC managers'
    HVAC_ITERATION_LOOP = 'inside HVAC iteration loop'
    END_SYSTEM_TIMESTEP_BEFORE_REPORTING = 'end of system time step before reporting'
    END_SYSTEM_TIMESTEP_AFTER_REPORTING = 'end of system time step after reporting'


Hook = Callable[['SolverContext'], bool | None]
Manager = Callable[['SolverContext'], None]


class SolverContext:
    """Shared state of a simulation run.

    Parameters
    ----------
    network:
        The air system of the building model.
    limits:
        Iteration limits of the HVAC solver.
    interface_tolerances:
        Tolerances applied when transferring conditions between the demand
        and supply side of the air loops.
    display_extra_warnings:
        If True, the convergence traces are analyzed and reported when the
        HVAC solver does not converge.
    """

    def __init__(
        self,
        network: AirNetwork,
        limits: ConvergenceLimits | None = None,
        interface_tolerances: InterfaceTolerances | None = None,
        display_extra_warnings: bool = False
    ):
        self.network = network
        self.limits = limits or ConvergenceLimits()
        self.interface_tolerances = interface_tolerances or InterfaceTolerances()
        self.display_extra_warnings = display_extra_warnings
        self.flags = SimulationFlags()
        self._hooks: dict[CallingPoint, list[Hook]] = {cp: [] for cp in CallingPoint}
        self._managers: list[Manager] = []
        self.zone_inlet_traces: dict[NodeId, ConvergenceTrace] = {}
        self.air_loop_traces: dict[AirLoopId, ConvergenceTrace] = {}
        self.clear_state()

    def clear_state(self) -> None:
        """Puts the run state back to its initial values."""
        self.flags.set_all(False)
        self.environment_name = ''
        self.begin_environment_flag = False
        self.warmup = False
        self.doing_sizing = False
        self.kick_off_simulation = False
        self.stop_simulation = False
        self.meters_initialized = True
        # timing of the current zone and system time step
        self.time_step_zone = 3600.0  # s
        self.time_step_sys = 3600.0  # s
        self.sys_time_elapsed = 0.0  # s
        self.num_of_sys_time_steps = 1
        self.first_time_step_sys = True
        self.sim_time = 0.0  # s, since the start of the environment
        # HVAC solver state
        self.first_hvac_iteration = True
        self.hvac_manage_iteration = 0
        self.rep_iter_air = 0
        self.air_loops_sim_once = False
        self.air_loop_converg_fail = False
        self.flow_max_avail_already_reset = False
        self.zone_mass_balance_hvac_resim = False
        self.any_ideal_cond_ent_setpoint = False
        self.run_opt_cond_ent_temp = False
        self.err_count = 0
        self.heat_to_return_checked = False
        for trace in self.traces():
            trace.clear()

    def begin_environment(
        self,
        name: str,
        T_initial: Quantity = STANDARD_TEMPERATURE,
        T_dew_point: Quantity | None = None,
        P: Quantity = STANDARD_PRESSURE
    ) -> None:
        """Resets the state that depends on the simulation environment at
        the start of a new environment (design day or run period).

        Parameters
        ----------
        name:
            Name of the environment, used in warning messages.
        T_initial:
            Initial air temperature of all the nodes.
        T_dew_point:
            Dew point of the initial air state of all the nodes. If None, the
            nodes are initialized with a humidity ratio of 0.008 kg/kg.
        P:
            Initial air pressure of all the nodes.
        """
        self.clear_state()
        self.environment_name = name
        self.begin_environment_flag = True
        self.warmup = True
        T = T_initial.to('degC').m
        if T_dew_point is not None:
            W = humidity_ratio_from_dew_point(T_dew_point, P).to('kg / kg').m
        else:
            W = 0.008
        self.network.nodes.reset(T, W, P.to('Pa').m, enthalpy(T, W))
        for air_loop in self.network.air_loops:
            air_loop.flow.flow_error = False
        for zone in self.network.zones:
            if zone.config is not None:
                zone.config.flow_error = False

    def register_hook(self, calling_point: CallingPoint, hook: Hook) -> None:
        """Registers a callable that is called with this context at
        `calling_point`. A hook may raise re-simulation flags through
        `context.flags`; it should return True when it changed anything.
        """
        self._hooks[calling_point].append(hook)

    def run_hooks(self, calling_point: CallingPoint) -> bool:
        """Calls the hooks registered at `calling_point`. Returns True if any
        of them reports that it changed anything.
        """
        results = [bool(hook(self)) for hook in self._hooks[calling_point]]
        return any(results)

    def register_manager(self, manager: Manager) -> None:
        """Registers a set point or availability manager, which is called
        once at the start of each HVAC solve.
        """
        self._managers.append(manager)

    def run_managers(self) -> None:
        for manager in self._managers:
            manager(self)

    def zone_inlet_trace(self, node_id: NodeId) -> ConvergenceTrace:
        trace = self.zone_inlet_traces.get(node_id)
        if trace is None:
            trace = ConvergenceTrace(
                self.network.nodes[node_id].name,
                TraceKind.ZONE_INLET_NODE,
                depth=self.limits.trace_depth
            )
            self.zone_inlet_traces[node_id] = trace
        return trace

    def air_loop_trace(self, air_loop_id: AirLoopId) -> ConvergenceTrace:
        trace = self.air_loop_traces.get(air_loop_id)
        if trace is None:
            trace = ConvergenceTrace(
                self.network.air_loops[air_loop_id].ID,
                TraceKind.AIR_LOOP_INTERFACE,
                quantities=INTERFACE_QUANTITIES,
                depth=self.limits.trace_depth
            )
            self.air_loop_traces[air_loop_id] = trace
        return trace

    def traces(self) -> list[ConvergenceTrace]:
        return [*self.air_loop_traces.values(), *self.zone_inlet_traces.values()]

    @property
    def time_stamp(self) -> str:
        hours = self.sim_time / 3600.0
        return f"environment '{self.environment_name}', simulation time {hours:.2f} h"
