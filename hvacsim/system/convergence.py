"""HVAC CONVERGENCE SOLVER
------------------------
Fixed-point iteration over the subsystems of the HVAC system within one
system time step.

The subsystems (air loops, zone equipment, non-zone equipment, plant loops
and electric circuits) are coupled through the conditions at their
connecting nodes. Rather than describing these couplings in a dependency
graph, every subsystem has a re-simulation flag. The solver only simulates
the subsystems with a raised flag, always in the same order, and each
subsystem tells the solver which flags to raise after it has run. The solver
stops when no flag is raised anymore or when the iteration limit is reached.

In the first iteration of a system time step all the subsystems are
simulated once unconditionally, after which all flags are raised again, so
that at least one more pass follows.
"""
from __future__ import annotations
from dataclasses import dataclass
import warnings
from ..logging import ModuleLogger
from ..air_flow.flow_limits import (
    reset_terminal_unit_flow_limits,
    resolve_air_loop_flow_limits,
    resolve_lockout_flags,
    reset_hvac_control,
    check_air_loop_flow_balance
)
from . import diagnostics
from .context import SolverContext, CallingPoint
from .flags import Flag
from .subsystems import Subsystem, PlantSubsystem

logger = ModuleLogger.get_logger(__name__)


class ConvergenceWarning(Warning):
    """Warning for when the HVAC system has not converged within the maximum
    number of iterations.
    """
    pass


@dataclass
class SolverResult:
    converged: bool
    iterations: int


class ConvergenceSolver:
    """Simulates the HVAC subsystems until their boundary conditions stop
    changing.

    Parameters
    ----------
    context:
        The solver context.
    air_loops, zone_equipment, non_zone_equipment, plant_loops,
    elec_circuits:
        The subsystems. A subsystem that is not present in the model may be
        left to None; its flag is then simply cleared when its turn comes.
    """

    def __init__(
        self,
        context: SolverContext,
        air_loops: Subsystem | None = None,
        zone_equipment: Subsystem | None = None,
        non_zone_equipment: Subsystem | None = None,
        plant_loops: PlantSubsystem | None = None,
        elec_circuits: Subsystem | None = None
    ):
        self.context = context
        self.subsystems: dict[Flag, Subsystem | None] = {
            Flag.AIR_LOOPS: air_loops,
            Flag.ZONE_EQUIPMENT: zone_equipment,
            Flag.NON_ZONE_EQUIPMENT: non_zone_equipment,
            Flag.PLANT_LOOPS: plant_loops,
            Flag.ELEC_CIRCUITS: elec_circuits
        }
        self.plant = plant_loops

    def _run(self, flag: Flag) -> None:
        # The flag of a subsystem is cleared before the subsystem runs; the
        # subsystem may raise it again through its intent.
        context = self.context
        context.flags[flag] = False
        subsystem = self.subsystems[flag]
        if subsystem is None:
            return
        subsystem.ensure_input(context)
        intent = subsystem.simulate(context, context.first_hvac_iteration)
        context.flags.apply(intent)

    def solve(self) -> SolverResult:
        """Runs the HVAC iterations of one system time step.

        Returns
        -------
        A `SolverResult` telling whether all the re-simulation flags were
        cleared, and the number of passes after the first one.
        """
        context = self.context
        flags = context.flags
        limits = context.limits
        plant = self.plant

        flags.set_all(True)
        context.first_hvac_iteration = True
        context.hvac_manage_iteration = 0
        reset_hvac_control(context.network)
        if plant is not None:
            plant.set_all_sim_flags(True)

        # first pass
        any_hook_ran = context.run_hooks(CallingPoint.BEFORE_HVAC_MANAGERS)
        if plant is not None:
            plant.reinit_at_first_iteration(context)
        context.run_managers()
        any_hook_ran = context.run_hooks(CallingPoint.AFTER_HVAC_MANAGERS) or any_hook_ran
        any_hook_ran = context.run_hooks(CallingPoint.HVAC_ITERATION_LOOP) or any_hook_ran
        self.simulate_selected_equipment(lock_plant_flows=False)
        flags.set_all(True)
        if plant is not None:
            plant.set_all_sim_flags(True)
        context.first_hvac_iteration = False

        while flags.any() and context.hvac_manage_iteration <= limits.max_iter:
            if context.stop_simulation:
                break
            any_hook_ran = context.run_hooks(CallingPoint.HVAC_ITERATION_LOOP)
            self.simulate_selected_equipment(lock_plant_flows=False)
            self._update_zone_inlet_convergence_log()
            if plant is not None:
                plant.update_convergence_log()
            context.hvac_manage_iteration += 1
            if any_hook_ran and context.hvac_manage_iteration <= 2:
                # hooks that change set points need the air loops to follow
                flags.air_loops = True
            if context.hvac_manage_iteration < limits.min_air_loop_iterations_after_first:
                flags.air_loops = True
                flags.zone_equipment = True

        converged = not flags.any()
        if plant is not None and plant.lacks_splitter_mixer_continuity():
            self._reconcile_plant_flows()
        if plant is not None:
            plant.check_consistency(context)

        if context.hvac_manage_iteration > limits.max_iter and not context.warmup:
            self._report_nonconvergence()
        if not context.warmup and context.air_loops_sim_once:
            check_air_loop_flow_balance(context.network, context.time_stamp)
        context.begin_environment_flag = False
        return SolverResult(converged, context.hvac_manage_iteration)

    def simulate_selected_equipment(self, lock_plant_flows: bool) -> None:
        """Simulates the subsystems whose re-simulation flag is raised, in
        the fixed order air loops, zone equipment, non-zone equipment,
        electric circuits, plant loops, electric circuits.

        Within one call, the air loops and the zone equipment are iterated
        until neither of them needs to be simulated again, or until
        `max_air` iterations.
        """
        context = self.context
        flags = context.flags
        network = context.network
        plant = self.plant
        if plant is not None:
            plant.set_flow_lock(lock_plant_flows)
            plant.reset_interconnect_flags()

        if context.first_hvac_iteration:
            context.rep_iter_air = 0
            self._run(Flag.AIR_LOOPS)
            context.air_loops_sim_once = True
            flags.air_loops = True
            reset_terminal_unit_flow_limits(network)
            context.flow_max_avail_already_reset = True
            self._run(Flag.ZONE_EQUIPMENT)
            flags.zone_equipment = True
            self._run(Flag.NON_ZONE_EQUIPMENT)
            self._run(Flag.ELEC_CIRCUITS)
            self._run(Flag.PLANT_LOOPS)
            self._run(Flag.ELEC_CIRCUITS)
            return

        flow_resolution_needed = False
        iter_air = 0
        while (flags.air_loops or flags.zone_equipment) and iter_air <= context.limits.max_air:
            iter_air += 1
            if flags.air_loops:
                self._run(Flag.AIR_LOOPS)
                flags.elec_circuits = True
            if flow_resolution_needed:
                flags.zone_equipment = True
            if flags.zone_equipment:
                if iter_air == 1 and not context.flow_max_avail_already_reset:
                    # the air loops must run again before the flow limits
                    # at the terminal units can be resolved
                    flow_resolution_needed = True
                else:
                    resolve_air_loop_flow_limits(network)
                    flow_resolution_needed = False
                self._run(Flag.ZONE_EQUIPMENT)
                flags.elec_circuits = True
            context.flow_max_avail_already_reset = False
        context.rep_iter_air += iter_air
        context.air_loop_converg_fail = iter_air > context.limits.max_air

        if resolve_lockout_flags(network):
            flags.air_loops = True
        if flags.non_zone_equipment:
            self._run(Flag.NON_ZONE_EQUIPMENT)
            flags.elec_circuits = True
        if flags.elec_circuits:
            self._run(Flag.ELEC_CIRCUITS)
        if not flags.plant_loops and plant is not None and plant.any_loop_sides_need_sim():
            flags.plant_loops = True
        if flags.plant_loops:
            self._run(Flag.PLANT_LOOPS)
        if flags.elec_circuits:
            self._run(Flag.ELEC_CIRCUITS)

    def _reconcile_plant_flows(self) -> None:
        # The flow lock states of the plant and of the other subsystems must
        # agree: twice, a plant-only pass with unlocked plant flow followed
        # by a pass of everything else with locked plant flow.
        context = self.context
        flags = context.flags
        for _ in range(2):
            flags.set_all(False)
            flags.plant_loops = True
            self.plant.set_all_sim_flags(True)
            self.simulate_selected_equipment(lock_plant_flows=False)
            flags.set_all(True)
            flags.plant_loops = False
            self.simulate_selected_equipment(lock_plant_flows=True)
            self._update_zone_inlet_convergence_log()
            self.plant.update_convergence_log()

    def _update_zone_inlet_convergence_log(self) -> None:
        context = self.context
        network = context.network
        for zone in network.zones:
            if zone.config is None:
                continue
            for node_id in zone.config.inlet_nodes:
                node = network.nodes[node_id]
                context.zone_inlet_trace(node_id).record(m_dot=node.m_dot, W=node.W, T=node.T)

    def _report_nonconvergence(self) -> None:
        context = self.context
        limits = context.limits
        context.err_count += 1
        if context.err_count > limits.max_warnings:
            return
        unconverged = ', '.join(flag.value for flag in context.flags.raised())
        warnings.warn(
            f"maximum HVAC iterations ({limits.max_iter}) exceeded for all "
            f"HVAC loops at {context.time_stamp}; still to be simulated: "
            f"{unconverged or 'none'}",
            category=ConvergenceWarning
        )
        if context.air_loop_converg_fail:
            logger.warning(
                f"the air loops and zone equipment did not converge within "
                f"{limits.max_air} iterations"
            )
        if context.display_extra_warnings:
            traces = context.traces()
            if self.plant is not None:
                traces.extend(self.plant.traces())
            diagnostics.report(traces)
        elif context.err_count == 1:
            logger.warning(
                "set display_extra_warnings to True for more information "
                "on the HVAC iterations that did not converge"
            )
        if context.err_count == limits.max_warnings:
            logger.warning(
                f"further warnings about exceeding the maximum HVAC "
                f"iterations in environment '{context.environment_name}' "
                f"are suppressed"
            )
