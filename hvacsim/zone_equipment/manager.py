"""ZONE EQUIPMENT MANAGER
-----------------------
The zone equipment subsystem as seen by the HVAC solver. One simulation of
the subsystem:

1. runs the equipment of each controlled zone in priority order, each piece
   of equipment getting the load assigned to it by the load distribution;
2. solves the zone air mass balance to get the return flow rates;
3. sets the conditions at the zone return nodes;
4. mixes the return air of the zones served by each air loop and passes it
   to the return inlet of the air loop. If the return air changed too much
   since the previous pass, the air loops must be simulated again.
"""
from __future__ import annotations
from typing import TYPE_CHECKING
from ..logging import ModuleLogger
from ..air_flow.nodes import AirLoopId
from ..air_flow.topology import AirNetwork, Zone
from ..air_flow.mass_balance import MassBalanceEngine, ZoneAirMassFlowSettings
from ..air_flow.leaving_conditions import LeavingConditionsUpdater
from ..fluids import enthalpy
from ..system.flags import Flag, FlagIntent
from ..system.subsystems import Subsystem
from ..system.interface import update_hvac_interface
from .equipment import LoadDistributionScheme
from .load_distribution import LoadDistributionEngine

if TYPE_CHECKING:
    from ..system.context import SolverContext

logger = ModuleLogger.get_logger(__name__)

_PLR_SCHEMES = (
    LoadDistributionScheme.UNIFORM_PLR,
    LoadDistributionScheme.SEQUENTIAL_UNIFORM_PLR
)


class ZoneEquipmentManager(Subsystem):
    """Zone equipment subsystem.

    Parameters
    ----------
    network:
        The air system.
    mass_flow_settings:
        Settings of the zone air mass balance.
    """
    flag = Flag.ZONE_EQUIPMENT

    def __init__(self, network: AirNetwork, mass_flow_settings: ZoneAirMassFlowSettings | None = None):
        super().__init__()
        self.network = network
        self.load_distribution = LoadDistributionEngine()
        self.mass_balance = MassBalanceEngine(network, mass_flow_settings)
        self.leaving_conditions = LeavingConditionsUpdater(network)

    def get_input(self, context: SolverContext) -> None:
        controlled = [z.ID for z in self.network.zones if z.is_controlled]
        logger.info(f"zone equipment serves {len(controlled)} controlled zones")

    def simulate(self, context: SolverContext, first_iteration: bool) -> FlagIntent:
        for zone in self.network.zones:
            if zone.is_controlled:
                self.simulate_zone(zone, first_iteration)
        resimulate = self.mass_balance.balance(
            first_iteration=first_iteration,
            warmup=context.warmup,
            doing_sizing=context.doing_sizing,
            time_stamp=context.time_stamp
        )
        context.zone_mass_balance_hvac_resim = resimulate
        self.leaving_conditions.update(zone_sizing=context.doing_sizing)
        if self._update_return_paths(context):
            resimulate = True
        return FlagIntent.of(Flag.AIR_LOOPS) if resimulate else FlagIntent()

    def simulate_zone(self, zone: Zone, first_iteration: bool) -> None:
        """Runs the equipment of `zone` in priority order."""
        engine = self.load_distribution
        zone.sys_output_provided = 0.0
        zone.latent_output_provided = 0.0
        order = engine.init_output_required(zone)
        if zone.equipment_list is None:
            return
        engine.distribute(zone, first_iteration)
        heating = engine.is_heating(zone)
        record_capacity = first_iteration and zone.equipment_list.load_distribution_scheme in _PLR_SCHEMES
        for priority_num, i in enumerate(order):
            entry = zone.equipment_list[i]
            sensible = latent = 0.0
            if entry.priority(heating) > 0 and entry.equipment.is_available:
                load = engine.equipment_load(zone, i)
                sensible, latent = entry.equipment.simulate(load, first_iteration)
                if record_capacity:
                    if sensible > 0.0:
                        entry.heating_capacity = sensible
                    elif sensible < 0.0:
                        entry.cooling_capacity = sensible
            zone.sys_output_provided += sensible
            zone.latent_output_provided += latent
            engine.update(zone, sensible, latent, priority_num)

    def _mix_return_air(self, air_loop_id: AirLoopId) -> None:
        # return air path: mixes the return air of the zones served by the
        # air loop into the return path outlet node
        network = self.network
        outlet = network.nodes[network.air_loops[air_loop_id].return_path_outlet]
        m_dot = mT = mW = 0.0
        for zone in network.zones:
            if zone.config is None:
                continue
            for node_id, loop_id in zip(zone.config.return_nodes, zone.config.return_air_loops):
                if loop_id == air_loop_id:
                    node = network.nodes[node_id]
                    m = node.m_dot
                    m_dot += m
                    mT += m * node.T
                    mW += m * node.W
        outlet.m_dot = m_dot
        outlet.m_dot_max_avail = m_dot
        if m_dot > 0.0:
            outlet.T = mT / m_dot
            outlet.W = mW / m_dot
            outlet.h = enthalpy(outlet.T, outlet.W)

    def _update_return_paths(self, context: SolverContext) -> bool:
        resimulate = False
        for air_loop_id, air_loop in enumerate(self.network.air_loops):
            if air_loop.return_path_outlet is None or air_loop.return_inlet is None:
                continue
            air_loop_id = AirLoopId(air_loop_id)
            self._mix_return_air(air_loop_id)
            changed = update_hvac_interface(
                self.network.nodes[air_loop.return_path_outlet],
                self.network.nodes[air_loop.return_inlet],
                context.interface_tolerances,
                context.air_loop_trace(air_loop_id)
            )
            resimulate = resimulate or changed
        return resimulate
