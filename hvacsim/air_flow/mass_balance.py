"""ZONE AIR MASS BALANCE
----------------------
Determines the return air flow rates of the zones, and of the air loops they
return to, from the supply, exhaust and zone mixing flow rates, such that the
air mass flowing into each zone equals the air mass flowing out.

When the mass balance is enforced, the zone mixing flow rates are adjusted
iteratively so that the mixing flow a zone receives makes up for the
difference between its outgoing and incoming air flows, and the infiltration
flow rates can be adjusted or augmented to close the balance. When the mass
balance is not enforced, a single pass is made and the exhaust flow that
cannot be compensated by the inlet flow is passed on to the air loops as
"excess zone exhaust", which reduces their return flow.
"""
from __future__ import annotations
from enum import Enum
from dataclasses import dataclass
import pandas as pd
from ..logging import ModuleLogger
from .. import Quantity
from ..fluids import density, STANDARD_AIR_DENSITY
from .nodes import ZoneId
from .topology import AirNetwork, Zone

logger = ModuleLogger.get_logger(__name__)

Q_ = Quantity

SMALL_MASS_FLOW = 0.001  # kg/s
SMALL_AIR_VOL_FLOW = 0.001  # m³/s

_rho_std = STANDARD_AIR_DENSITY.to('kg / m ** 3').m


class ReturnNodeConfigurationError(Exception):
    """Raised when the return nodes of a zone are connected in a way the mass
    balance cannot handle.
    """
    pass


class InfiltrationTreatment(Enum):
    NONE = 'None'
    ADJUST = 'AdjustInfiltrationFlow'
    ADD = 'AddInfiltrationFlow'


class InfiltrationZoneType(Enum):
    ALL_ZONES = 'AllZones'
    MIXING_SOURCE_ZONES_ONLY = 'MixingSourceZonesOnly'


@dataclass
class ZoneAirMassFlowSettings:
    """Settings of the zone air mass balance.

    Attributes
    ----------
    enforce_zone_mass_balance:
        If True, the mass balance is solved iteratively so that the flows of
        every zone add up.
    balance_mixing:
        If True (and the mass balance is enforced), the zone mixing flow
        rates are adjusted to balance the receiving zones.
    infiltration_treatment:
        How the infiltration flow rates are used to close the mass balance.
    infiltration_zone_type:
        Zones where the infiltration flow rate may be changed.
    tolerance:
        Convergence tolerance on the total zone mixing flow rate, kg/s.
    iter_max:
        Maximum number of iterations.
    """
    enforce_zone_mass_balance: bool = False
    balance_mixing: bool = False
    infiltration_treatment: InfiltrationTreatment = InfiltrationTreatment.NONE
    infiltration_zone_type: InfiltrationZoneType = InfiltrationZoneType.MIXING_SOURCE_ZONES_ONLY
    tolerance: float = 1.0e-5
    iter_max: int = 25


class MassBalanceEngine:
    """Solves the zone air mass balance of an `AirNetwork`.

    Parameters
    ----------
    network:
        The air system.
    settings:
        Settings of the mass balance. Defaults to a mass balance that is not
        enforced.
    """

    def __init__(self, network: AirNetwork, settings: ZoneAirMassFlowSettings | None = None):
        self.network = network
        self.settings = settings or ZoneAirMassFlowSettings()
        self.iterations = 0
        self._building_mixing_m_dot = 0.0

    def zone_order(self) -> list[ZoneId]:
        """Returns the order in which the zones are balanced. With enforcement,
        the zones receiving mixing air come first and the zones that only
        deliver mixing air last.
        """
        ids = [ZoneId(i) for i in range(len(self.network.zones))]
        if not self.settings.enforce_zone_mass_balance:
            return ids
        receiving, other, source_only = [], [], []
        for zid in ids:
            mc = self.network.zones[zid].mass_conservation
            if mc.is_receiving_zone:
                receiving.append(zid)
            elif mc.is_source_zone:
                source_only.append(zid)
            else:
                other.append(zid)
        return receiving + other + source_only

    @property
    def balances_mixing(self) -> bool:
        s = self.settings
        return s.enforce_zone_mass_balance and s.balance_mixing

    def balance(
        self,
        first_iteration: bool = False,
        warmup: bool = False,
        doing_sizing: bool = False,
        time_stamp: str = ''
    ) -> bool:
        """Determines the return air flow rates of all zones and air loops,
        and, when the mass balance is enforced, the zone mixing and
        infiltration flow rates.

        Parameters
        ----------
        first_iteration:
            True during the first HVAC iteration of the system time step.
        warmup:
            True during the warm-up days of an environment.
        doing_sizing:
            True during a sizing simulation.
        time_stamp:
            Simulation time used in warning messages.

        Returns
        -------
        True if the zone mixing flows changed since the previous call, so
        that the HVAC system must be simulated again.

        Raises
        ------
        ReturnNodeConfigurationError:
            During sizing, if a zone has more than one return node.
        """
        s = self.settings
        network = self.network
        building_mixing_old = 0.0
        zone_order = self.zone_order()
        for i in range(s.iter_max):
            for air_loop in network.air_loops:
                air_loop.flow.zone_ret_flow = 0.0
                air_loop.flow.excess_zone_exh_flow = 0.0
            building_mixing = 0.0
            for zid in zone_order:
                building_mixing += self._balance_zone(zid, i, first_iteration, warmup, doing_sizing, time_stamp)
            self.iterations = i + 1
            if not s.enforce_zone_mass_balance:
                break
            # the first iteration starts from the current mixing flows
            if i > 0 and abs(building_mixing - building_mixing_old) < s.tolerance:
                break
            building_mixing_old = building_mixing
        resimulate = (
            s.enforce_zone_mass_balance
            and abs(building_mixing - self._building_mixing_m_dot) >= s.tolerance
        )
        self._building_mixing_m_dot = building_mixing
        self._normalize_air_loop_return_flows()
        return resimulate

    def _balance_zone(
        self,
        zid: ZoneId,
        iteration: int,
        first_iteration: bool,
        warmup: bool,
        doing_sizing: bool,
        time_stamp: str
    ) -> float:
        # Balances one zone; returns the mixing flow rate the zone receives.
        network = self.network
        zone = network.zones[zid]
        mc = zone.mass_conservation
        config = zone.config
        inlet_m_dot = exh_m_dot = balanced_exh_m_dot = 0.0
        if config is not None:
            inlet_m_dot = sum(network.nodes[n].m_dot for n in config.inlet_nodes)
            exh_m_dot = sum(network.nodes[n].m_dot for n in config.exhaust_nodes)
            balanced_exh_m_dot = config.balanced_exhaust_m_dot
            config.tot_inlet_m_dot = inlet_m_dot

        if self.balances_mixing and mc.is_receiving_zone:
            if iteration == 0:
                mixing_m_dot = network.zone_mixing_m_dot(zid)
            else:
                mixing_m_dot = max(0.0, mc.ret_m_dot + exh_m_dot - inlet_m_dot + mc.mixing_source_m_dot)
            self._set_receiving_zone_mixing(zid, mixing_m_dot)
        else:
            mixing_m_dot = network.zone_mixing_m_dot(zid)
        mixing_source_m_dot = self.zone_mixing_flow_of_source_zone(zid)

        mc.in_m_dot = inlet_m_dot
        mc.exh_m_dot = exh_m_dot
        mc.mixing_m_dot = mixing_m_dot

        # default return flow: inlets minus exhausts, corrected for mixing
        # and for exhaust balanced by zone equipment outdoor air
        std_return_m_dot = (
            inlet_m_dot + mixing_m_dot - mixing_source_m_dot
            - (exh_m_dot - balanced_exh_m_dot)
        )
        if config is not None:
            config.excess_zone_exh = 0.0
            if std_return_m_dot < 0.0 and not self.settings.enforce_zone_mass_balance:
                config.excess_zone_exh = -std_return_m_dot
        std_return_m_dot = max(0.0, std_return_m_dot)

        if config is not None and config.return_nodes:
            ret_m_dot = self.calc_zone_return_flows(zone, std_return_m_dot, doing_sizing)
        else:
            ret_m_dot = 0.0
        mc.ret_m_dot = ret_m_dot

        if (
            self.settings.enforce_zone_mass_balance
            and self.settings.infiltration_treatment != InfiltrationTreatment.NONE
        ):
            self._reconcile_infiltration(zid, inlet_m_dot, exh_m_dot, ret_m_dot, mixing_m_dot, mixing_source_m_dot)

        if config is not None:
            for node_id, air_loop_id in zip(config.return_nodes, config.return_air_loops):
                if air_loop_id is not None:
                    network.air_loops[air_loop_id].flow.zone_ret_flow += network.nodes[node_id].m_dot
            if config.excess_zone_exh > 0.0:
                self._allocate_excess_zone_exhaust(zone)
            if not (self.settings.enforce_zone_mass_balance or warmup or first_iteration or doing_sizing):
                self._check_zone_imbalance(zone, inlet_m_dot, exh_m_dot, ret_m_dot, mixing_m_dot, time_stamp)
        return mixing_m_dot

    def calc_zone_return_flows(self, zone: Zone, expected_m_dot: float, doing_sizing: bool = False) -> float:
        """Sets the flow rate at the return nodes of `zone` given the expected
        total return flow rate `expected_m_dot`. Returns the total return flow
        rate actually set.

        A return node whose air loop has no outdoor air (no outdoor air
        system, or no outdoor air flow available) returns the flow supplied by
        the air loop to the zone; such a node is "fixed". When the zone has
        return flow basis nodes, the first return node returns their summed
        flow. The flow at the other nodes follows from the expected return
        flow, the return flow schedule and the design return fraction of the
        air loop. If the total exceeds the expected flow, the flows at the
        nodes that are not fixed are reduced in proportion.
        """
        network = self.network
        config = zone.config
        n = len(config.return_nodes)
        fraction = config.return_flow_fraction
        if doing_sizing:
            if n > 1:
                raise ReturnNodeConfigurationError(
                    f"zone '{zone.ID}': a zone with more than one return node "
                    f"cannot be sized"
                )
            config.fixed_return_flow[0] = False
            network.nodes[config.return_nodes[0]].m_dot = expected_m_dot * fraction
            return expected_m_dot * fraction

        total = total_variable = 0.0
        for k, node_id in enumerate(config.return_nodes):
            air_loop_id = config.return_air_loops[k]
            inlet_index = config.return_inlets[k]
            fixed = False
            if k == 0 and config.return_flow_basis_nodes:
                m_dot = fraction * sum(network.nodes[b].m_dot for b in config.return_flow_basis_nodes)
                fixed = True
            elif air_loop_id is not None:
                air_loop = network.air_loops[air_loop_id]
                if air_loop.return_flow_is_fixed and inlet_index is not None:
                    m_dot = network.nodes[config.inlet_nodes[inlet_index]].m_dot
                    fixed = True
                elif n == 1 or inlet_index is None:
                    m_dot = expected_m_dot * fraction * air_loop.flow.des_return_frac / n
                else:
                    m_dot = (
                        network.nodes[config.inlet_nodes[inlet_index]].m_dot
                        * fraction * air_loop.flow.des_return_frac
                    )
            else:
                m_dot = expected_m_dot * fraction / n
            config.fixed_return_flow[k] = fixed
            network.nodes[node_id].m_dot = m_dot
            total += m_dot
            if not fixed:
                total_variable += m_dot

        if total > expected_m_dot and total_variable > 0.0:
            adj_factor = max(0.0, 1.0 - (total - expected_m_dot) / total_variable)
            total = 0.0
            for k, node_id in enumerate(config.return_nodes):
                node = network.nodes[node_id]
                if not config.fixed_return_flow[k]:
                    node.m_dot *= adj_factor
                total += node.m_dot
        return total

    def zone_mixing_flow_of_source_zone(self, zid: ZoneId) -> float:
        """Returns the mixing flow rate that zone `zid` delivers to other zones
        and stores it in the mass conservation record of the zone.
        """
        m_dot = sum(m.m_dot for m in self.network.mixings if m.source_zone == zid)
        self.network.zones[zid].mass_conservation.mixing_source_m_dot = m_dot
        return m_dot

    def _set_receiving_zone_mixing(self, zid: ZoneId, mixing_m_dot: float) -> None:
        # The mixing flow of a receiving zone is shared by its mixing objects
        # in proportion to their design flow rates.
        mixings = [m for m in self.network.mixings if m.receiving_zone == zid]
        if not mixings:
            return
        design_total = sum(m.design_m_dot for m in mixings)
        for m in mixings:
            if design_total > 0.0:
                m.m_dot = mixing_m_dot * m.design_m_dot / design_total
            else:
                m.m_dot = mixing_m_dot / len(mixings)
        for source in {m.source_zone for m in mixings}:
            self.zone_mixing_flow_of_source_zone(source)

    def _reconcile_infiltration(
        self,
        zid: ZoneId,
        inlet_m_dot: float,
        exh_m_dot: float,
        ret_m_dot: float,
        mixing_m_dot: float,
        mixing_source_m_dot: float
    ) -> None:
        s = self.settings
        zone = self.network.zones[zid]
        mc = zone.mass_conservation
        if s.infiltration_zone_type == InfiltrationZoneType.MIXING_SOURCE_ZONES_ONLY and not mc.is_source_zone:
            mc.include_infiltration = False
            return
        infiltrations = [inf for inf in self.network.infiltrations if inf.zone == zid]
        # infiltration needed to make up for the air leaving the zone
        implied_m_dot = mixing_source_m_dot + exh_m_dot + ret_m_dot - inlet_m_dot - mixing_m_dot
        mc.include_infiltration = implied_m_dot > s.tolerance
        base_total = sum(inf.base_m_dot for inf in infiltrations)
        for inf in infiltrations:
            if base_total > 0.0:
                share = inf.base_m_dot / base_total
            else:
                share = 1.0 / len(infiltrations)
            match s.infiltration_treatment:
                case InfiltrationTreatment.ADJUST:
                    inf.m_dot = implied_m_dot * share if mc.include_infiltration else 0.0
                case InfiltrationTreatment.ADD:
                    inf.m_dot = inf.base_m_dot
                    if mc.include_infiltration:
                        inf.m_dot += implied_m_dot * share
        if infiltrations:
            mc.infiltration_m_dot = sum(inf.m_dot for inf in infiltrations)
        else:
            mc.infiltration_m_dot = max(0.0, implied_m_dot)

    def _allocate_excess_zone_exhaust(self, zone: Zone) -> None:
        # in proportion to the flow each air loop supplies to the zone
        network = self.network
        config = zone.config
        supplies = [
            (air_loop_id, network.nodes[node_id].m_dot)
            for node_id, air_loop_id in zip(config.inlet_nodes, config.inlet_air_loops)
            if air_loop_id is not None
        ]
        if not supplies:
            return
        total = sum(m_dot for _, m_dot in supplies)
        for air_loop_id, m_dot in supplies:
            share = m_dot / total if total > 0.0 else 1.0 / len(supplies)
            network.air_loops[air_loop_id].flow.excess_zone_exh_flow += config.excess_zone_exh * share

    def _check_zone_imbalance(
        self,
        zone: Zone,
        inlet_m_dot: float,
        exh_m_dot: float,
        ret_m_dot: float,
        mixing_m_dot: float,
        time_stamp: str
    ) -> None:
        config = zone.config
        if config.flow_error:
            return
        sys_unbalanced = (exh_m_dot - config.balanced_exhaust_m_dot) + ret_m_dot - inlet_m_dot
        if sys_unbalanced <= SMALL_MASS_FLOW:
            return
        incoming = zone.infiltration_m_dot + zone.ventilation_m_dot + mixing_m_dot
        if max(0.0, sys_unbalanced - incoming) <= SMALL_MASS_FLOW:
            return
        zone_air = self.network.zone_air(zone)
        rho = density(zone_air.P, zone_air.T, zone_air.W)
        incoming_vol = incoming / rho
        sys_unbalanced_vol = sys_unbalanced / _rho_std
        unbalanced_vol = max(0.0, sys_unbalanced_vol - incoming_vol)
        if unbalanced_vol > SMALL_AIR_VOL_FLOW:
            logger.warning(
                f"zone '{zone.ID}' has unbalanced exhaust air flow "
                f"({time_stamp}): unbalanced exhaust air flow = "
                f"{unbalanced_vol:.6f} m³/s; unbalanced air system flow = "
                f"{sys_unbalanced_vol:.6f} m³/s; infiltration, ventilation "
                f"and mixing flow = {incoming_vol:.6f} m³/s. "
                f"This warning is only reported once per zone."
            )
            config.flow_error = True

    def _normalize_air_loop_return_flows(self) -> None:
        # Excess zone exhaust reduces the return flow of the air loops.
        network = self.network
        for air_loop_id, air_loop in enumerate(network.air_loops):
            flow = air_loop.flow
            if flow.zone_ret_flow > 0.0:
                ratio = max(0.0, flow.zone_ret_flow - flow.excess_zone_exh_flow) / flow.zone_ret_flow
            else:
                ratio = 1.0
            flow.zone_ret_flow_ratio = ratio
            flow.zone_ret_flow *= ratio
            if ratio != 1.0:
                for zone in network.zones:
                    config = zone.config
                    if config is None:
                        continue
                    changed = False
                    for node_id, loop_id in zip(config.return_nodes, config.return_air_loops):
                        if loop_id == air_loop_id:
                            network.nodes[node_id].m_dot *= ratio
                            changed = True
                    if changed:
                        zone.mass_conservation.ret_m_dot = sum(
                            network.nodes[n].m_dot for n in config.return_nodes
                        )
            flow.sys_ret_flow = flow.zone_ret_flow - flow.recirc_flow + flow.leak_flow

    def get_zone_flow_table(self, unit: str = 'kg / s') -> pd.DataFrame:
        """Returns a Pandas DataFrame with the flow rates of each zone as
        determined by the last mass balance, expressed in `unit`.
        """
        headers = [
            "zone",
            f"inlet [{unit}]",
            f"exhaust [{unit}]",
            f"return [{unit}]",
            f"mixing in [{unit}]",
            f"mixing out [{unit}]",
            f"infiltration [{unit}]",
            f"excess exhaust [{unit}]"
        ]
        table = {header: [] for header in headers}
        for zone in self.network.zones:
            mc = zone.mass_conservation
            excess = zone.config.excess_zone_exh if zone.config is not None else 0.0
            values = [
                mc.in_m_dot, mc.exh_m_dot, mc.ret_m_dot, mc.mixing_m_dot,
                mc.mixing_source_m_dot, mc.infiltration_m_dot, excess
            ]
            table[headers[0]].append(zone.ID)
            for header, value in zip(headers[1:], values):
                table[header].append(Q_(value, 'kg / s').to(unit).m)
        return pd.DataFrame(table)

    def get_air_loop_flow_table(self, unit: str = 'kg / s') -> pd.DataFrame:
        """Returns a Pandas DataFrame with the flow rates of each air loop as
        determined by the last mass balance, expressed in `unit`.
        """
        headers = [
            "air loop",
            f"supply [{unit}]",
            f"zone return [{unit}]",
            f"system return [{unit}]",
            f"recirculation [{unit}]",
            f"leak [{unit}]",
            f"excess zone exhaust [{unit}]",
            "return flow ratio"
        ]
        table = {header: [] for header in headers}
        for air_loop in self.network.air_loops:
            f = air_loop.flow
            values = [
                f.sup_flow, f.zone_ret_flow, f.sys_ret_flow,
                f.recirc_flow, f.leak_flow, f.excess_zone_exh_flow
            ]
            table[headers[0]].append(air_loop.ID)
            for header, value in zip(headers[1:-1], values):
                table[header].append(Q_(value, 'kg / s').to(unit).m)
            table[headers[-1]].append(f.zone_ret_flow_ratio)
        return pd.DataFrame(table)
