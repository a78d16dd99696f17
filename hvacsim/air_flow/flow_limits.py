"""Coordination of the air flow rates between the air loops and the terminal
units they serve.
"""
from __future__ import annotations
from ..logging import ModuleLogger
from ..fluids import STANDARD_AIR_DENSITY
from .topology import AirNetwork, AirLoop, DuctType, SupplyPath

logger = ModuleLogger.get_logger(__name__)

SMALL_MASS_FLOW = 0.001  # kg/s
FLOW_RATE_TOLERANCE = 0.01  # kg/s

_rho_std = STANDARD_AIR_DENSITY.to('kg / m ** 3').m


def reset_terminal_unit_flow_limits(network: AirNetwork) -> None:
    """Resets the maximum and minimum available flow rate at the inlet nodes
    of all terminal units to their hard limits.
    """
    for air_loop in network.air_loops:
        for path in air_loop.supply_paths:
            for node_id in path.terminal_inlet_nodes:
                node = network.nodes[node_id]
                node.m_dot_max_avail = node.m_dot_max
                node.m_dot_min_avail = node.m_dot_min


def _resolve_supply_path(network: AirNetwork, air_loop: AirLoop, path: SupplyPath) -> None:
    supply = network.nodes[path.supply_node]
    if supply.m_dot <= 0.0 or not path.terminal_inlet_nodes:
        return
    terminals = [network.nodes[n] for n in path.terminal_inlet_nodes]
    # the bypass flow of a changeover-bypass system must not restrict the
    # terminal units
    shortage = supply.m_dot_setpoint - supply.m_dot - air_loop.flow.bypass_m_dot
    if shortage > FLOW_RATE_TOLERANCE * 0.01:
        # the terminal units ask more air than the air loop can supply
        ratio = supply.m_dot / supply.m_dot_setpoint
        for node in terminals:
            node.m_dot_max_avail = node.m_dot * ratio
            node.m_dot_min_avail = min(node.m_dot_max_avail, node.m_dot_min_avail)
    elif shortage < -FLOW_RATE_TOLERANCE * 0.01:
        # the air loop supplies more air than the terminal units ask
        if supply.m_dot_setpoint == 0.0:
            # no setpoint to take a ratio from: split the supply flow equally
            for node in terminals:
                node.m_dot_max_avail = node.m_dot_max
                node.m_dot_min_avail = supply.m_dot / len(terminals)
        else:
            ratio = supply.m_dot / supply.m_dot_setpoint
            for node in terminals:
                node.m_dot_min_avail = node.m_dot * ratio
                node.m_dot_max_avail = max(node.m_dot_max_avail, node.m_dot_min_avail)


def resolve_air_loop_flow_limits(network: AirNetwork) -> None:
    """Adjusts the available flow rates at the terminal unit inlet nodes when
    the flow rate an air loop delivers at a supply outlet differs from the
    flow rate the terminal units requested.
    """
    for air_loop in network.air_loops:
        # cooling (or single) ducts first, then heating ducts
        for duct_types in ((DuctType.MAIN, DuctType.COOLING), (DuctType.HEATING,)):
            for path in air_loop.supply_paths:
                if path.duct_type in duct_types:
                    _resolve_supply_path(network, air_loop, path)


def resolve_lockout_flags(network: AirNetwork) -> bool:
    """Locks out the economizer of the air loops where a component asks for
    it. Returns True if any air loop must be simulated again.
    """
    resimulate = False
    for air_loop in network.air_loops:
        control = air_loop.control
        if control.econo_active and (
            control.reqst_econo_lockout_with_compressor
            or control.reqst_econo_lockout_with_heating
        ):
            control.econo_lockout = True
            resimulate = True
    return resimulate


def reset_hvac_control(network: AirNetwork) -> None:
    """Resets the control settings of the air loops that the set point and
    availability managers may have changed in the previous time step.
    """
    for air_loop in network.air_loops:
        air_loop.control.night_vent = False
        air_loop.control.loop_flow_rate_set = False
        air_loop.flow.req_supply_frac = 1.0


def check_air_loop_flow_balance(network: AirNetwork, time_stamp: str = '') -> list[AirLoop]:
    """Reports the air loops that supply more air than they receive as return
    air and outdoor air. Each air loop is reported only once per environment.
    Returns the air loops reported in this call.
    """
    reported = []
    for air_loop in network.air_loops:
        flow = air_loop.flow
        if flow.flow_error:
            continue
        unbalanced = flow.sup_flow - flow.oa_flow - flow.sys_ret_flow
        if unbalanced > SMALL_MASS_FLOW:
            logger.error(
                f"air loop '{air_loop.ID}' is unbalanced: supply is greater "
                f"than return plus outdoor air ({time_stamp}). Flows in m³/s "
                f"at standard density: supply = {flow.sup_flow / _rho_std:.6f}, "
                f"return = {flow.sys_ret_flow / _rho_std:.6f}, "
                f"outdoor air = {flow.oa_flow / _rho_std:.6f}, "
                f"imbalance = {unbalanced / _rho_std:.6f}. "
                f"This error is only reported once per air loop."
            )
            flow.flow_error = True
            reported.append(air_loop)
    return reported
