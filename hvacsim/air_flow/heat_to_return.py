"""Decides for each controlled zone whether the heat gains on the way to the
return air (lights, refrigerated cases, airflow windows) are added to the
return air or to the zone air.

Return-path heat gains only end up in the return air when an air loop with a
continuously running fan serves the zone. A zone served only by zonal
equipment, or by air loops whose fan cycles with the load, gets these gains
in the zone air.
"""
from __future__ import annotations
from ..logging import ModuleLogger
from .topology import AirNetwork, FanOperationMode, ReturnGainSource

logger = ModuleLogger.get_logger(__name__)


def _init_air_loops_and_zones(network: AirNetwork) -> None:
    for air_loop in network.air_loops:
        control = air_loop.control
        if control.unitary_system:
            # without a fan schedule a unitary system always cycles its fan
            control.any_continuous_fan = (
                control.cycling_fan_schedule is not None
                and control.cycling_fan_schedule_max > 0.0
            )
        else:
            control.any_continuous_fan = True
    for zone in network.zones:
        config = zone.config
        if config is None:
            continue
        served_by_air_loop = any(a is not None for a in config.inlet_air_loops)
        if not served_by_air_loop and len(config.inlet_nodes) == len(config.exhaust_nodes):
            config.zonal_system_only = True


def _warn_gains_to_zone(network: AirNetwork) -> None:
    for zone in network.zones:
        config = zone.config
        if config is None or not config.is_controlled:
            continue
        cycling_fan = False
        for air_loop_id in config.inlet_air_loops:
            if air_loop_id is None:
                continue
            schedule = network.air_loops[air_loop_id].control.cycling_fan_schedule
            if schedule is not None:
                cycling_fan = schedule() == 0.0
        if not (config.zonal_system_only or cycling_fan):
            continue
        sources = {gain.source for gain in zone.return_air_gains}
        if ReturnGainSource.REFRIGERATED_CASE in sources:
            logger.warning(
                f"zone '{zone.ID}': return air cooling by refrigerated cases "
                f"will be applied to the zone air; the zone has no return air "
                f"or is served by an on/off HVAC system"
            )
        if ReturnGainSource.LIGHTS in sources:
            logger.warning(
                f"zone '{zone.ID}': return air heat gain from lights will be "
                f"applied to the zone air; the zone has no return air or is "
                f"served by an on/off HVAC system"
            )
        if zone.airflow_windows:
            logger.warning(
                f"zone '{zone.ID}': return air heat gain from airflow windows "
                f"will be applied to the zone air; the zone has no return air "
                f"or is served by an on/off HVAC system"
            )


def set_heat_to_return_air_flag(network: AirNetwork, first_call: bool) -> None:
    """Sets the fan operation mode of each air loop from its cycling fan
    schedule and derives the `no_heat_to_return_air` flag of each controlled
    zone.

    Parameters
    ----------
    network:
        The air system.
    first_call:
        True on the first call in the simulation run; then the continuous
        fan and zonal-system-only properties are determined and the zones
        that will receive their return-path gains are reported.
    """
    if first_call:
        _init_air_loops_and_zones(network)
        _warn_gains_to_zone(network)

    for air_loop in network.air_loops:
        schedule = air_loop.control.cycling_fan_schedule
        if schedule is not None:
            if schedule() == 0.0:
                air_loop.control.fan_op_mode = FanOperationMode.CYCLING
            else:
                air_loop.control.fan_op_mode = FanOperationMode.CONTINUOUS

    for zone in network.zones:
        config = zone.config
        if config is None or not config.is_controlled:
            continue
        zone.no_heat_to_return_air = True
        if config.zonal_system_only:
            continue
        for air_loop_id in config.inlet_air_loops:
            if air_loop_id is None:
                continue
            if network.air_loops[air_loop_id].control.fan_op_mode == FanOperationMode.CONTINUOUS:
                zone.no_heat_to_return_air = False
                break
