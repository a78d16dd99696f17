"""Conditions of the air leaving the zones through their return nodes."""
from __future__ import annotations
from ..fluids import specific_heat, heat_of_vaporization, enthalpy
from .nodes import NodeId
from .topology import AirNetwork, Zone

RET_TEMP_MAX = 60.0  # degC
RET_TEMP_MIN = -30.0  # degC


class LeavingConditionsUpdater:
    """Sets temperature, humidity ratio and enthalpy at the return nodes of
    the zones once the flow rates are known.

    If the return-path heat gains of a zone go to the return air (see
    `set_heat_to_return_air_flag()`), they are added to the zone air leaving
    through the return node: the air discharged by airflow windows is mixed
    with the zone air, and the convective and latent gains are added to the
    air stream. If the return air temperature would leave the range
    `RET_TEMP_MIN` to `RET_TEMP_MAX`, it is clipped and the heat that cannot
    be carried by the return air is added to the zone instead. Without return
    flow all the gains go to the zone.

    Parameters
    ----------
    network:
        The air system.
    ret_temp_max, ret_temp_min:
        Limits of the return air temperature, degC.
    """

    def __init__(
        self,
        network: AirNetwork,
        ret_temp_max: float = RET_TEMP_MAX,
        ret_temp_min: float = RET_TEMP_MIN
    ):
        self.network = network
        self.ret_temp_max = ret_temp_max
        self.ret_temp_min = ret_temp_min

    def update(self, zone_sizing: bool = False) -> None:
        """Updates the return nodes of all controlled zones.

        If `zone_sizing` is True, the heat clipped off by the return air
        temperature limits is not added to the zone.
        """
        for zone in self.network.zones:
            if zone.config is None or not zone.config.is_controlled:
                continue
            zone.sys_dep_zone_loads = 0.0
            zone.zone_latent_gain = 0.0
            for k, node_id in enumerate(zone.config.return_nodes):
                self._update_return_node(zone, node_id, k == 0, zone_sizing)

    def _return_gains(self, zone: Zone, node_id: NodeId, first_node: bool) -> tuple[float, float]:
        convective = latent = 0.0
        for gain in zone.return_air_gains:
            if gain.return_node == node_id or (gain.return_node is None and first_node):
                convective += gain.convective
                latent += gain.latent
        return convective, latent

    def _update_return_node(self, zone: Zone, node_id: NodeId, first_node: bool, zone_sizing: bool) -> None:
        network = self.network
        zone_air = network.zone_air(zone)
        node = network.nodes[node_id]
        T_zone, W_zone = zone_air.T, zone_air.W
        # the return flow of one zone when the zone has multipliers
        m_dot = node.m_dot / (zone.multiplier * zone.list_multiplier)
        T_ret, W_ret = T_zone, W_zone

        if not zone.no_heat_to_return_air:
            Q_conv, Q_lat = self._return_gains(zone, node_id, first_node)
            cp = specific_heat(W_zone)
            windows = zone.airflow_windows if first_node else []
            m_win = sum(w.m_dot for w in windows)
            mT_win = sum(w.m_dot * w.T_outlet for w in windows)
            if m_dot > 0.0:
                if m_win > 0.0:
                    if m_dot >= m_win:
                        T_ret = (mT_win + (m_dot - m_win) * T_zone) / m_dot
                    else:
                        # all the return air comes from the windows; the
                        # rest of the window air goes to the zone
                        T_ret = mT_win / m_win
                        zone.sys_dep_zone_loads += (m_win - m_dot) * cp * (mT_win / m_win - T_zone)
                T_ret += Q_conv / (m_dot * cp)
                if T_ret > self.ret_temp_max:
                    if not zone_sizing:
                        zone.sys_dep_zone_loads += cp * m_dot * (T_ret - self.ret_temp_max)
                    T_ret = self.ret_temp_max
                elif T_ret < self.ret_temp_min:
                    if not zone_sizing:
                        zone.sys_dep_zone_loads += cp * m_dot * (T_ret - self.ret_temp_min)
                    T_ret = self.ret_temp_min
                W_ret = W_zone + Q_lat / (heat_of_vaporization(T_ret) * m_dot)
            else:
                if m_win > 0.0:
                    zone.sys_dep_zone_loads += m_win * cp * (mT_win / m_win - T_zone)
                zone.sys_dep_zone_loads += Q_conv
                zone.zone_latent_gain += Q_lat

        node.T = T_ret
        node.W = W_ret
        node.h = enthalpy(T_ret, W_ret)
        node.P = zone_air.P
