import pytest
from hvacsim.air_flow import (
    AirflowWindow,
    LeavingConditionsUpdater,
    ReturnAirGain,
    ReturnGainSource
)
from hvacsim.fluids import specific_heat, heat_of_vaporization, enthalpy
from stubs import add_zone, add_air_loop


@pytest.fixture
def office(network):
    loop = add_air_loop(network, 'AHU 1')
    zone = add_zone(network, 'office', supply=[(0.5, loop)], returns=[(loop, 0)], T=24.0, W=0.008)
    network.nodes[zone.config.return_nodes[0]].m_dot = 0.5
    return zone


def _return_node(network, zone, k=0):
    return network.nodes[zone.config.return_nodes[k]]


def test_return_air_takes_zone_conditions(network, office):
    office.no_heat_to_return_air = True
    office.return_air_gains.append(ReturnAirGain(ReturnGainSource.LIGHTS, convective=1000.0))
    LeavingConditionsUpdater(network).update()
    node = _return_node(network, office)
    assert node.T == pytest.approx(24.0)
    assert node.W == pytest.approx(0.008)
    assert node.h == pytest.approx(enthalpy(24.0, 0.008))
    assert office.sys_dep_zone_loads == 0.0


def test_gains_are_added_to_return_air(network, office):
    office.return_air_gains.append(ReturnAirGain(ReturnGainSource.LIGHTS, convective=1000.0, latent=500.0))
    LeavingConditionsUpdater(network).update()
    node = _return_node(network, office)
    T_ret = 24.0 + 1000.0 / (0.5 * specific_heat(0.008))
    assert node.T == pytest.approx(T_ret)
    assert node.W == pytest.approx(0.008 + 500.0 / (heat_of_vaporization(T_ret) * 0.5))
    assert office.sys_dep_zone_loads == 0.0
    assert office.zone_latent_gain == 0.0


def test_return_temperature_is_clipped(network, office):
    office.return_air_gains.append(ReturnAirGain(ReturnGainSource.LIGHTS, convective=30000.0))
    LeavingConditionsUpdater(network).update()
    node = _return_node(network, office)
    cp = specific_heat(0.008)
    T_unclipped = 24.0 + 30000.0 / (0.5 * cp)
    assert node.T == pytest.approx(60.0)
    assert office.sys_dep_zone_loads == pytest.approx(cp * 0.5 * (T_unclipped - 60.0))


def test_refrigerated_case_credit_is_clipped_low(network, office):
    office.return_air_gains.append(ReturnAirGain(ReturnGainSource.REFRIGERATED_CASE, convective=-60000.0))
    LeavingConditionsUpdater(network).update()
    assert _return_node(network, office).T == pytest.approx(-30.0)
    assert office.sys_dep_zone_loads < 0.0


def test_no_spillover_during_zone_sizing(network, office):
    office.return_air_gains.append(ReturnAirGain(ReturnGainSource.LIGHTS, convective=30000.0))
    LeavingConditionsUpdater(network).update(zone_sizing=True)
    assert _return_node(network, office).T == pytest.approx(60.0)
    assert office.sys_dep_zone_loads == 0.0


def test_gains_go_to_zone_without_return_flow(network, office):
    _return_node(network, office).m_dot = 0.0
    office.return_air_gains.append(ReturnAirGain(ReturnGainSource.LIGHTS, convective=1000.0, latent=200.0))
    LeavingConditionsUpdater(network).update()
    assert _return_node(network, office).T == pytest.approx(24.0)
    assert office.sys_dep_zone_loads == pytest.approx(1000.0)
    assert office.zone_latent_gain == pytest.approx(200.0)


def test_airflow_window_air_is_mixed_into_return(network, office):
    office.airflow_windows.append(AirflowWindow('window 1', m_dot=0.2, T_outlet=30.0))
    LeavingConditionsUpdater(network).update()
    assert _return_node(network, office).T == pytest.approx((0.2 * 30.0 + 0.3 * 24.0) / 0.5)


def test_zone_multiplier_divides_return_flow(network, office):
    office.multiplier = 2
    _return_node(network, office).m_dot = 1.0
    office.return_air_gains.append(ReturnAirGain(ReturnGainSource.LIGHTS, convective=1000.0))
    LeavingConditionsUpdater(network).update()
    assert _return_node(network, office).T == pytest.approx(24.0 + 1000.0 / (0.5 * specific_heat(0.008)))


def test_list_multiplier_divides_return_flow(network, office):
    office.multiplier = 2
    office.list_multiplier = 3
    _return_node(network, office).m_dot = 3.0
    office.return_air_gains.append(ReturnAirGain(ReturnGainSource.LIGHTS, convective=1000.0))
    LeavingConditionsUpdater(network).update()
    assert _return_node(network, office).T == pytest.approx(24.0 + 1000.0 / (0.5 * specific_heat(0.008)))


def test_gain_goes_to_its_own_return_node(network):
    loop = add_air_loop(network, 'AHU 1')
    zone = add_zone(network, 'office', supply=[(0.5, loop), (0.5, loop)], returns=[(loop, 0), (loop, 1)], T=24.0)
    for node_id in zone.config.return_nodes:
        network.nodes[node_id].m_dot = 0.5
    second = zone.config.return_nodes[1]
    zone.return_air_gains.append(ReturnAirGain(ReturnGainSource.LIGHTS, convective=1000.0, return_node=second))
    LeavingConditionsUpdater(network).update()
    assert _return_node(network, zone, 0).T == pytest.approx(24.0)
    assert _return_node(network, zone, 1).T > 24.0
