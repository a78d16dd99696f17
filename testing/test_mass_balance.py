import logging
import pytest
from hvacsim.air_flow import (
    Infiltration,
    InfiltrationTreatment,
    InfiltrationZoneType,
    MassBalanceEngine,
    ReturnNodeConfigurationError,
    ZoneAirMassFlowSettings,
    ZoneMixing
)
from stubs import add_zone, add_air_loop

TOL = 1.0e-5


def _return_flow(network, zone, k=0):
    return network.nodes[zone.config.return_nodes[k]].m_dot


def _assert_zone_balanced(zone):
    mc = zone.mass_conservation
    inflow = mc.in_m_dot + mc.mixing_m_dot + mc.infiltration_m_dot
    outflow = mc.exh_m_dot + mc.ret_m_dot + mc.mixing_source_m_dot
    assert inflow == pytest.approx(outflow, abs=TOL)


def test_single_return_node(network):
    loop = add_air_loop(network, 'AHU 1')
    zone = add_zone(network, 'office', supply=[(1.0, loop)], exhaust=[0.2], returns=[(loop, 0)])
    engine = MassBalanceEngine(network)
    assert engine.balance() is False
    assert _return_flow(network, zone) == pytest.approx(0.8)
    flow = network.air_loops[loop].flow
    assert flow.zone_ret_flow == pytest.approx(0.8)
    assert flow.sys_ret_flow == pytest.approx(0.8)
    assert zone.config.flow_error is False


def test_zone_without_air_loop(network):
    zone = add_zone(network, 'office', supply=[(1.0, None)], exhaust=[0.2], returns=[(None, None)])
    MassBalanceEngine(network).balance()
    assert _return_flow(network, zone) == pytest.approx(0.8)


def test_return_flow_schedule_and_design_fraction(network):
    loop = add_air_loop(network, 'AHU 1')
    network.air_loops[loop].flow.des_return_frac = 0.5
    zone = add_zone(network, 'office', supply=[(1.0, loop)], returns=[(loop, 0)])
    zone.config.return_flow_schedule = lambda: 0.8
    MassBalanceEngine(network).balance()
    assert _return_flow(network, zone) == pytest.approx(0.4)


def test_fixed_return_node_without_outdoor_air(network, caplog):
    loop = add_air_loop(network, 'AHU 1', outdoor_air=False)
    zone = add_zone(network, 'office', supply=[(1.0, loop)], exhaust=[0.2], returns=[(loop, 0)])
    engine = MassBalanceEngine(network)
    with caplog.at_level(logging.WARNING):
        engine.balance()
    # the return flow equals the supply flow of the air loop, even though
    # the zone also exhausts air
    assert _return_flow(network, zone) == pytest.approx(1.0)
    assert zone.config.fixed_return_flow == [True]
    assert zone.config.flow_error is True
    assert "unbalanced exhaust air flow" in caplog.text

    caplog.clear()
    with caplog.at_level(logging.WARNING):
        engine.balance()
    assert "unbalanced exhaust air flow" not in caplog.text


def test_no_imbalance_warning_in_first_iteration(network):
    loop = add_air_loop(network, 'AHU 1', outdoor_air=False)
    zone = add_zone(network, 'office', supply=[(1.0, loop)], exhaust=[0.2], returns=[(loop, 0)])
    engine = MassBalanceEngine(network)
    engine.balance(first_iteration=True)
    engine.balance(warmup=True)
    engine.balance(doing_sizing=True)
    assert zone.config.flow_error is False


def test_variable_return_nodes_are_scaled(network):
    loop = add_air_loop(network, 'AHU 1')
    zone = add_zone(
        network, 'office',
        supply=[(0.6, loop), (0.6, loop)],
        exhaust=[0.4],
        returns=[(loop, 0), (loop, 1)]
    )
    MassBalanceEngine(network).balance()
    assert _return_flow(network, zone, 0) == pytest.approx(0.4)
    assert _return_flow(network, zone, 1) == pytest.approx(0.4)
    assert zone.mass_conservation.ret_m_dot == pytest.approx(0.8)


def test_only_variable_return_nodes_are_scaled(network):
    fixed_loop = add_air_loop(network, 'DOAS', outdoor_air=False)
    variable_loop = add_air_loop(network, 'AHU 1')
    zone = add_zone(
        network, 'office',
        supply=[(0.5, fixed_loop), (0.5, variable_loop)],
        exhaust=[0.3],
        returns=[(fixed_loop, 0), (variable_loop, 1)]
    )
    MassBalanceEngine(network).balance()
    assert zone.config.fixed_return_flow == [True, False]
    assert _return_flow(network, zone, 0) == pytest.approx(0.5)
    assert _return_flow(network, zone, 1) == pytest.approx(0.2)
    assert zone.mass_conservation.ret_m_dot == pytest.approx(0.7)


def test_return_flow_basis_nodes(network):
    loop = add_air_loop(network, 'AHU 1')
    zone = add_zone(network, 'office', supply=[(1.0, loop)], returns=[(loop, 0)])
    basis = [network.nodes.add('fan 1 outlet', m_dot=0.3), network.nodes.add('fan 2 outlet', m_dot=0.2)]
    zone.config.return_flow_basis_nodes = basis
    zone.config.return_flow_schedule = lambda: 0.5
    MassBalanceEngine(network).balance()
    assert _return_flow(network, zone) == pytest.approx(0.25)
    assert zone.config.fixed_return_flow == [True]


def test_excess_exhaust_reduces_air_loop_return(network):
    loop = add_air_loop(network, 'AHU 1')
    kitchen = add_zone(network, 'kitchen', supply=[(1.0, loop)], exhaust=[1.3], returns=[(loop, 0)])
    dining = add_zone(network, 'dining', supply=[(1.0, loop)], returns=[(loop, 0)])
    flow = network.air_loops[loop].flow
    flow.sup_flow = 2.0
    flow.recirc_flow = 0.1
    flow.leak_flow = 0.05
    MassBalanceEngine(network).balance()
    assert kitchen.config.excess_zone_exh == pytest.approx(0.3)
    assert _return_flow(network, kitchen) == pytest.approx(0.0)
    assert flow.excess_zone_exh_flow == pytest.approx(0.3)
    assert flow.zone_ret_flow_ratio == pytest.approx(0.7)
    assert _return_flow(network, dining) == pytest.approx(0.7)
    assert dining.mass_conservation.ret_m_dot == pytest.approx(0.7)
    assert flow.zone_ret_flow == pytest.approx(0.7)
    assert flow.sys_ret_flow == pytest.approx(flow.zone_ret_flow - flow.recirc_flow + flow.leak_flow)


def test_enforced_balance_adjusts_mixing(network):
    loop = add_air_loop(network, 'AHU 1')
    receiving = add_zone(network, 'toilets', supply=[(1.0, loop)], exhaust=[1.2], returns=[(loop, 0)])
    source = add_zone(network, 'corridor', supply=[(1.0, loop)], returns=[(loop, 0)])
    mixing = ZoneMixing(receiving_zone=0, source_zone=1, design_m_dot=0.1, m_dot=0.1)
    network.add_mixing(mixing)
    settings = ZoneAirMassFlowSettings(enforce_zone_mass_balance=True, balance_mixing=True)
    engine = MassBalanceEngine(network, settings)
    assert engine.balance() is True
    assert 1 < engine.iterations <= settings.iter_max
    assert mixing.m_dot == pytest.approx(0.2)
    assert _return_flow(network, receiving) == pytest.approx(0.0)
    assert _return_flow(network, source) == pytest.approx(0.8)
    _assert_zone_balanced(receiving)
    _assert_zone_balanced(source)
    # nothing changed since the previous call
    assert engine.balance() is False
    assert engine.iterations == 2


def test_mixing_added_after_setup_changes_zone_order(network):
    loop = add_air_loop(network, 'AHU 1')
    source = add_zone(network, 'corridor', supply=[(1.0, loop)], returns=[(loop, 0)])
    receiving = add_zone(network, 'toilets', supply=[(1.0, loop)], exhaust=[1.2], returns=[(loop, 0)])
    settings = ZoneAirMassFlowSettings(enforce_zone_mass_balance=True, balance_mixing=True)
    engine = MassBalanceEngine(network, settings)
    assert engine.zone_order() == [0, 1]
    mixing = ZoneMixing(receiving_zone=1, source_zone=0, design_m_dot=0.1, m_dot=0.1)
    network.add_mixing(mixing)
    assert engine.zone_order() == [1, 0]
    engine.balance()
    assert mixing.m_dot == pytest.approx(0.2)
    _assert_zone_balanced(receiving)
    _assert_zone_balanced(source)


def test_mixing_is_shared_by_design_flow(network):
    loop = add_air_loop(network, 'AHU 1')
    add_zone(network, 'toilets', supply=[(1.0, loop)], exhaust=[1.3], returns=[(loop, 0)])
    add_zone(network, 'corridor 1', supply=[(1.0, loop)], returns=[(loop, 0)])
    add_zone(network, 'corridor 2', supply=[(1.0, loop)], returns=[(loop, 0)])
    mixings = [
        ZoneMixing(receiving_zone=0, source_zone=1, design_m_dot=0.1),
        ZoneMixing(receiving_zone=0, source_zone=2, design_m_dot=0.2)
    ]
    for mixing in mixings:
        network.add_mixing(mixing)
    settings = ZoneAirMassFlowSettings(enforce_zone_mass_balance=True, balance_mixing=True)
    MassBalanceEngine(network, settings).balance()
    assert mixings[0].m_dot == pytest.approx(0.1)
    assert mixings[1].m_dot == pytest.approx(0.2)
    for zone in network.zones:
        _assert_zone_balanced(zone)


@pytest.mark.parametrize("treatment, expected", [
    (InfiltrationTreatment.ADJUST, 0.3),
    (InfiltrationTreatment.ADD, 0.35)
])
def test_infiltration_closes_balance(network, treatment, expected):
    loop = add_air_loop(network, 'AHU 1', outdoor_air=False)
    zone = add_zone(network, 'office', supply=[(1.0, loop)], exhaust=[0.3], returns=[(loop, 0)])
    infiltration = Infiltration(zone=0, base_m_dot=0.05, m_dot=0.05)
    network.add_infiltration(infiltration)
    settings = ZoneAirMassFlowSettings(
        enforce_zone_mass_balance=True,
        infiltration_treatment=treatment,
        infiltration_zone_type=InfiltrationZoneType.ALL_ZONES
    )
    MassBalanceEngine(network, settings).balance()
    assert infiltration.m_dot == pytest.approx(expected)
    assert zone.mass_conservation.include_infiltration is True
    assert zone.mass_conservation.infiltration_m_dot == pytest.approx(expected)


def test_infiltration_of_source_zones_only(network):
    loop = add_air_loop(network, 'AHU 1', outdoor_air=False)
    zone = add_zone(network, 'office', supply=[(1.0, loop)], exhaust=[0.3], returns=[(loop, 0)])
    infiltration = Infiltration(zone=0, base_m_dot=0.05, m_dot=0.05)
    network.add_infiltration(infiltration)
    settings = ZoneAirMassFlowSettings(
        enforce_zone_mass_balance=True,
        infiltration_treatment=InfiltrationTreatment.ADJUST,
        infiltration_zone_type=InfiltrationZoneType.MIXING_SOURCE_ZONES_ONLY
    )
    MassBalanceEngine(network, settings).balance()
    assert infiltration.m_dot == pytest.approx(0.05)
    assert zone.mass_conservation.include_infiltration is False


def test_sizing_with_several_return_nodes_fails(network):
    loop = add_air_loop(network, 'AHU 1')
    add_zone(
        network, 'office',
        supply=[(0.5, loop), (0.5, loop)],
        returns=[(loop, 0), (loop, 1)]
    )
    with pytest.raises(ReturnNodeConfigurationError):
        MassBalanceEngine(network).balance(doing_sizing=True)


def test_flow_tables(network):
    loop = add_air_loop(network, 'AHU 1')
    add_zone(network, 'office', supply=[(1.0, loop)], exhaust=[0.2], returns=[(loop, 0)])
    engine = MassBalanceEngine(network)
    engine.balance()
    zone_table = engine.get_zone_flow_table('kg / hr')
    assert list(zone_table['zone']) == ['office']
    assert zone_table['return [kg / hr]'].iloc[0] == pytest.approx(2880.0)
    assert zone_table['exhaust [kg / hr]'].iloc[0] == pytest.approx(720.0)
    air_loop_table = engine.get_air_loop_flow_table()
    assert air_loop_table['zone return [kg / s]'].iloc[0] == pytest.approx(0.8)
    assert air_loop_table['return flow ratio'].iloc[0] == pytest.approx(1.0)
