import pytest
from hvacsim.zone_equipment import (
    AvailabilityStatus,
    EquipmentList,
    EquipmentListEntry,
    LoadDistributionScheme,
    ThermostatType
)
from hvacsim.zone_equipment.manager import ZoneEquipmentManager
from hvacsim.system import Flag
from stubs import StubEquipment, add_zone, add_air_loop


@pytest.fixture
def office(network):
    loop = add_air_loop(network, 'AHU 1', return_path=True)
    zone = add_zone(
        network, 'office',
        supply=[(1.0, loop)],
        exhaust=[0.2],
        returns=[(loop, 0)],
        T=22.0,
        thermostat_type=ThermostatType.DUAL_SETPOINT_DEADBAND
    )
    zone.energy_demand.set_required(1000.0, 1000.0, 3000.0)
    return zone


def _equip(zone, *equipment, scheme=LoadDistributionScheme.SEQUENTIAL):
    entries = [
        EquipmentListEntry(e, heating_priority=i + 1, cooling_priority=i + 1)
        for i, e in enumerate(equipment)
    ]
    zone.equipment_list = EquipmentList(f'{zone.ID} equipment', entries, scheme)


def test_zone_equipment_pass(network, context, office):
    radiator = StubEquipment('radiator')
    _equip(office, radiator)
    manager = ZoneEquipmentManager(network)
    intent = manager.simulate(context, first_iteration=True)
    assert office.sys_output_provided == pytest.approx(1000.0)
    assert radiator.loads[0].sensible == pytest.approx(1000.0)
    assert office.energy_demand.remaining_output_required == pytest.approx(0.0)

    air_loop = network.air_loops[0]
    return_node = network.nodes[office.config.return_nodes[0]]
    return_inlet = network.nodes[air_loop.return_inlet]
    assert return_node.m_dot == pytest.approx(0.8)
    assert return_node.T == pytest.approx(22.0)
    assert return_inlet.m_dot == pytest.approx(0.8)
    # the air loop must see the new return air
    assert intent.air_loops

    intent = manager.simulate(context, first_iteration=False)
    assert not intent.any()
    assert context.zone_mass_balance_hvac_resim is False


def test_return_path_conserves_air_loop_return_flow(network, context, office):
    office.multiplier = 3
    office.list_multiplier = 2
    _equip(office, StubEquipment('radiator'))
    ZoneEquipmentManager(network).simulate(context, first_iteration=True)
    air_loop = network.air_loops[0]
    outlet = network.nodes[air_loop.return_path_outlet]
    assert air_loop.flow.zone_ret_flow == pytest.approx(0.8)
    assert outlet.m_dot == pytest.approx(air_loop.flow.zone_ret_flow)
    assert network.nodes[air_loop.return_inlet].m_dot == pytest.approx(0.8)
    assert outlet.T == pytest.approx(22.0)


def test_forced_off_equipment_is_skipped(network, context, office):
    off, on = StubEquipment('off'), StubEquipment('on')
    off.availability = AvailabilityStatus.FORCE_OFF
    _equip(office, off, on)
    ZoneEquipmentManager(network).simulate(context, first_iteration=False)
    assert off.loads == []
    assert on.loads[0].sensible == pytest.approx(1000.0)


def test_capacity_recorded_in_first_iteration(network, context, office):
    small = StubEquipment('small', heating_capacity=400.0)
    large = StubEquipment('large', heating_capacity=1600.0)
    _equip(office, small, large, scheme=LoadDistributionScheme.UNIFORM_PLR)
    manager = ZoneEquipmentManager(network)
    office.energy_demand.set_required(2500.0, 2500.0, 4000.0)
    manager.simulate(context, first_iteration=True)
    assert office.equipment_list[0].heating_capacity == pytest.approx(400.0)
    assert office.equipment_list[1].heating_capacity == pytest.approx(1600.0)
    office.energy_demand.set_required(1000.0, 1000.0, 3000.0)
    manager.simulate(context, first_iteration=False)
    assert small.loads[-1].sensible == pytest.approx(200.0)
    assert large.loads[-1].sensible == pytest.approx(800.0)
    assert office.sys_output_provided == pytest.approx(1000.0)


def test_uncontrolled_zone_is_not_simulated(network, context):
    zone = add_zone(network, 'attic')
    zone.config.is_controlled = False
    equipment = StubEquipment('fan')
    _equip(zone, equipment)
    ZoneEquipmentManager(network).simulate(context, first_iteration=False)
    assert equipment.loads == []


def test_flag_of_manager():
    assert ZoneEquipmentManager.flag == Flag.ZONE_EQUIPMENT
