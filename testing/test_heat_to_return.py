from hvacsim.air_flow import FanOperationMode, ReturnAirGain, ReturnGainSource, set_heat_to_return_air_flag
from stubs import add_zone, add_air_loop


def test_continuous_fan_sends_gains_to_return(network):
    loop = add_air_loop(network, 'AHU 1')
    zone = add_zone(network, 'office', supply=[(1.0, loop)], returns=[(loop, 0)])
    set_heat_to_return_air_flag(network, first_call=True)
    assert zone.no_heat_to_return_air is False


def test_cycling_fan_sends_gains_to_zone(network, caplog):
    loop = add_air_loop(network, 'RTU 1')
    control = network.air_loops[loop].control
    control.unitary_system = True
    control.cycling_fan_schedule = lambda: 0.0
    zone = add_zone(network, 'shop', supply=[(1.0, loop)], returns=[(loop, 0)])
    zone.return_air_gains.append(ReturnAirGain(ReturnGainSource.LIGHTS, convective=500.0))
    set_heat_to_return_air_flag(network, first_call=True)
    assert control.fan_op_mode == FanOperationMode.CYCLING
    assert control.any_continuous_fan is False
    assert zone.no_heat_to_return_air is True
    assert "heat gain from lights" in caplog.text

    control.cycling_fan_schedule = lambda: 1.0
    set_heat_to_return_air_flag(network, first_call=False)
    assert control.fan_op_mode == FanOperationMode.CONTINUOUS
    assert zone.no_heat_to_return_air is False


def test_zonal_equipment_only(network):
    zone = add_zone(network, 'office', supply=[(0.3, None)], exhaust=[0.3])
    set_heat_to_return_air_flag(network, first_call=True)
    assert zone.config.zonal_system_only is True
    assert zone.no_heat_to_return_air is True
