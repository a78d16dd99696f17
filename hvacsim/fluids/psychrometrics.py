"""PSYCHROMETRIC PROPERTY FUNCTIONS
----------------------------------
Moist air properties needed by the air-side bookkeeping of the HVAC solver.

The functions that are called inside the solver loops take and return plain
floats in SI units (temperatures in degC, humidity ratios in kg/kg, pressures
in Pa) and are closed-form ideal-gas relations. The dew point conversion is
only needed when initializing node states and is delegated to CoolProp.
"""
from CoolProp.HumidAirProp import HAPropsSI
from .. import Quantity
from .constants import (
    STANDARD_PRESSURE,
    CP_DRY_AIR,
    CP_WATER_VAPOR,
    H_FG_ZERO,
    R_DRY_AIR
)

Q_ = Quantity

_cp_a = CP_DRY_AIR.to('J / (kg * K)').m
_cp_v = CP_WATER_VAPOR.to('J / (kg * K)').m
_h_fg = H_FG_ZERO.to('J / kg').m
_R_a = R_DRY_AIR.to('J / (kg * K)').m

# ratio of the molar masses of dry air and water vapor
_M_RATIO = 1.6077687


def specific_heat(W: float) -> float:
    """Returns the specific heat of moist air in J/(kg.K) at humidity ratio
    `W` in kg/kg (per unit mass of dry air).
    """
    return _cp_a + _cp_v * max(W, 1.0e-5)


def enthalpy(T: float, W: float) -> float:
    """Returns the specific enthalpy of moist air in J/kg of dry air.

    Parameters
    ----------
    T:
        Dry-bulb temperature in degC.
    W:
        Humidity ratio in kg/kg.
    """
    W = max(W, 1.0e-5)
    return _cp_a * T + W * (_h_fg + _cp_v * T)


def heat_of_vaporization(T: float) -> float:
    """Returns the enthalpy of saturated water vapor in J/kg at dry-bulb
    temperature `T` in degC, which is used to convert a latent heat gain into
    a moisture addition rate.
    """
    return _h_fg + 1.86e3 * T


def density(P: float, T: float, W: float) -> float:
    """Returns the density of moist air in kg/m³ of dry air.

    Parameters
    ----------
    P:
        Barometric pressure in Pa.
    T:
        Dry-bulb temperature in degC.
    W:
        Humidity ratio in kg/kg.
    """
    W = max(W, 1.0e-5)
    return P / (_R_a * (T + 273.15) * (1.0 + _M_RATIO * W))


def humidity_ratio_from_dew_point(
    T_dp: Quantity,
    P: Quantity = STANDARD_PRESSURE
) -> Quantity:
    """Returns the humidity ratio of moist air with dew point temperature
    `T_dp` at pressure `P`.
    """
    T_dp = T_dp.to('K').m
    P = P.to('Pa').m
    # The humidity ratio only depends on the dew point and the pressure;
    # CoolProp needs a third state variable, so the air is taken saturated.
    W = HAPropsSI('W', 'Tdp', T_dp, 'Tdb', T_dp, 'P', P)
    return Q_(W, 'kg / kg')
