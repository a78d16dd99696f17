from .. import Quantity as Q_

STANDARD_PRESSURE = Q_(101325.0, 'Pa')
STANDARD_TEMPERATURE = Q_(20.0, 'degC')
STANDARD_AIR_DENSITY = Q_(1.2, 'kg / m ** 3')
CP_DRY_AIR = Q_(1.00484e3, 'J / (kg * K)')
CP_WATER_VAPOR = Q_(1.85895e3, 'J / (kg * K)')
CP_APPROX = Q_(1004.844, 'J / (kg * K)')
H_FG_ZERO = Q_(2.50094e6, 'J / kg')
R_DRY_AIR = Q_(287.0, 'J / (kg * K)')
