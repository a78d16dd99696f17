from .constants import (
    STANDARD_PRESSURE,
    STANDARD_TEMPERATURE,
    STANDARD_AIR_DENSITY,
    CP_APPROX
)

from .psychrometrics import (
    density,
    specific_heat,
    enthalpy,
    heat_of_vaporization,
    humidity_ratio_from_dew_point
)
