"""Zone equipment: demand records, equipment lists and the load distribution.

The zone equipment subsystem itself is imported from its own module, as it
depends on `hvacsim.air_flow`, which in turn uses the demand records of this
package:

    from hvacsim.zone_equipment.manager import ZoneEquipmentManager
"""
from .demand import ZoneDemand, ThermostatType

from .equipment import (
    ZoneEquipment,
    AvailabilityStatus,
    EquipmentLoad,
    EquipmentList,
    EquipmentListEntry,
    LoadDistributionScheme
)

from .load_distribution import (
    LoadDistributionEngine,
    LoadDistributionError,
    set_sim_order
)
