from .nodes import Node, NodeArena, NodeId, ZoneId, AirLoopId

from .topology import (
    AirNetwork,
    Zone,
    ZoneEquipConfig,
    ZoneMixing,
    Infiltration,
    AirLoop,
    AirLoopFlow,
    AirLoopControl,
    SupplyPath,
    DuctType,
    FanOperationMode,
    ReturnAirGain,
    ReturnGainSource,
    AirflowWindow
)

from .mass_balance import (
    MassBalanceEngine,
    ZoneAirMassFlowSettings,
    InfiltrationTreatment,
    InfiltrationZoneType,
    ReturnNodeConfigurationError
)

from .leaving_conditions import LeavingConditionsUpdater

from .heat_to_return import set_heat_to_return_air_flag
