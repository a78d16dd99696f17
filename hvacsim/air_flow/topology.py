"""AIR SYSTEM TOPOLOGY
--------------------
Zones, the way zone equipment is connected to the zone (inlet, exhaust and
return nodes), zone mixing and infiltration objects, and the air loops that
serve the zones.

The topology is built once when the model is set up and does not change
during the simulation. The instantaneous state (node conditions, flow rates,
loads) is mutated every system time step by the solver and by the models of
the equipment.
"""
from __future__ import annotations
from typing import Callable, TYPE_CHECKING
from enum import Enum
from dataclasses import dataclass, field
from .nodes import NodeArena, Node, NodeId, ZoneId, AirLoopId
from ..zone_equipment.demand import ZoneDemand, ThermostatType

if TYPE_CHECKING:
    from ..zone_equipment.equipment import EquipmentList


Schedule = Callable[[], float]


class DuctType(Enum):
    MAIN = 'main'
    COOLING = 'cooling'
    HEATING = 'heating'


class FanOperationMode(Enum):
    CYCLING = 'cycling fan, cycling coil'
    CONTINUOUS = 'continuous fan, cycling coil'


class ReturnGainSource(Enum):
    LIGHTS = 'lights'
    REFRIGERATED_CASE = 'refrigerated case'
    OTHER = 'other'


@dataclass
class ReturnAirGain:
    """Heat gain picked up by the air on its way to a zone return node.

    Attributes
    ----------
    convective:
        Convective heat gain, W (negative for a cooling credit, e.g. from
        refrigerated cases).
    latent:
        Latent heat gain, W.
    return_node:
        Return node that receives the gain. If None, the gain goes to the
        first return node of the zone.
    """
    source: ReturnGainSource
    convective: float = 0.0
    latent: float = 0.0
    return_node: NodeId | None = None


@dataclass
class AirflowWindow:
    """Airflow window whose gap air is discharged to the zone return air."""
    ID: str
    m_dot: float = 0.0
    T_outlet: float = 20.0


@dataclass
class ZoneEquipConfig:
    """Connections of a controlled zone to its equipment and air loops.

    Attributes
    ----------
    zone_node:
        Node holding the zone air conditions.
    inlet_nodes:
        Supply air inlet nodes of the zone.
    inlet_air_loops:
        Air loop serving each inlet node (None for zonal equipment).
    exhaust_nodes:
        Exhaust nodes of the zone.
    return_nodes:
        Return air nodes of the zone.
    return_air_loops:
        Air loop served by each return node (None if not connected).
    return_inlets:
        For each return node, the index in `inlet_nodes` of the inlet that is
        supplied by the same air loop (None if there is none).
    return_flow_basis_nodes:
        If not empty, the flow at the first return node is the sum of the
        flows at these nodes.
    return_flow_schedule:
        Schedule returning the fraction of the return flow that goes to the
        return nodes. Defaults to 1.0.
    balanced_exhaust_m_dot:
        Part of the exhaust flow that is balanced by outdoor air brought in by
        zone equipment, kg/s.
    """
    zone_node: NodeId
    inlet_nodes: list[NodeId] = field(default_factory=list)
    inlet_air_loops: list[AirLoopId | None] = field(default_factory=list)
    exhaust_nodes: list[NodeId] = field(default_factory=list)
    return_nodes: list[NodeId] = field(default_factory=list)
    return_air_loops: list[AirLoopId | None] = field(default_factory=list)
    return_inlets: list[int | None] = field(default_factory=list)
    return_flow_basis_nodes: list[NodeId] = field(default_factory=list)
    return_flow_schedule: Schedule | None = None
    balanced_exhaust_m_dot: float = 0.0
    is_controlled: bool = True
    # state
    fixed_return_flow: list[bool] = field(default_factory=list)
    excess_zone_exh: float = 0.0
    tot_inlet_m_dot: float = 0.0
    zonal_system_only: bool = False
    flow_error: bool = False

    def __post_init__(self):
        if not self.inlet_air_loops:
            self.inlet_air_loops = [None] * len(self.inlet_nodes)
        if not self.return_air_loops:
            self.return_air_loops = [None] * len(self.return_nodes)
        if not self.return_inlets:
            self.return_inlets = [None] * len(self.return_nodes)
        self.fixed_return_flow = [False] * len(self.return_nodes)

    @property
    def return_flow_fraction(self) -> float:
        if self.return_flow_schedule is None:
            return 1.0
        return self.return_flow_schedule()


@dataclass
class ZoneMassConservation:
    """Flow rates of a zone as determined by the zone air mass balance, kg/s."""
    in_m_dot: float = 0.0
    exh_m_dot: float = 0.0
    ret_m_dot: float = 0.0
    mixing_m_dot: float = 0.0
    mixing_source_m_dot: float = 0.0
    infiltration_m_dot: float = 0.0
    include_infiltration: bool = False
    is_source_zone: bool = False
    is_receiving_zone: bool = False


@dataclass
class Zone:
    """Controlled or uncontrolled thermal zone.

    Attributes
    ----------
    ID:
        Name of the zone.
    zone_node:
        Node holding the zone air conditions.
    config:
        Equipment connections of the zone (None for a zone without HVAC
        equipment).
    equipment_list:
        Zone equipment serving the zone (None for a zone without HVAC
        equipment).
    multiplier, list_multiplier:
        Scale factors for identical zones.
    thermostat_type:
        Kind of zone temperature control.
    return_air_gains:
        Heat gains picked up by the return air.
    airflow_windows:
        Airflow windows discharging to the return air.
    infiltration_m_dot, ventilation_m_dot:
        Incoming outdoor air flow rates determined by the zone heat balance,
        kg/s.
    """
    ID: str
    zone_node: NodeId
    config: ZoneEquipConfig | None = None
    equipment_list: EquipmentList | None = None
    multiplier: int = 1
    list_multiplier: int = 1
    thermostat_type: ThermostatType = ThermostatType.UNCONTROLLED
    return_air_gains: list[ReturnAirGain] = field(default_factory=list)
    airflow_windows: list[AirflowWindow] = field(default_factory=list)
    infiltration_m_dot: float = 0.0
    ventilation_m_dot: float = 0.0
    # state
    no_heat_to_return_air: bool = False
    dead_band_or_setback: bool = False
    energy_demand: ZoneDemand = field(default_factory=ZoneDemand)
    moisture_demand: ZoneDemand = field(default_factory=ZoneDemand)
    sys_output_provided: float = 0.0
    latent_output_provided: float = 0.0
    sys_dep_zone_loads: float = 0.0
    zone_latent_gain: float = 0.0
    T_avg: float = 0.0
    W_avg: float = 0.0
    mass_conservation: ZoneMassConservation = field(default_factory=ZoneMassConservation)

    @property
    def is_controlled(self) -> bool:
        return self.config is not None and self.config.is_controlled


@dataclass
class ZoneMixing:
    """Air transferred from a source zone to a receiving zone, kg/s."""
    receiving_zone: ZoneId
    source_zone: ZoneId
    design_m_dot: float
    m_dot: float = 0.0


@dataclass
class Infiltration:
    """Outdoor air infiltration into a zone.

    `base_m_dot` is the flow rate determined by the zone heat balance;
    `m_dot` is the flow rate after the zone air mass balance.
    """
    zone: ZoneId
    base_m_dot: float = 0.0
    m_dot: float = 0.0


@dataclass
class AirLoopFlow:
    """Flow rates of an air loop, kg/s."""
    sup_flow: float = 0.0
    zone_ret_flow: float = 0.0
    zone_ret_flow_ratio: float = 1.0
    sys_ret_flow: float = 0.0
    recirc_flow: float = 0.0
    leak_flow: float = 0.0
    oa_flow: float = 0.0
    oa_frac: float = 0.0
    excess_zone_exh_flow: float = 0.0
    des_return_frac: float = 1.0
    bypass_m_dot: float = 0.0
    req_supply_frac: float = 1.0
    flow_error: bool = False


@dataclass
class AirLoopControl:
    """Control status of an air loop that is set by the air loop itself and by
    the set point and availability managers.
    """
    unitary_system: bool = False
    cycling_fan_schedule: Schedule | None = None
    cycling_fan_schedule_max: float = 0.0
    any_continuous_fan: bool = True
    fan_op_mode: FanOperationMode = FanOperationMode.CONTINUOUS
    econo_active: bool = False
    reqst_econo_lockout_with_compressor: bool = False
    reqst_econo_lockout_with_heating: bool = False
    econo_lockout: bool = False
    night_vent: bool = False
    loop_flow_rate_set: bool = False


@dataclass
class SupplyPath:
    """An air loop supply outlet and the terminal unit inlet nodes it feeds."""
    supply_node: NodeId
    duct_type: DuctType = DuctType.MAIN
    terminal_inlet_nodes: list[NodeId] = field(default_factory=list)


@dataclass
class AirLoop:
    """Primary air system as seen from the zones.

    Attributes
    ----------
    ID:
        Name of the air loop.
    has_oa_system:
        True if the air loop has an outdoor air system.
    max_outdoor_air_m_dot:
        Maximum outdoor air flow rate of the outdoor air system, kg/s.
    supply_paths:
        Supply outlets of the air loop with the terminal units they feed.
    return_path_outlet, return_inlet:
        Outlet node of the zone return air path (demand side) and return air
        inlet node of the air loop (supply side).
    """
    ID: str
    has_oa_system: bool = False
    max_outdoor_air_m_dot: float = 0.0
    supply_paths: list[SupplyPath] = field(default_factory=list)
    return_path_outlet: NodeId | None = None
    return_inlet: NodeId | None = None
    flow: AirLoopFlow = field(default_factory=AirLoopFlow)
    control: AirLoopControl = field(default_factory=AirLoopControl)

    @property
    def return_flow_is_fixed(self) -> bool:
        """The zone return flow of an air loop without outdoor air equals the
        supply flow to the zone.
        """
        return not self.has_oa_system or self.max_outdoor_air_m_dot <= 0.0


class AirNetwork:
    """Container of the air system of a building model: all the nodes, zones,
    air loops, zone mixing and infiltration objects.

    Zones and air loops are stored in lists and identified by their position
    in these lists (`ZoneId`, `AirLoopId`).
    """

    def __init__(self):
        self.nodes = NodeArena()
        self.zones: list[Zone] = []
        self.air_loops: list[AirLoop] = []
        self.mixings: list[ZoneMixing] = []
        self.infiltrations: list[Infiltration] = []

    def add_zone(self, zone: Zone) -> ZoneId:
        self.zones.append(zone)
        return ZoneId(len(self.zones) - 1)

    def add_air_loop(self, air_loop: AirLoop) -> AirLoopId:
        self.air_loops.append(air_loop)
        return AirLoopId(len(self.air_loops) - 1)

    def add_mixing(self, mixing: ZoneMixing) -> None:
        self.zones[mixing.receiving_zone].mass_conservation.is_receiving_zone = True
        self.zones[mixing.source_zone].mass_conservation.is_source_zone = True
        self.mixings.append(mixing)

    def add_infiltration(self, infiltration: Infiltration) -> None:
        self.infiltrations.append(infiltration)

    def node(self, node_id: NodeId) -> Node:
        return self.nodes[node_id]

    def zone_id(self, zone: Zone) -> ZoneId:
        return ZoneId(self.zones.index(zone))

    def zone_air(self, zone: Zone) -> Node:
        return self.nodes[zone.zone_node]

    def zone_mixing_m_dot(self, zone_id: ZoneId) -> float:
        """Returns the total mixing flow rate that zone `zone_id` receives."""
        return sum(
            mixing.m_dot for mixing in self.mixings
            if mixing.receiving_zone == zone_id
        )

    def served_zones(self, air_loop_id: AirLoopId) -> list[Zone]:
        """Returns the zones with at least one inlet node supplied by air loop
        `air_loop_id`.
        """
        return [
            zone for zone in self.zones
            if zone.config is not None
            and air_loop_id in zone.config.inlet_air_loops
        ]
