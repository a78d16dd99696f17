"""LOAD DISTRIBUTION
------------------
Sharing of a zone's heating/cooling (and moisture) load between the pieces of
equipment in its equipment list.

Four schemes are available (see `LoadDistributionScheme`):

- Sequential: the equipment run in priority order. Each piece of equipment is
  assigned its sequential load fraction of the total zone load.
- Uniform: every eligible piece of equipment gets an equal share of the load.
- UniformPLR: every eligible piece of equipment runs at the same part load
  ratio, i.e. the load is shared in proportion to the equipment capacities.
- SequentialUniformPLR: like UniformPLR, but only the leading equipment (in
  priority order) needed to cover the load is used.

Equipment is eligible in heating (cooling) mode when its heating (cooling)
priority is not zero and it is not forced off by an availability manager.
"""
from __future__ import annotations
from typing import Callable, TYPE_CHECKING
from .demand import ZoneDemand, ThermostatType
from .equipment import EquipmentList, EquipmentLoad, LoadDistributionScheme

if TYPE_CHECKING:
    from ..air_flow.topology import Zone


_Triple = tuple[float, float, float]


class LoadDistributionError(Exception):
    """Raised when the load of a zone cannot be distributed over its
    equipment.
    """
    pass


def set_sim_order(equipment_list: EquipmentList, heating: bool) -> list[int]:
    """Returns the positions of the equipment in `equipment_list` sorted in
    the order the equipment must be simulated: by ascending heating priority
    if `heating` is True, else by ascending cooling priority. Equipment with
    priority 0 is put at the end. Equipment with equal priority keeps its list
    order.
    """
    def _key(i: int) -> tuple[bool, int]:
        p = equipment_list[i].priority(heating)
        return p == 0, p

    return sorted(range(len(equipment_list)), key=_key)


def _required(demand: ZoneDemand) -> _Triple:
    return (
        demand.total_output_required,
        demand.output_required_to_heating_sp,
        demand.output_required_to_cooling_sp
    )


class LoadDistributionEngine:
    """Distributes the load of a zone over its equipment and keeps track of
    the load that remains after each piece of equipment has run.

    The engine is used by the zone equipment manager in three steps for each
    zone in each pass:

    1. `init_output_required()` resets the demand of the zone and determines
       the simulation order of its equipment.
    2. `distribute()` fills the per-equipment target slots of the energy and
       moisture demand.
    3. `update()` is called after each piece of equipment has run with the
       output it delivered.
    """

    def __init__(self):
        self._distributors: dict[LoadDistributionScheme, Callable[[Zone, list[int], bool], None]] = {
            LoadDistributionScheme.SEQUENTIAL: self._distribute_sequential,
            LoadDistributionScheme.UNIFORM: self._distribute_uniform,
            LoadDistributionScheme.UNIFORM_PLR: self._distribute_uniform_plr,
            LoadDistributionScheme.SEQUENTIAL_UNIFORM_PLR: self._distribute_uniform_plr
        }
        self._sim_order: dict[str, list[int]] = {}
        # load left over after the sequential targets (energy, moisture)
        self._residual: dict[str, tuple[_Triple, _Triple]] = {}

    @staticmethod
    def is_heating(zone: Zone) -> bool:
        return zone.energy_demand.total_output_required >= 0.0

    def sim_order(self, zone: Zone) -> list[int]:
        """Returns the simulation order of the equipment of `zone` determined
        by the last call to `init_output_required()`.
        """
        return self._sim_order.get(zone.ID, [])

    def init_output_required(self, zone: Zone) -> list[int]:
        """Resets the remaining output of `zone` to the required output and
        returns the simulation order of its equipment.
        """
        n = len(zone.equipment_list) if zone.equipment_list is not None else 0
        zone.energy_demand.init(n)
        zone.moisture_demand.init(n)
        if zone.equipment_list is not None:
            order = set_sim_order(zone.equipment_list, self.is_heating(zone))
        else:
            order = []
        self._sim_order[zone.ID] = order
        self._residual.pop(zone.ID, None)
        self._update_dead_band(zone)
        return order

    def distribute(self, zone: Zone, first_iteration: bool) -> None:
        """Assigns a target load to each piece of equipment of `zone`.

        Parameters
        ----------
        zone:
            The zone; its demand must have been initialized with
            `init_output_required()`.
        first_iteration:
            True during the first HVAC iteration of the system time step.
            Under the part-load-ratio schemes each piece of equipment then
            gets the full zone load, so that its capacity can be determined.

        Raises
        ------
        LoadDistributionError:
            If the load distribution scheme of the equipment list is unknown.
        """
        equipment_list = zone.equipment_list
        if equipment_list is None or len(equipment_list) == 0:
            return
        if zone.thermostat_type == ThermostatType.UNCONTROLLED:
            # remaining output is a running subtraction, see `update()`
            return
        distributor = self._distributors.get(equipment_list.load_distribution_scheme)
        if distributor is None:
            raise LoadDistributionError(
                f"zone '{zone.ID}': unknown load distribution scheme "
                f"{equipment_list.load_distribution_scheme!r} in equipment "
                f"list '{equipment_list.ID}'"
            )
        order = self.sim_order(zone)
        distributor(zone, order, first_iteration)
        # equipment that reads the remaining output instead of its own slot
        # gets the load of the first equipment in the order
        zone.energy_demand.set_remaining_from_slot(order[0])
        zone.moisture_demand.set_remaining_from_slot(order[0])
        self._update_dead_band(zone)

    def update(self, zone: Zone, sensible: float, latent: float, priority_num: int) -> None:
        """Updates the remaining output of `zone` after the equipment at
        position `priority_num` in the simulation order has delivered
        `sensible` output (W) and `latent` output (kg/s).
        """
        energy, moisture = zone.energy_demand, zone.moisture_demand
        energy.subtract_delivered(sensible)
        moisture.subtract_delivered(latent)
        if zone.thermostat_type == ThermostatType.UNCONTROLLED or zone.equipment_list is None:
            energy.set_remaining_from_unadjusted()
            moisture.set_remaining_from_unadjusted()
        else:
            order = self.sim_order(zone)
            residual = self._residual.get(zone.ID)
            if priority_num + 1 < len(order):
                energy.set_remaining_from_slot(order[priority_num + 1])
                moisture.set_remaining_from_slot(order[priority_num + 1])
            elif residual is not None:
                # sequential: the load no fraction was assigned to
                self._set_remaining(energy, residual[0])
                self._set_remaining(moisture, residual[1])
            else:
                energy.set_remaining_from_unadjusted()
                moisture.set_remaining_from_unadjusted()
        self._update_dead_band(zone)

    @staticmethod
    def equipment_load(zone: Zone, i: int) -> EquipmentLoad:
        """Returns the load assigned to the equipment at position `i` in the
        equipment list of `zone`.
        """
        e, m = zone.energy_demand, zone.moisture_demand
        return EquipmentLoad(
            zone_ID=zone.ID,
            sensible=e.sequenced_output_required[i],
            sensible_to_heating_sp=e.sequenced_output_required_to_heating_sp[i],
            sensible_to_cooling_sp=e.sequenced_output_required_to_cooling_sp[i],
            moisture=m.sequenced_output_required[i],
            moisture_to_humidifying_sp=m.sequenced_output_required_to_heating_sp[i],
            moisture_to_dehumidifying_sp=m.sequenced_output_required_to_cooling_sp[i]
        )

    @staticmethod
    def _set_remaining(demand: ZoneDemand, values: _Triple) -> None:
        (
            demand.remaining_output_required,
            demand.remaining_output_req_to_heat_sp,
            demand.remaining_output_req_to_cool_sp
        ) = values

    def _distribute_sequential(self, zone: Zone, order: list[int], first_iteration: bool) -> None:
        heating = self.is_heating(zone)
        energy, moisture = zone.energy_demand, zone.moisture_demand
        e_req, m_req = _required(energy), _required(moisture)
        e_left, m_left = e_req, m_req
        for i in order:
            entry = zone.equipment_list[i]
            f = entry.fraction(heating) if entry.is_eligible(heating) else 0.0
            e_slot = tuple(v * f for v in e_req)
            m_slot = tuple(v * f for v in m_req)
            energy.set_slot(i, *e_slot)
            moisture.set_slot(i, *m_slot)
            e_left = tuple(v - s for v, s in zip(e_left, e_slot))
            m_left = tuple(v - s for v, s in zip(m_left, m_slot))
        self._residual[zone.ID] = (e_left, m_left)

    def _distribute_uniform(self, zone: Zone, order: list[int], first_iteration: bool) -> None:
        heating = self.is_heating(zone)
        energy, moisture = zone.energy_demand, zone.moisture_demand
        eligible = [i for i in order if zone.equipment_list[i].is_eligible(heating)]
        self._clear_slots(zone)
        k = len(eligible)
        if k == 0:
            return
        e_req, m_req = _required(energy), _required(moisture)
        for i in eligible:
            energy.set_slot(i, *(v / k for v in e_req))
            moisture.set_slot(i, *(v / k for v in m_req))

    def _distribute_uniform_plr(self, zone: Zone, order: list[int], first_iteration: bool) -> None:
        heating = self.is_heating(zone)
        equipment_list = zone.equipment_list
        energy, moisture = zone.energy_demand, zone.moisture_demand
        e_req, m_req = _required(energy), _required(moisture)
        eligible = [i for i in order if equipment_list[i].is_eligible(heating)]
        self._clear_slots(zone)
        if first_iteration:
            # every piece of equipment gets the full load; the output it
            # delivers is recorded as its capacity
            for i in eligible:
                energy.set_slot(i, *e_req)
                moisture.set_slot(i, *m_req)
            return
        total = energy.total_output_required
        sequential = equipment_list.load_distribution_scheme == LoadDistributionScheme.SEQUENTIAL_UNIFORM_PLR
        available_capacity = 0.0
        included = []
        for i in eligible:
            capacity = equipment_list[i].capacity(heating)
            if (heating and capacity <= 0.0) or (not heating and capacity >= 0.0):
                continue
            available_capacity += capacity
            included.append(i)
            if sequential and abs(available_capacity) >= abs(total):
                break
        if available_capacity == 0.0:
            return
        plr = total / available_capacity
        for i in included:
            capacity = equipment_list[i].capacity(heating)
            share = capacity / available_capacity
            target = capacity * plr
            energy.set_slot(i, target, e_req[1] * share, e_req[2] * share)
            ratio = target / total if total != 0.0 else plr
            moisture.set_slot(i, *(v * ratio for v in m_req))

    @staticmethod
    def _clear_slots(zone: Zone) -> None:
        for i in range(len(zone.equipment_list)):
            zone.energy_demand.set_slot(i, 0.0, 0.0, 0.0)
            zone.moisture_demand.set_slot(i, 0.0, 0.0, 0.0)

    @staticmethod
    def _update_dead_band(zone: Zone) -> None:
        # re-derived from the setpoint-relative remaining loads
        energy = zone.energy_demand
        to_heat = energy.remaining_output_req_to_heat_sp
        to_cool = energy.remaining_output_req_to_cool_sp
        match zone.thermostat_type:
            case ThermostatType.SINGLE_HEATING:
                zone.dead_band_or_setback = to_heat < 0.0
            case ThermostatType.SINGLE_COOLING:
                zone.dead_band_or_setback = to_cool > 0.0
            case ThermostatType.SINGLE_HEAT_COOL | ThermostatType.DUAL_SETPOINT_DEADBAND:
                zone.dead_band_or_setback = to_heat < 0.0 and to_cool > 0.0
            case _:
                zone.dead_band_or_setback = False
