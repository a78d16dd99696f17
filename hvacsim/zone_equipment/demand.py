"""Zone heating/cooling and humidification/dehumidification demand."""
from __future__ import annotations
from enum import Enum
from dataclasses import dataclass, field


class ThermostatType(Enum):
    UNCONTROLLED = 'uncontrolled'
    SINGLE_HEATING = 'single heating setpoint'
    SINGLE_COOLING = 'single cooling setpoint'
    SINGLE_HEAT_COOL = 'single heating/cooling setpoint'
    DUAL_SETPOINT_DEADBAND = 'dual setpoint with deadband'


@dataclass
class ZoneDemand:
    """Output that the zone equipment must deliver to a zone.

    The same structure holds the sensible energy demand (W, positive for
    heating) and the moisture demand (kg/s of water, positive for
    humidifying). For the moisture demand the "heating setpoint" is the
    humidifying setpoint and the "cooling setpoint" is the dehumidifying
    setpoint.

    Attributes
    ----------
    total_output_required:
        Output required to reach the current setpoint, as predicted by the
        zone air model.
    output_required_to_heating_sp, output_required_to_cooling_sp:
        Output required to reach the heating and cooling setpoint.
    remaining_output_required, remaining_output_req_to_heat_sp,
    remaining_output_req_to_cool_sp:
        Output that is still required after the equipment that has already
        run in the current pass.
    unadj_remaining_output_required, unadj_remaining_output_req_to_heat_sp,
    unadj_remaining_output_req_to_cool_sp:
        Required output minus the output that the equipment actually
        delivered (running subtraction, used for reporting).
    sequenced_output_required, sequenced_output_required_to_heating_sp,
    sequenced_output_required_to_cooling_sp:
        Target output of each equipment, one slot per position in the
        equipment list of the zone.
    """
    total_output_required: float = 0.0
    output_required_to_heating_sp: float = 0.0
    output_required_to_cooling_sp: float = 0.0
    remaining_output_required: float = 0.0
    remaining_output_req_to_heat_sp: float = 0.0
    remaining_output_req_to_cool_sp: float = 0.0
    unadj_remaining_output_required: float = 0.0
    unadj_remaining_output_req_to_heat_sp: float = 0.0
    unadj_remaining_output_req_to_cool_sp: float = 0.0
    sequenced_output_required: list[float] = field(default_factory=list)
    sequenced_output_required_to_heating_sp: list[float] = field(default_factory=list)
    sequenced_output_required_to_cooling_sp: list[float] = field(default_factory=list)

    def set_required(self, total: float, to_heating_sp: float, to_cooling_sp: float) -> None:
        """Sets the required output as determined by the zone air model."""
        self.total_output_required = total
        self.output_required_to_heating_sp = to_heating_sp
        self.output_required_to_cooling_sp = to_cooling_sp

    def init(self, num_equipment: int) -> None:
        """Resets the remaining output to the full required output and sizes
        the per-equipment slots, at the start of a zone's pass through its
        equipment.
        """
        self.remaining_output_required = self.total_output_required
        self.remaining_output_req_to_heat_sp = self.output_required_to_heating_sp
        self.remaining_output_req_to_cool_sp = self.output_required_to_cooling_sp
        self.unadj_remaining_output_required = self.total_output_required
        self.unadj_remaining_output_req_to_heat_sp = self.output_required_to_heating_sp
        self.unadj_remaining_output_req_to_cool_sp = self.output_required_to_cooling_sp
        self.sequenced_output_required = [self.total_output_required] * num_equipment
        self.sequenced_output_required_to_heating_sp = [self.output_required_to_heating_sp] * num_equipment
        self.sequenced_output_required_to_cooling_sp = [self.output_required_to_cooling_sp] * num_equipment

    def set_slot(self, i: int, total: float, to_heating_sp: float, to_cooling_sp: float) -> None:
        self.sequenced_output_required[i] = total
        self.sequenced_output_required_to_heating_sp[i] = to_heating_sp
        self.sequenced_output_required_to_cooling_sp[i] = to_cooling_sp

    def set_remaining_from_slot(self, i: int) -> None:
        self.remaining_output_required = self.sequenced_output_required[i]
        self.remaining_output_req_to_heat_sp = self.sequenced_output_required_to_heating_sp[i]
        self.remaining_output_req_to_cool_sp = self.sequenced_output_required_to_cooling_sp[i]

    def subtract_delivered(self, delivered: float) -> None:
        """Subtracts the output delivered by one piece of equipment from the
        unadjusted remaining output.
        """
        self.unadj_remaining_output_required -= delivered
        self.unadj_remaining_output_req_to_heat_sp -= delivered
        self.unadj_remaining_output_req_to_cool_sp -= delivered

    def set_remaining_from_unadjusted(self) -> None:
        self.remaining_output_required = self.unadj_remaining_output_required
        self.remaining_output_req_to_heat_sp = self.unadj_remaining_output_req_to_heat_sp
        self.remaining_output_req_to_cool_sp = self.unadj_remaining_output_req_to_cool_sp
