"""ZONE EQUIPMENT
---------------
Interface of the zone equipment models as they are seen by the zone equipment
manager, and the equipment list that groups the equipment serving one zone.

The physical models themselves (terminal units, fan coils, baseboards, ...)
are not part of this package. A model is plugged in by deriving from the
abstract base class `ZoneEquipment` and implementing `simulate()`.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from enum import Enum
from dataclasses import dataclass, field


class AvailabilityStatus(Enum):
    NO_ACTION = 'no action'
    FORCE_OFF = 'force off'
    CYCLE_ON = 'cycle on'


class LoadDistributionScheme(Enum):
    SEQUENTIAL = 'Sequential'
    UNIFORM = 'Uniform'
    UNIFORM_PLR = 'UniformPLR'
    SEQUENTIAL_UNIFORM_PLR = 'SequentialUniformPLR'


@dataclass(frozen=True)
class EquipmentLoad:
    """Load assigned to one piece of zone equipment.

    Sensible loads are in W (positive for heating), moisture loads are in kg/s
    of water (positive for humidifying).
    """
    zone_ID: str
    sensible: float = 0.0
    sensible_to_heating_sp: float = 0.0
    sensible_to_cooling_sp: float = 0.0
    moisture: float = 0.0
    moisture_to_humidifying_sp: float = 0.0
    moisture_to_dehumidifying_sp: float = 0.0


class ZoneEquipment(ABC):
    """Abstract base class of zone equipment models.

    Attributes
    ----------
    ID:
        Name of the equipment.
    availability:
        Status set by the availability managers. Equipment that is forced off
        is not simulated.
    """

    def __init__(self, ID: str):
        self.ID = ID
        self.availability = AvailabilityStatus.NO_ACTION

    @abstractmethod
    def simulate(self, load: EquipmentLoad, first_iteration: bool) -> tuple[float, float]:
        """Simulates the equipment to meet `load`.

        Parameters
        ----------
        load:
            Load assigned to the equipment by the load distribution.
        first_iteration:
            True during the first iteration of the HVAC solver in a system
            time step.

        Returns
        -------
        The sensible output delivered to the zone in W and the latent output
        in kg/s of water.
        """
        ...

    @property
    def is_available(self) -> bool:
        return self.availability != AvailabilityStatus.FORCE_OFF


@dataclass
class EquipmentListEntry:
    """One piece of equipment in the equipment list of a zone.

    Attributes
    ----------
    equipment:
        The equipment model.
    heating_priority, cooling_priority:
        Position of the equipment in the simulation order when the zone needs
        heating or cooling. Priority 0 means the equipment is not used in
        that mode.
    sequential_heating_fraction, sequential_cooling_fraction:
        Fraction of the remaining load assigned to the equipment under the
        sequential load distribution.
    heating_capacity, cooling_capacity:
        Last known heating capacity (>= 0 W) and cooling capacity (<= 0 W),
        used by the part-load-ratio load distributions.
    """
    equipment: ZoneEquipment
    heating_priority: int = 1
    cooling_priority: int = 1
    sequential_heating_fraction: float = 1.0
    sequential_cooling_fraction: float = 1.0
    heating_capacity: float = 0.0
    cooling_capacity: float = 0.0

    def priority(self, heating: bool) -> int:
        return self.heating_priority if heating else self.cooling_priority

    def fraction(self, heating: bool) -> float:
        return self.sequential_heating_fraction if heating else self.sequential_cooling_fraction

    def capacity(self, heating: bool) -> float:
        return self.heating_capacity if heating else self.cooling_capacity

    def is_eligible(self, heating: bool) -> bool:
        return self.priority(heating) > 0 and self.equipment.is_available


@dataclass
class EquipmentList:
    """The equipment serving a zone, and the way the zone load is shared
    between them.
    """
    ID: str
    entries: list[EquipmentListEntry] = field(default_factory=list)
    load_distribution_scheme: LoadDistributionScheme = LoadDistributionScheme.SEQUENTIAL

    def __post_init__(self):
        for heating in (True, False):
            priorities = [e.priority(heating) for e in self.entries if e.priority(heating) > 0]
            if len(priorities) != len(set(priorities)):
                mode = 'heating' if heating else 'cooling'
                raise ValueError(
                    f"equipment list '{self.ID}': {mode} priorities "
                    f"must be unique"
                )

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, i: int) -> EquipmentListEntry:
        return self.entries[i]
