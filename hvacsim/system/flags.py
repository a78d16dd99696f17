"""Re-simulation flags of the HVAC solver.

Each subsystem of the HVAC system has a flag that tells the solver the
subsystem must be simulated (again) in the current pass. The solver clears
the flag of a subsystem before it simulates the subsystem. After running, a
subsystem returns a `FlagIntent` with the flags it wants to raise, which is
how the coupling between the subsystems is expressed.
"""
from __future__ import annotations
from enum import Enum
from dataclasses import dataclass, fields


class Flag(Enum):
    AIR_LOOPS = 'air_loops'
    ZONE_EQUIPMENT = 'zone_equipment'
    NON_ZONE_EQUIPMENT = 'non_zone_equipment'
    PLANT_LOOPS = 'plant_loops'
    ELEC_CIRCUITS = 'elec_circuits'


@dataclass
class _FlagSet:
    air_loops: bool = False
    zone_equipment: bool = False
    non_zone_equipment: bool = False
    plant_loops: bool = False
    elec_circuits: bool = False

    def __getitem__(self, flag: Flag) -> bool:
        return getattr(self, flag.value)

    def __setitem__(self, flag: Flag, value: bool) -> None:
        setattr(self, flag.value, value)

    def any(self) -> bool:
        return any(getattr(self, f.name) for f in fields(self))

    def raised(self) -> list[Flag]:
        return [flag for flag in Flag if self[flag]]


@dataclass
class FlagIntent(_FlagSet):
    """Flags a subsystem wants to raise after it has been simulated."""

    @classmethod
    def of(cls, *flags: Flag) -> FlagIntent:
        intent = cls()
        for flag in flags:
            intent[flag] = True
        return intent

    def __or__(self, other: FlagIntent) -> FlagIntent:
        return FlagIntent.of(*self.raised(), *other.raised())


@dataclass
class SimulationFlags(_FlagSet):
    """The re-simulation flags shared by all subsystems in a pass of the
    HVAC solver.
    """

    def set_all(self, value: bool = True) -> None:
        for flag in Flag:
            self[flag] = value

    def apply(self, intent: FlagIntent) -> None:
        """Raises the flags that are raised in `intent`."""
        for flag in intent.raised():
            self[flag] = True
