"""Interfaces of the subsystems that the HVAC solver simulates.

The solver does not know what is inside a subsystem. It only knows which
re-simulation flag belongs to the subsystem, and it expects the subsystem to
return the flags it wants to raise after it has been simulated.
"""
from __future__ import annotations
from typing import TYPE_CHECKING
from abc import ABC, abstractmethod
from .flags import Flag, FlagIntent

if TYPE_CHECKING:
    from .context import SolverContext
    from .trace import ConvergenceTrace


class Subsystem(ABC):
    """Abstract base class of a subsystem (air loops, zone equipment,
    non-zone equipment, plant loops or electric circuits).

    Class attribute `flag` must be set by derived classes to the re-simulation
    flag of the subsystem.
    """
    flag: Flag

    def __init__(self):
        self._input_processed = False

    def get_input(self, context: SolverContext) -> None:
        """One-time setup of the subsystem, called before it is simulated
        for the first time. Derived classes override this when they need it.
        """
        pass

    def ensure_input(self, context: SolverContext) -> None:
        if not self._input_processed:
            self.get_input(context)
            self._input_processed = True

    @abstractmethod
    def simulate(self, context: SolverContext, first_iteration: bool) -> FlagIntent:
        """Simulates the subsystem once.

        Parameters
        ----------
        context:
            The solver context.
        first_iteration:
            True during the first HVAC iteration of the system time step.

        Returns
        -------
        The re-simulation flags the subsystem wants to raise.
        """
        ...


class PlantSubsystem(Subsystem):
    """Abstract base class of the plant loops subsystem, which has some extra
    interaction with the solver compared to the other subsystems.
    """
    flag = Flag.PLANT_LOOPS

    def set_flow_lock(self, locked: bool) -> None:
        """Locks or unlocks the flow rates on the demand side of the plant
        loops.
        """
        pass

    def reset_interconnect_flags(self) -> None:
        pass

    def reinit_at_first_iteration(self, context: SolverContext) -> None:
        pass

    def set_all_sim_flags(self, value: bool) -> None:
        """Sets the re-simulation flags of all plant loop sides."""
        pass

    def any_loop_sides_need_sim(self) -> bool:
        return False

    def lacks_splitter_mixer_continuity(self) -> bool:
        """Returns True if the flow rates at any splitter or mixer in the
        plant loops do not add up.
        """
        return False

    def update_convergence_log(self) -> None:
        pass

    def check_consistency(self, context: SolverContext) -> None:
        """Checks the plant loops for inconsistencies after the solver has
        finished.
        """
        pass

    def traces(self) -> list[ConvergenceTrace]:
        return []
