from .parameters import (
    ConvergenceLimits,
    InterfaceTolerances,
    TraceTolerances,
    AIR_TRACE_TOLERANCES,
    PLANT_TRACE_TOLERANCES,
    SMALL_MASS_FLOW,
    SMALL_AIR_VOL_FLOW
)

from .flags import Flag, FlagIntent, SimulationFlags

from .context import SolverContext, CallingPoint

from .subsystems import Subsystem, PlantSubsystem

from .interface import update_hvac_interface

from .convergence import ConvergenceSolver, ConvergenceWarning, SolverResult

from .timestep import TimestepController, TimestepResult, ZoneAirModel
