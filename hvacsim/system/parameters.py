"""Iteration limits and convergence tolerances of the HVAC solver.

All tolerances are in SI units: kg/s for mass flow rates, W for energy rates,
K for temperatures and kg/kg for humidity ratios.
"""
from dataclasses import dataclass


# flow rates below this value are considered to be zero
SMALL_MASS_FLOW = 0.001  # kg/s
SMALL_AIR_VOL_FLOW = 0.001  # m³/s


@dataclass
class ConvergenceLimits:
    """Iteration limits of the HVAC solver.

    Attributes
    ----------
    max_iter:
        Maximum number of HVAC iterations (passes) after the first one.
    min_air_loop_iterations_after_first:
        The air loops and the zone equipment are simulated again in every
        pass until this number of passes has been reached.
    max_air:
        Maximum number of air loop / zone equipment iterations within one
        pass.
    max_warnings:
        Maximum number of non-convergence warnings per environment.
    trace_depth:
        Number of iterations kept in the convergence traces.
    max_opt_passes:
        Maximum number of solver re-runs requested by the condenser entering
        temperature optimization.
    """
    max_iter: int = 20
    min_air_loop_iterations_after_first: int = 1
    max_air: int = 5
    max_warnings: int = 15
    trace_depth: int = 10
    max_opt_passes: int = 20


@dataclass(frozen=True)
class InterfaceTolerances:
    """Tolerances used when transferring conditions between the demand and
    the supply side of an air loop.
    """
    flow: float = 0.01
    energy: float = 10.0
    temperature: float = 0.01
    humidity_ratio: float = 1.0e-4


@dataclass(frozen=True)
class TraceTolerances:
    """Tolerances used by the diagnostics to detect oscillating and drifting
    values in the convergence traces.
    """
    flow_oscillation: float = 1.0e-7
    humidity_ratio_oscillation: float = 1.0e-8
    temperature_oscillation: float = 1.0e-6
    flow_slope: float = 1.0e-3
    humidity_ratio_slope: float = 1.0e-4
    temperature_slope: float = 1.0e-3


AIR_TRACE_TOLERANCES = TraceTolerances()
PLANT_TRACE_TOLERANCES = TraceTolerances(
    flow_oscillation=1.0e-7,
    temperature_oscillation=1.0e-6,
    flow_slope=1.0e-3,
    temperature_slope=1.0e-3
)
