"""Convergence diagnostics.

When the HVAC solver reaches its iteration limit, the recent history of the
monitored quantities can tell why: a value that keeps coming back to an
earlier value points to an oscillation between two or more states, a value
that keeps changing in the same direction points to a slow drift that needs
more iterations than allowed.
"""
from __future__ import annotations
from typing import Iterable
from enum import Enum
from dataclasses import dataclass
import numpy as np
from scipy.stats import linregress
from ..logging import ModuleLogger
from .trace import ConvergenceTrace, TraceKind

logger = ModuleLogger.get_logger(__name__)


class TrendKind(Enum):
    OSCILLATING = 'oscillating'
    INCREASING = 'increasing'
    DECREASING = 'decreasing'


@dataclass
class Finding:
    trace_name: str
    quantity: str
    kind: TrendKind
    history: np.ndarray
    slope: float | None = None

    def __str__(self) -> str:
        history = ', '.join(f'{v:.6g}' for v in self.history)
        s = f"{self.trace_name}: {self.quantity} is {self.kind.value}"
        if self.slope is not None:
            s += f" (slope {self.slope:.6g} per iteration)"
        return s + f"; last values [{history}]"


def is_oscillating(values: np.ndarray, tolerance: float) -> bool:
    """Returns True if the most recent value (first element of `values`)
    deviates from the average of the history, but repeats one of the earlier
    values within `tolerance`.
    """
    if len(values) < 2:
        return False
    if abs(values[0] - values.mean()) <= tolerance:
        return False
    return bool(np.any(np.abs(values[0] - values[1:]) < tolerance))


def trend_slope(values: np.ndarray) -> float:
    """Returns the least-squares slope of the history in `values` (most
    recent value first) per iteration.
    """
    x = -np.arange(len(values), dtype=float)
    return float(linregress(x, values).slope)


def detect_trend(values: np.ndarray, slope_tolerance: float) -> tuple[TrendKind, float] | None:
    """Returns the direction and slope of the history in `values` if it is
    monotonic with a slope steeper than `slope_tolerance`, else None.
    """
    if len(values) < 3:
        return None
    slope = trend_slope(values)
    if abs(slope) <= slope_tolerance:
        return None
    # newer value minus the value one iteration older
    steps = values[:-1] - values[1:]
    if np.all(steps > 0.0):
        return TrendKind.INCREASING, slope
    if np.all(steps < 0.0):
        return TrendKind.DECREASING, slope
    return None


def diagnose(trace: ConvergenceTrace) -> list[Finding]:
    """Looks for oscillations and monotonic trends in every quantity of
    `trace`.
    """
    findings = []
    for quantity, buffer in trace.buffers.items():
        values = buffer.values
        osc_tol, slope_tol = trace.tolerance(quantity)
        if is_oscillating(values, osc_tol):
            findings.append(Finding(trace.name, quantity, TrendKind.OSCILLATING, values))
            continue
        trend = detect_trend(values, slope_tol)
        if trend is not None:
            kind, slope = trend
            findings.append(Finding(trace.name, quantity, kind, values, slope))
    return findings


def report(traces: Iterable[ConvergenceTrace]) -> list[Finding]:
    """Writes the diagnosis of all `traces` to the log and returns the
    findings.
    """
    findings = []
    for trace in traces:
        if trace.kind == TraceKind.AIR_LOOP_INTERFACE:
            for quantity, flag in trace.not_converged.items():
                if flag:
                    history = ', '.join(f'{v:.6g}' for v in trace[quantity].values)
                    logger.warning(
                        f"air loop interface {trace.name}: {quantity} "
                        f"not converged; last check values [{history}]"
                    )
        trace_findings = diagnose(trace)
        for finding in trace_findings:
            logger.warning(f"{trace.kind.value} {finding}")
        findings.extend(trace_findings)
    return findings
