"""Bounded history of monitored quantities during the HVAC iterations.

The traces are only read by the convergence diagnostics when the solver
fails to converge; the solver itself never uses them.
"""
from __future__ import annotations
from enum import Enum
import numpy as np
from .parameters import TraceTolerances, AIR_TRACE_TOLERANCES


class RingBuffer:
    """Fixed-capacity buffer that keeps the `capacity` most recently pushed
    values.
    """

    def __init__(self, capacity: int = 10):
        if capacity < 1:
            raise ValueError("capacity of a ring buffer must be at least 1")
        self._data = np.zeros(capacity)
        self._head = 0
        self._count = 0

    def push(self, value: float) -> None:
        self._head = (self._head - 1) % self.capacity
        self._data[self._head] = value
        self._count = min(self._count + 1, self.capacity)

    @property
    def values(self) -> np.ndarray:
        """Returns the stored values, the most recent one first."""
        return np.roll(self._data, -self._head)[:self._count]

    @property
    def capacity(self) -> int:
        return self._data.size

    @property
    def full(self) -> bool:
        return self._count == self.capacity

    def clear(self) -> None:
        self._data[:] = 0.0
        self._head = 0
        self._count = 0

    def __len__(self) -> int:
        return self._count


class TraceKind(Enum):
    AIR_LOOP_INTERFACE = 'air loop interface'
    ZONE_INLET_NODE = 'zone inlet node'
    PLANT_LOOP_SIDE = 'plant loop side'


# quantities recorded at nodes and at demand/supply interfaces
NODE_QUANTITIES = ('m_dot', 'W', 'T')
INTERFACE_QUANTITIES = ('flow', 'humidity_ratio', 'temperature', 'energy')


class ConvergenceTrace:
    """History of the quantities monitored at one node or interface.

    Parameters
    ----------
    name:
        Name of the monitored node or interface.
    kind:
        Kind of location that is monitored.
    quantities:
        Names of the monitored quantities.
    depth:
        Number of iterations kept.
    tolerances:
        Oscillation and slope tolerances used by the diagnostics.
    """

    def __init__(
        self,
        name: str,
        kind: TraceKind,
        quantities: tuple[str, ...] = NODE_QUANTITIES,
        depth: int = 10,
        tolerances: TraceTolerances = AIR_TRACE_TOLERANCES
    ):
        self.name = name
        self.kind = kind
        self.tolerances = tolerances
        self.buffers = {q: RingBuffer(depth) for q in quantities}
        self.not_converged = {q: False for q in quantities}

    def record(self, **values: float) -> None:
        for quantity, value in values.items():
            self.buffers[quantity].push(value)

    def __getitem__(self, quantity: str) -> RingBuffer:
        return self.buffers[quantity]

    def clear(self) -> None:
        for quantity, buffer in self.buffers.items():
            buffer.clear()
            self.not_converged[quantity] = False

    def tolerance(self, quantity: str) -> tuple[float, float]:
        """Returns the oscillation and slope tolerance of `quantity`."""
        t = self.tolerances
        match quantity:
            case 'm_dot' | 'flow':
                return t.flow_oscillation, t.flow_slope
            case 'W' | 'humidity_ratio':
                return t.humidity_ratio_oscillation, t.humidity_ratio_slope
            case 'T' | 'temperature':
                return t.temperature_oscillation, t.temperature_slope
            case _:
                return 0.0, float('inf')
