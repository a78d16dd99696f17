"""Transfer of air conditions across the boundary between the demand side
(zones) and the supply side (air loop) of an air system.
"""
from __future__ import annotations
from ..air_flow.nodes import Node
from ..fluids import CP_APPROX
from .parameters import InterfaceTolerances
from .trace import ConvergenceTrace

_cp = CP_APPROX.to('J / (kg * K)').m


def update_hvac_interface(
    outlet: Node,
    inlet: Node,
    tolerances: InterfaceTolerances = InterfaceTolerances(),
    trace: ConvergenceTrace | None = None
) -> bool:
    """Copies the conditions of the `outlet` node on one side of the interface
    to the `inlet` node on the other side.

    Returns True if the conditions changed more than allowed by `tolerances`
    since the previous transfer, meaning the other side must be simulated
    again. The differences are recorded in `trace` if it is given.
    """
    d_flow = abs(outlet.m_dot - inlet.m_dot)
    d_W = abs(outlet.W - inlet.W)
    d_T = abs(outlet.T - inlet.T)
    d_energy = abs(_cp * (outlet.m_dot * outlet.T - inlet.m_dot * inlet.T))

    flow_changed = d_flow > tolerances.flow
    energy_changed = d_energy > tolerances.energy
    # humidity only matters when there is air flow
    W_changed = outlet.m_dot > tolerances.flow and d_W > tolerances.humidity_ratio
    T_changed = outlet.m_dot > tolerances.flow and d_T > tolerances.temperature

    if trace is not None:
        trace.record(flow=d_flow, humidity_ratio=d_W, temperature=d_T, energy=d_energy)
        trace.not_converged['flow'] = flow_changed
        trace.not_converged['humidity_ratio'] = W_changed
        trace.not_converged['temperature'] = T_changed
        trace.not_converged['energy'] = energy_changed

    inlet.copy_state_from(outlet)
    # a temperature change alone is only reported; it counts through the
    # energy check
    return flow_changed or energy_changed or W_changed
