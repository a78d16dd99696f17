"""Air system nodes.

All nodes of a model are stored in one `NodeArena` and are referred to
everywhere else by their `NodeId`. Zones and air loops are referred to in the
same way by `ZoneId` and `AirLoopId`.
"""
from __future__ import annotations
from typing import NewType, Iterator
from dataclasses import dataclass, fields

NodeId = NewType('NodeId', int)
ZoneId = NewType('ZoneId', int)
AirLoopId = NewType('AirLoopId', int)


@dataclass
class Node:
    """State of air at a connection point of the air system.

    Attributes
    ----------
    name:
        Unique name of the node.
    T:
        Dry-bulb temperature, degC.
    W:
        Humidity ratio, kg/kg.
    h:
        Specific enthalpy, J/kg.
    P:
        Pressure, Pa.
    m_dot:
        Current mass flow rate, kg/s.
    m_dot_min, m_dot_max:
        Hard limits of the mass flow rate set by the component at the node.
    m_dot_min_avail, m_dot_max_avail:
        Limits of the mass flow rate that can be delivered at the node in the
        current iteration.
    m_dot_setpoint:
        Mass flow rate requested at the node, kg/s.
    """
    name: str
    T: float = 20.0
    W: float = 0.008
    h: float = 0.0
    P: float = 101325.0
    m_dot: float = 0.0
    m_dot_min: float = 0.0
    m_dot_max: float = 0.0
    m_dot_min_avail: float = 0.0
    m_dot_max_avail: float = 0.0
    m_dot_setpoint: float = 0.0

    def copy_state_from(self, other: Node) -> None:
        """Copies the air state and flow rates of node `other` into this node."""
        for f in fields(self):
            if f.name != 'name':
                setattr(self, f.name, getattr(other, f.name))


class NodeArena:
    """List-backed storage of all the nodes in the air system."""

    def __init__(self):
        self._nodes: list[Node] = []
        self._index: dict[str, NodeId] = {}

    def add(self, name: str, **state: float) -> NodeId:
        """Adds a new node with the given `name` and initial `state` (keyword
        arguments with the names of `Node` attributes). Returns the index of
        the node.
        """
        if name in self._index:
            raise ValueError(f"a node with name '{name}' already exists")
        self._nodes.append(Node(name, **state))
        node_id = NodeId(len(self._nodes) - 1)
        self._index[name] = node_id
        return node_id

    def find(self, name: str) -> NodeId:
        return self._index[name]

    def __getitem__(self, node_id: NodeId) -> Node:
        return self._nodes[node_id]

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(self._nodes)

    def reset(self, T: float, W: float, P: float, h: float) -> None:
        """Puts every node back to a no-flow state at the given air state, as
        is done at the start of each simulation environment.
        """
        for node in self._nodes:
            node.T, node.W, node.h, node.P = T, W, h, P
            node.m_dot = 0.0
            node.m_dot_min_avail = 0.0
            node.m_dot_max_avail = 0.0
            node.m_dot_setpoint = 0.0
