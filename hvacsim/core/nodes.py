from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional, Tuple


@dataclass(slots=True, kw_only=True)
class NodeFlowState:
    """Mass flow state of a single air node (kg/s)."""

    mass_flow_rate: float = 0.0
    mass_flow_rate_max_avail: float = 0.0
    mass_flow_rate_min_avail: float = 0.0

    # Design (hard) limits; the *_avail values are restored to these.
    mass_flow_rate_max: float = 0.0
    mass_flow_rate_min: float = 0.0

    def __post_init__(self):
        if self.mass_flow_rate_min < 0.0:
            raise ValueError("Minimum mass flow rate must be non-negative.")
        if self.mass_flow_rate_max < self.mass_flow_rate_min:
            raise ValueError("Maximum mass flow rate must not be below the minimum.")

    @classmethod
    def with_design_limits(cls, max_flow: float, min_flow: float = 0.0) -> "NodeFlowState":
        return cls(
            mass_flow_rate_max=max_flow,
            mass_flow_rate_min=min_flow,
            mass_flow_rate_max_avail=max_flow,
            mass_flow_rate_min_avail=min_flow,
        )

    def restore_design_limits(self) -> None:
        self.mass_flow_rate_max_avail = self.mass_flow_rate_max
        self.mass_flow_rate_min_avail = self.mass_flow_rate_min

    @property
    def limits(self) -> Tuple[float, float]:
        return self.mass_flow_rate_min_avail, self.mass_flow_rate_max_avail


@dataclass(frozen=True, slots=True, kw_only=True)
class AirLoopFlowPath:
    """An air system's supply outlet node and the terminal inlet nodes it feeds."""

    air_sys_num: int
    name: str
    supply_node: int
    terminal_nodes: Tuple[int, ...]
    return_node: Optional[int] = None
    outdoor_air_node: Optional[int] = None

    def __post_init__(self):
        if not self.terminal_nodes:
            raise ValueError(f"Air loop '{self.name}' must serve at least one terminal node.")
        if self.supply_node in self.terminal_nodes:
            raise ValueError(f"Air loop '{self.name}' uses its supply node as a terminal node.")


@dataclass
class NodeRegistry:
    """Node flow states and air loop topology shared by the equipment models."""

    nodes: Dict[int, NodeFlowState] = field(default_factory=dict)
    air_loops: Dict[int, AirLoopFlowPath] = field(default_factory=dict)

    def add_node(self, node_id: int, node: NodeFlowState) -> NodeFlowState:
        if node_id in self.nodes:
            raise ValueError(f"Node {node_id} already registered.")
        self.nodes[node_id] = node
        return node

    def add_air_loop(self, path: AirLoopFlowPath) -> AirLoopFlowPath:
        if path.air_sys_num in self.air_loops:
            raise ValueError(f"Air system {path.air_sys_num} already registered.")
        for node_id in (path.supply_node, *path.terminal_nodes):
            if node_id not in self.nodes:
                raise ValueError(f"Air loop '{path.name}' references unknown node {node_id}.")
        self.air_loops[path.air_sys_num] = path
        return path

    def __getitem__(self, node_id: int) -> NodeFlowState:
        return self.nodes[node_id]

    def get(self, node_id: Optional[int]) -> Optional[NodeFlowState]:
        if node_id is None:
            return None
        return self.nodes.get(node_id)

    def terminal_nodes(self) -> Iterator[Tuple[int, NodeFlowState]]:
        for path in self.air_loops.values():
            for node_id in path.terminal_nodes:
                yield node_id, self.nodes[node_id]

    def reset_flows(self) -> None:
        """Zero all flows and restore design limits, as at the start of an environment."""
        for node in self.nodes.values():
            node.mass_flow_rate = 0.0
            node.restore_design_limits()
