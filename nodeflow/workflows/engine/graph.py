import json
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from nodeflow.workflows.engine.errors import InvalidGraphError
from nodeflow.workflows.types import GraphDict


class NodeInstance(BaseModel):
    """A node placed on the canvas: type key plus its stored configuration."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    type: str
    position: Optional[Dict[str, Any]] = None
    data: Dict[str, Any] = Field(default_factory=dict)

    @property
    def label(self) -> str:
        return self.data.get("label") or self.id


class Edge(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = ""
    source: str
    target: str
    sourceHandle: Optional[str] = None


class WorkflowGraph(BaseModel):
    """
    Immutable snapshot of a workflow: nodes and edges in the order the editor
    stored them. Edge order is significant, it is the order branches are walked.
    """
    model_config = ConfigDict(frozen=True)

    nodes: List[NodeInstance] = Field(default_factory=list)
    edges: List[Edge] = Field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Union[GraphDict, Dict[str, Any]]) -> "WorkflowGraph":
        return cls.model_validate(data)

    @classmethod
    def from_json(cls, text: str) -> "WorkflowGraph":
        return cls.model_validate(json.loads(text))

    def to_dict(self) -> GraphDict:
        return self.model_dump(exclude_none=True)

    # --- Lookups ---

    def get_node(self, node_id: str) -> Optional[NodeInstance]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def outgoing(self, node_id: str) -> List[Edge]:
        """Outgoing edges of a node, in insertion order."""
        return [e for e in self.edges if e.source == node_id]

    def incoming(self, node_id: str) -> List[Edge]:
        return [e for e in self.edges if e.target == node_id]

    def build_adjacency_list(self) -> Dict[str, List[str]]:
        adj_list = {node.id: [] for node in self.nodes}
        for edge in self.edges:
            if edge.source in adj_list:
                adj_list[edge.source].append(edge.target)
        return adj_list

    # --- Validation ---

    def detect_cycles(self) -> List[List[str]]:
        """
        Detect cycles in the workflow graph.
        Returns a list of cycles (each cycle is a list of node IDs).
        """
        adj = self.build_adjacency_list()
        visited = set()
        recursion_stack = set()
        cycles = []
        path = []

        def dfs(node_id):
            visited.add(node_id)
            recursion_stack.add(node_id)
            path.append(node_id)

            for neighbor in adj.get(node_id, []):
                if neighbor not in visited:
                    dfs(neighbor)
                elif neighbor in recursion_stack:
                    cycle_start_index = path.index(neighbor)
                    cycles.append(path[cycle_start_index:].copy())

            recursion_stack.remove(node_id)
            path.pop()

        for node in self.nodes:
            if node.id not in visited:
                dfs(node.id)

        return cycles

    def problems(self, registry=None) -> List[str]:
        """
        Structural problems of the snapshot. With a registry, edge handles are
        checked against the source node type's declared outputs.
        """
        problems = []
        seen = set()
        for node in self.nodes:
            if node.id in seen:
                problems.append(f"Duplicate node id '{node.id}'")
            seen.add(node.id)

        for edge in self.edges:
            label = edge.id or f"{edge.source}->{edge.target}"
            source = self.get_node(edge.source)
            if source is None:
                problems.append(f"Edge '{label}' has unknown source '{edge.source}'")
            if self.get_node(edge.target) is None:
                problems.append(f"Edge '{label}' has unknown target '{edge.target}'")
            if source is None or registry is None or not edge.sourceHandle:
                continue
            node_type = registry.get(source.type)
            if node_type is None:
                continue
            try:
                node_type.description.handle_index(edge.sourceHandle)
            except ValueError as e:
                problems.append(f"Edge '{label}': {e}")

        for cycle in self.detect_cycles():
            problems.append("Cycle detected: " + " -> ".join(cycle + cycle[:1]))

        return problems

    def validate(self, registry=None) -> None:
        """
        Raises:
            InvalidGraphError: listing every problem found
        """
        problems = self.problems(registry)
        if problems:
            raise InvalidGraphError(problems)

    # --- Ordering ---

    def get_execution_order(self) -> List[NodeInstance]:
        """
        Get a topologically sorted list of nodes for execution order.

        Among nodes that are ready at the same time, graph order wins.

        Raises:
            InvalidGraphError: if a cycle is detected
        """
        cycles = self.detect_cycles()
        if cycles:
            raise InvalidGraphError([f"Workflow contains cycles: {cycles}"])

        in_degree = {node.id: 0 for node in self.nodes}
        for edge in self.edges:
            if edge.target in in_degree and edge.source in in_degree:
                in_degree[edge.target] += 1

        adj = self.build_adjacency_list()
        position = {node.id: i for i, node in enumerate(self.nodes)}
        ready = [node.id for node in self.nodes if in_degree[node.id] == 0]
        order_ids = []

        while ready:
            ready.sort(key=position.get)
            node_id = ready.pop(0)
            order_ids.append(node_id)
            for neighbor in adj.get(node_id, []):
                if neighbor not in in_degree:
                    continue
                in_degree[neighbor] -= 1
                if in_degree[neighbor] == 0:
                    ready.append(neighbor)

        node_map = {n.id: n for n in self.nodes}
        return [node_map[nid] for nid in order_ids]
