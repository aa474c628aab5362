"""
Type definitions for the plain-dict shapes the engine consumes and produces.

The editor hands graphs to the engine as JSON; these TypedDicts document the
expected dictionary shapes where Pydantic models aren't used directly.
"""

from typing import Any, Dict, List, Literal, NotRequired, TypedDict

# ============================================================================
# Graph snapshot
# ============================================================================


class PositionDict(TypedDict):
    """Canvas position of a node. Ignored by the engine."""

    x: float
    y: float


class NodeInstanceDict(TypedDict):
    """A node in a workflow graph."""

    id: str
    type: str
    position: NotRequired[PositionDict]
    data: NotRequired[Dict[str, Any]]  # parameters plus a free-form "label"


class EdgeDict(TypedDict):
    """An edge connecting two nodes."""

    id: str
    source: str
    target: str
    sourceHandle: NotRequired[str]  # "true"/"false", "output0".."output3"


class GraphDict(TypedDict):
    """The snapshot handed to the engine for one run."""

    nodes: List[NodeInstanceDict]
    edges: List[EdgeDict]


# ============================================================================
# Items
# ============================================================================


class PairedItemDict(TypedDict):
    item: int


class ItemDict(TypedDict):
    """Serialized form of a WorkflowItem."""

    json: Dict[str, Any]
    pairedItem: NotRequired[PairedItemDict]


# ============================================================================
# Execution log
# ============================================================================

LogType = Literal["info", "success", "error"]


class LogEntryDict(TypedDict):
    """One entry of the execution log as seen by observers."""

    seq: int
    nodeId: str
    message: str
    type: LogType
    timestamp: str


class NodeErrorDict(TypedDict):
    node_id: str
    message: str
    category: str
    suggestion: NotRequired[str]


class RunResultDict(TypedDict):
    """JSON-ready summary of a finished run."""

    status: str
    started_at: str
    finished_at: NotRequired[str]
    run_data: Dict[str, List[Dict[str, Any]]]
    errors: List[NodeErrorDict]
    log: List[LogEntryDict]
