"""
Constants for the Workflow Engine

Centralizes the magic strings used by the engine, the node library and the CLI.
"""

from enum import Enum


class ExecutionStatus(str, Enum):
    """Run lifecycle."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class NodeRunStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"


class NodeGroup(str, Enum):
    """Palette groups a node type can belong to."""
    TRIGGER = "trigger"
    INPUT = "input"
    TRANSFORM = "transform"
    LOGIC = "logic"


class FanInMode(str, Enum):
    """How a node reached through several incoming edges is invoked."""
    PER_EDGE = "per_edge"
    MERGE = "merge"


# Output handle names
DEFAULT_HANDLE = "main"
TRUE_HANDLE = "true"
FALSE_HANDLE = "false"
SWITCH_OUTPUTS = 4


def indexed_handles(count: int) -> list:
    """Handle names for an N-output router: output0..outputN-1."""
    return [f"output{i}" for i in range(count)]


# Parameter types understood by the resolver
class PropertyType:
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OPTIONS = "options"
    MULTI_OPTIONS = "multiOptions"
    COLOR = "color"
    FIXED_COLLECTION = "fixedCollection"
