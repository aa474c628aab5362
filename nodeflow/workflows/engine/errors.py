from typing import List, Optional


class EngineError(Exception):
    """Base class for all engine errors."""
    pass


# --- Graph-level errors: raised from run() ---

class UnknownNodeTypeError(EngineError):
    """Raised when a graph references a node type that is not registered."""

    def __init__(self, node_type: str, node_id: Optional[str] = None):
        self.node_type = node_type
        self.node_id = node_id
        where = f" (node '{node_id}')" if node_id else ""
        super().__init__(f"Unknown node type: {node_type}{where}")


class NoTriggerError(EngineError):
    """Raised when a graph has no node without inputs to start from."""

    def __init__(self, message: str = "No trigger node found in the workflow"):
        super().__init__(message)


class InvalidGraphError(EngineError):
    """Raised when a graph snapshot breaks a structural invariant."""

    def __init__(self, problems: List[str]):
        self.problems = problems
        super().__init__("Invalid workflow graph: " + "; ".join(problems))


# --- Node-local errors: logged against the node, the branch stops ---

class NodeExecutionError(EngineError):
    """Base class for errors that only terminate the failing node's branch."""
    pass


class MissingRequiredParameterError(NodeExecutionError):
    """Raised when a visible required parameter has no value."""

    def __init__(self, parameters: List[str], node_type: Optional[str] = None):
        self.parameters = parameters
        self.node_type = node_type
        names = ", ".join(f"'{p}'" for p in parameters)
        super().__init__(f"Missing required parameter(s): {names}")


class BehaviorRuntimeError(NodeExecutionError):
    """Wraps any other exception raised inside a node behavior."""

    def __init__(self, node_id: str, original: BaseException):
        self.node_id = node_id
        self.original = original
        super().__init__(str(original) or original.__class__.__name__)


class HttpTransportError(NodeExecutionError):
    """Raised by HTTP transports when a request cannot be completed."""
    pass


# --- Internal: never escapes the condition evaluator ---

class ConditionEvaluationError(EngineError):
    """A condition could not be evaluated (bad regex, incomparable operands)."""
    pass
