from nodeflow.workflows.engine.executor import RunResult, WorkflowEngine, run
from nodeflow.workflows.engine.graph import Edge, NodeInstance, WorkflowGraph

__all__ = ["RunResult", "WorkflowEngine", "run", "Edge", "NodeInstance", "WorkflowGraph"]
