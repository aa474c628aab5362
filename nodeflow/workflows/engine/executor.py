"""
Workflow execution engine.

Walks a graph snapshot from its trigger nodes, runs every node behavior with
the items routed to it and records what happened in the execution log.

Two fan-in modes are supported:

- per_edge (default): a recursive pre-order walk. A node reached through N
  edges runs N times, each time with only the items of that edge.
- merge: every node runs at most once, in topological order, with the items of
  all incoming edges whose source succeeded.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from nodeflow.config import Settings, settings as default_settings
from nodeflow.workflows.engine.constants import ExecutionStatus, FanInMode, NodeRunStatus
from nodeflow.workflows.engine.context import ClockFn, NodeContext, SleepFn, utc_now
from nodeflow.workflows.engine.definitions import WorkflowItem, seed_items
from nodeflow.workflows.engine.error_handler import ErrorClassifier
from nodeflow.workflows.engine.errors import (
    BehaviorRuntimeError,
    NodeExecutionError,
    NoTriggerError,
)
from nodeflow.workflows.engine.graph import Edge, NodeInstance, WorkflowGraph
from nodeflow.workflows.engine.nodes.base import BaseNode
from nodeflow.workflows.engine.nodes.registry import NodeRegistry, get_default_registry
from nodeflow.workflows.engine.nodes.schema import NodeTypeDescriptor
from nodeflow.workflows.engine.runtime.credentials import CredentialStore
from nodeflow.workflows.engine.runtime.http import HttpTransport, get_transport
from nodeflow.workflows.logger import ExecutionLog
from nodeflow.workflows.types import GraphDict, NodeErrorDict, RunResultDict

logger = logging.getLogger(__name__)

Outputs = List[List[WorkflowItem]]


@dataclass
class NodeError:
    node_id: str
    message: str
    category: str
    suggestion: Optional[str] = None

    def to_dict(self) -> NodeErrorDict:
        data: NodeErrorDict = {
            "node_id": self.node_id,
            "message": self.message,
            "category": self.category,
        }
        if self.suggestion:
            data["suggestion"] = self.suggestion
        return data


@dataclass
class NodeRun:
    """One invocation of one node."""
    node_id: str
    status: NodeRunStatus
    input_items: List[WorkflowItem] = field(default_factory=list)
    outputs: Outputs = field(default_factory=list)
    error: Optional[str] = None
    source_edge: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node_id": self.node_id,
            "status": self.status.value,
            "input": [item.to_dict() for item in self.input_items],
            "outputs": [[item.to_dict() for item in branch] for branch in self.outputs],
            "error": self.error,
            "source_edge": self.source_edge,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


@dataclass
class RunResult:
    status: ExecutionStatus
    log: ExecutionLog
    run_data: Dict[str, List[NodeRun]] = field(default_factory=dict)
    # Every invocation, in the order they started
    invocations: List[NodeRun] = field(default_factory=list)
    errors: List[NodeError] = field(default_factory=list)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def execution_order(self) -> List[str]:
        return [run.node_id for run in self.invocations]

    def runs(self, node_id: str) -> List[NodeRun]:
        return list(self.run_data.get(node_id, []))

    def output_items(self, node_id: str, output: int = 0, run: int = -1) -> List[WorkflowItem]:
        """Items a node emitted on one output, for its last invocation by default."""
        runs = self.run_data.get(node_id)
        if not runs:
            return []
        outputs = runs[run].outputs
        if output >= len(outputs):
            return []
        return list(outputs[output])

    def to_dict(self) -> RunResultDict:
        data: RunResultDict = {
            "status": self.status.value,
            "started_at": self.started_at.isoformat() if self.started_at else "",
            "run_data": {
                node_id: [r.to_dict() for r in runs] for node_id, runs in self.run_data.items()
            },
            "errors": [e.to_dict() for e in self.errors],
            "log": self.log.to_list(),
        }
        if self.finished_at:
            data["finished_at"] = self.finished_at.isoformat()
        return data


def normalize_outputs(raw: Any, descriptor: NodeTypeDescriptor) -> Outputs:
    """
    Turns what a behavior returned into one item list per output.

    Single-output nodes may return a flat item list; branching nodes must return
    exactly one list per output.

    Raises:
        ValueError: if the shape doesn't match the output count
    """
    expected = descriptor.outputCount
    if raw is None:
        raw = []
    if not isinstance(raw, (list, tuple)):
        raise ValueError(
            f"Node type '{descriptor.name}' returned {type(raw).__name__}, expected a list of items"
        )

    nested = len(raw) > 0 and all(isinstance(branch, (list, tuple)) for branch in raw)
    if expected == 1 and not nested:
        branches = [raw]
    elif nested or (expected > 1 and len(raw) == 0):
        branches = list(raw)
    else:
        branches = None

    if branches is None or len(branches) != expected:
        got = len(branches) if branches is not None else "a flat list instead of"
        raise ValueError(
            f"Node type '{descriptor.name}' returned {got} output list(s), "
            f"expected output count {expected}"
        )

    return [
        [WorkflowItem.coerce(item, index) for index, item in enumerate(branch)]
        for branch in branches
    ]


class _Execution:
    """Mutable state of one run."""

    def __init__(
        self,
        graph: WorkflowGraph,
        log: ExecutionLog,
        nodes: Dict[str, BaseNode],
        max_parallel: int,
    ):
        self.graph = graph
        self.log = log
        self.nodes = nodes
        self.run_data: Dict[str, List[NodeRun]] = {}
        self.invocations: List[NodeRun] = []
        self.errors: List[NodeError] = []
        self.semaphore = asyncio.Semaphore(max_parallel)

    def record(self, run: NodeRun) -> None:
        self.run_data.setdefault(run.node_id, []).append(run)


class WorkflowEngine:
    """
    Executes workflow graphs against a node registry.

    Every outside collaborator (HTTP transport, credential store, sleep, clock)
    can be injected; defaults come from the settings.
    """

    def __init__(
        self,
        registry: Optional[NodeRegistry] = None,
        settings: Optional[Settings] = None,
        http: Optional[HttpTransport] = None,
        credentials: Optional[CredentialStore] = None,
        sleep: Optional[SleepFn] = None,
        clock: Optional[ClockFn] = None,
        fan_in: Optional[Union[FanInMode, str]] = None,
        parallel: Optional[bool] = None,
    ):
        self.settings = settings or default_settings
        self.registry = registry if registry is not None else get_default_registry()
        self.http = http or get_transport(self.settings)
        self.credentials = credentials
        self.sleep = sleep
        self.clock = clock or utc_now
        self.fan_in = FanInMode(fan_in or self.settings.FAN_IN_MODE)
        self.parallel = self.settings.PARALLEL_BRANCHES if parallel is None else parallel

    async def run(
        self,
        graph: Union[WorkflowGraph, GraphDict, Dict[str, Any]],
        log: Optional[ExecutionLog] = None,
        trigger_data: Optional[List[Dict[str, Any]]] = None,
    ) -> RunResult:
        """
        Runs the graph to completion.

        Node failures don't raise: they stop their branch and are reported in
        the result.

        Raises:
            UnknownNodeTypeError: a node's type is not registered
            InvalidGraphError: dangling edges, unknown handles or cycles
            NoTriggerError: no node without inputs to start from
        """
        if not isinstance(graph, WorkflowGraph):
            graph = WorkflowGraph.from_dict(graph)
        if log is None:
            log = ExecutionLog(clock=self.clock)
        log.clear()

        nodes = {node.id: self.registry.lookup(node.type, node.id) for node in graph.nodes}
        graph.validate(self.registry)

        roots = [node for node in graph.nodes if nodes[node.id].description.is_trigger]
        if not roots:
            error = NoTriggerError()
            log.log_workflow_failed(str(error))
            raise error

        execution = _Execution(graph, log, nodes, self.settings.MAX_PARALLEL_BRANCHES)
        started_at = self.clock()
        logger.info(
            f"Running workflow with {len(graph.nodes)} nodes from {len(roots)} trigger(s) "
            f"(fan-in: {self.fan_in.value}, parallel: {self.parallel})"
        )

        if self.fan_in == FanInMode.MERGE:
            await self._run_merged(execution, roots, trigger_data)
        elif self.parallel:
            await asyncio.gather(
                *(self._visit(execution, root, seed_items(trigger_data)) for root in roots)
            )
        else:
            for root in roots:
                await self._visit(execution, root, seed_items(trigger_data))

        status = ExecutionStatus.FAILED if execution.errors else ExecutionStatus.COMPLETED
        logger.info(f"Workflow finished: {status.value} ({len(execution.errors)} node error(s))")

        return RunResult(
            status=status,
            log=log,
            run_data=execution.run_data,
            invocations=execution.invocations,
            errors=execution.errors,
            started_at=started_at,
            finished_at=self.clock(),
        )

    def run_sync(
        self,
        graph: Union[WorkflowGraph, GraphDict, Dict[str, Any]],
        log: Optional[ExecutionLog] = None,
        trigger_data: Optional[List[Dict[str, Any]]] = None,
    ) -> RunResult:
        return asyncio.run(self.run(graph, log=log, trigger_data=trigger_data))

    # ------------------------------------------------------------------
    # per_edge
    # ------------------------------------------------------------------

    async def _visit(
        self,
        execution: _Execution,
        node: NodeInstance,
        items: List[WorkflowItem],
        via: Optional[Edge] = None,
    ) -> None:
        outputs = await self._invoke(execution, node, items, via)
        if outputs is None:
            return

        descriptor = execution.nodes[node.id].description
        children = []
        for edge in execution.graph.outgoing(node.id):
            target = execution.graph.get_node(edge.target)
            branch = outputs[descriptor.handle_index(edge.sourceHandle)]
            if self.parallel:
                children.append(self._visit(execution, target, branch, edge))
            else:
                await self._visit(execution, target, branch, edge)

        if children:
            await asyncio.gather(*children)

    # ------------------------------------------------------------------
    # merge
    # ------------------------------------------------------------------

    async def _run_merged(
        self,
        execution: _Execution,
        roots: List[NodeInstance],
        trigger_data: Optional[List[Dict[str, Any]]],
    ) -> None:
        root_ids = {root.id for root in roots}
        succeeded: Dict[str, Outputs] = {}

        for node in execution.graph.get_execution_order():
            if node.id in root_ids:
                items = seed_items(trigger_data)
            else:
                incoming = execution.graph.incoming(node.id)
                if not incoming:
                    continue
                ready = [edge for edge in incoming if edge.source in succeeded]
                if not ready:
                    self._skip(execution, node, "no upstream node succeeded")
                    continue
                items = []
                for edge in ready:
                    source = execution.nodes[edge.source].description
                    items.extend(succeeded[edge.source][source.handle_index(edge.sourceHandle)])

            outputs = await self._invoke(execution, node, items)
            if outputs is not None:
                succeeded[node.id] = outputs

    def _skip(self, execution: _Execution, node: NodeInstance, reason: str) -> None:
        execution.log.log_node_skipped(node.id, node.label, reason)
        run = NodeRun(node_id=node.id, status=NodeRunStatus.SKIPPED)
        execution.invocations.append(run)
        execution.record(run)

    # ------------------------------------------------------------------
    # Node invocation
    # ------------------------------------------------------------------

    async def _invoke(
        self,
        execution: _Execution,
        node: NodeInstance,
        items: List[WorkflowItem],
        via: Optional[Edge] = None,
    ) -> Optional[Outputs]:
        """Runs one node. Returns its outputs, or None when it failed."""
        impl = execution.nodes[node.id]
        descriptor = impl.description

        run = NodeRun(
            node_id=node.id,
            status=NodeRunStatus.SUCCESS,
            input_items=list(items),
            source_edge=via.id if via else None,
            started_at=self.clock(),
        )
        execution.invocations.append(run)
        execution.log.log_node_start(node.id, node.label, len(items))

        try:
            async with execution.semaphore:
                context = NodeContext(
                    node=node,
                    descriptor=descriptor,
                    items=items,
                    settings=self.settings,
                    http=self.http,
                    credentials=self.credentials,
                    sleep=self.sleep,
                    clock=self.clock,
                )
                context.parameters.ensure_required()
                outputs = normalize_outputs(await impl.execute(context), descriptor)
        except Exception as e:
            error = e if isinstance(e, NodeExecutionError) else BehaviorRuntimeError(node.id, e)
            error_context = ErrorClassifier.classify(error)
            logger.debug(f"Node {node.id} ({node.type}) raised", exc_info=True)

            execution.log.log_node_failed(node.id, node.label, error_context.message)
            execution.errors.append(
                NodeError(
                    node_id=node.id,
                    message=error_context.message,
                    category=error_context.category.value,
                    suggestion=error_context.suggestion,
                )
            )
            run.status = NodeRunStatus.ERROR
            run.error = error_context.message
            run.finished_at = self.clock()
            execution.record(run)
            return None

        run.outputs = outputs
        run.finished_at = self.clock()
        execution.record(run)
        execution.log.log_node_complete(node.id, node.label, outputs)
        return outputs


def run(
    graph: Union[WorkflowGraph, GraphDict, Dict[str, Any]],
    log: Optional[ExecutionLog] = None,
    trigger_data: Optional[List[Dict[str, Any]]] = None,
    **engine_options: Any,
) -> RunResult:
    """Runs a graph with a default engine (built-in node types, settings from the environment)."""
    return WorkflowEngine(**engine_options).run_sync(graph, log=log, trigger_data=trigger_data)
