"""Pytest configuration and fixtures."""
from datetime import datetime, timezone

import pytest

from nodeflow.config import Settings
from nodeflow.workflows.engine.context import NodeContext
from nodeflow.workflows.engine.definitions import WorkflowItem
from nodeflow.workflows.engine.executor import WorkflowEngine, normalize_outputs
from nodeflow.workflows.engine.graph import NodeInstance
from nodeflow.workflows.engine.nodes.loader import load_builtin_nodes
from nodeflow.workflows.engine.nodes.registry import NodeRegistry
from nodeflow.workflows.engine.runtime.credentials import StaticCredentialStore
from nodeflow.workflows.engine.runtime.http import HttpResponse

# Monday
FIXED_NOW = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_NOW


class RecordingTransport:
    """HTTP transport that records requests and answers with a canned response."""

    def __init__(self, response=None, error=None):
        self.requests = []
        self.error = error
        self.response = response or HttpResponse(
            status=200,
            status_text="OK",
            headers={"content-type": "application/json"},
            body={"ok": True},
        )

    async def request(self, descriptor):
        self.requests.append(descriptor)
        if self.error is not None:
            raise self.error
        return self.response


class FakeSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


def passthrough(context):
    return context.get_input_data()


def fails(context):
    raise RuntimeError("kaboom")


@pytest.fixture
def registry():
    """Built-in node types plus two helper types used by the engine tests."""
    load_builtin_nodes()
    reg = NodeRegistry(include_builtin=True)
    reg.register_type({"name": "noop", "displayName": "No Op"}, passthrough)
    reg.register_type({"name": "boom", "displayName": "Boom"}, fails)
    return reg


@pytest.fixture
def settings():
    return Settings(_env_file=None, HTTP_TRANSPORT="simulated", WAIT_MAX_SECONDS=3600)


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def fake_sleep():
    return FakeSleep()


@pytest.fixture
def engine(registry, settings, transport, fake_sleep):
    return WorkflowEngine(
        registry=registry,
        settings=settings,
        http=transport,
        sleep=fake_sleep,
        clock=fixed_clock,
    )


@pytest.fixture
def run_node(registry, settings, transport, fake_sleep):
    """
    Runs a single node type outside of a graph.

    Returns one list of json dicts per output.
    """

    async def _run(node_type, data=None, items=None, credentials=None):
        impl = registry.lookup(node_type)
        node = NodeInstance(id=f"{node_type}-1", type=node_type, data=data or {})
        if items is None:
            items = [{}]
        context = NodeContext(
            node=node,
            descriptor=impl.description,
            items=[WorkflowItem.coerce(item, i) for i, item in enumerate(items)],
            settings=settings,
            http=transport,
            credentials=StaticCredentialStore(credentials),
            sleep=fake_sleep,
            clock=fixed_clock,
        )
        context.parameters.ensure_required()
        outputs = normalize_outputs(await impl.execute(context), impl.description)
        return [[item.json_data for item in branch] for branch in outputs]

    return _run


def make_graph(nodes, edges=()):
    """
    nodes: (id, type) or (id, type, data) tuples
    edges: (source, target) or (source, target, handle) tuples
    """
    graph_nodes = []
    for entry in nodes:
        node_id, node_type, *rest = entry
        graph_nodes.append({"id": node_id, "type": node_type, "data": rest[0] if rest else {}})

    graph_edges = []
    for entry in edges:
        source, target, *rest = entry
        edge = {"id": f"{source}-{target}", "source": source, "target": target}
        if rest:
            edge["sourceHandle"] = rest[0]
        graph_edges.append(edge)

    return {"nodes": graph_nodes, "edges": graph_edges}


@pytest.fixture
def graph():
    return make_graph


@pytest.fixture
def now():
    return FIXED_NOW
