"""
Tests for the workflow engine: traversal order, routing, fan-in modes, error
isolation and graph validation
"""

import asyncio

import pytest

from nodeflow.workflows.engine.constants import ExecutionStatus, NodeRunStatus
from nodeflow.workflows.engine.errors import (
    HttpTransportError,
    InvalidGraphError,
    NoTriggerError,
    UnknownNodeTypeError,
)
from nodeflow.workflows.engine.executor import WorkflowEngine, run
from nodeflow.workflows.engine.graph import WorkflowGraph
from nodeflow.workflows.engine.nodes.registry import register_node_type
from nodeflow.workflows.logger import ExecutionLog

from conftest import RecordingTransport, fixed_clock

IF_AGE_OVER_3 = {
    "conditions": {"boolean": [{"value1": "{{ $json.n }}", "operation": "larger", "value2": "3"}]}
}


def jsons(items):
    return [item.json_data for item in items]


@pytest.mark.asyncio
async def test_linear_workflow(engine, graph):
    g = graph(
        [
            ("trigger", "manualTrigger", {"label": "Start", "initialData": '{"name": "Ada"}'}),
            ("greet", "set", {"label": "Greet", "values": {"string": [{"name": "msg", "value": "Hi {{ $json.name }}"}]}}),
        ],
        [("trigger", "greet")],
    )

    result = await engine.run(g)

    assert result.status == ExecutionStatus.COMPLETED
    assert result.errors == []
    assert result.execution_order == ["trigger", "greet"]
    assert jsons(result.output_items("greet")) == [{"msg": "Hi Ada"}]

    entries = result.log.entries
    assert [e.type for e in entries] == ["info", "success", "info", "success"]
    assert [e.node_id for e in entries] == ["trigger", "trigger", "greet", "greet"]
    assert entries[0].message == "Executing Start (1 input item(s))"
    assert entries[3].message.startswith("Greet executed successfully [1]")
    assert [e.seq for e in entries] == sorted(e.seq for e in entries)


@pytest.mark.asyncio
async def test_depth_first_preorder_in_edge_order(engine, graph):
    g = graph(
        [("t", "manualTrigger"), ("a", "noop"), ("b", "noop"), ("c", "noop")],
        [("t", "a"), ("t", "b"), ("a", "c")],
    )
    result = await engine.run(g)
    assert result.execution_order == ["t", "a", "c", "b"]


@pytest.mark.asyncio
async def test_if_routes_items_by_handle(engine, graph):
    g = graph(
        [("t", "manualTrigger"), ("check", "if", IF_AGE_OVER_3), ("big", "noop"), ("small", "noop")],
        [("t", "check"), ("check", "big", "true"), ("check", "small", "false")],
    )

    result = await engine.run(g, trigger_data=[{"n": 1}, {"n": 5}, {"n": 9}])

    assert [i["n"] for i in jsons(result.output_items("big"))] == [5, 9]
    assert [i["n"] for i in jsons(result.output_items("small"))] == [1]
    assert result.output_items("check", output=1)[0].paired_item.item == 0


@pytest.mark.asyncio
async def test_empty_branch_still_invokes_target(engine, graph):
    g = graph(
        [("t", "manualTrigger"), ("check", "if", IF_AGE_OVER_3), ("small", "noop")],
        [("t", "check"), ("check", "small", "false")],
    )
    result = await engine.run(g, trigger_data=[{"n": 10}])

    (run_small,) = result.runs("small")
    assert run_small.status == NodeRunStatus.SUCCESS
    assert run_small.input_items == []


@pytest.mark.asyncio
async def test_switch_routes_to_indexed_handles(engine, graph):
    switch = {
        "dataProperty": "kind",
        "rules": {"rule": [{"output": 2, "operation": "equal", "value": "b"}]},
        "fallbackOutput": 0,
    }
    g = graph(
        [("t", "manualTrigger"), ("route", "switch", switch), ("zero", "noop"), ("two", "noop")],
        [("t", "route"), ("route", "zero", "output0"), ("route", "two", "output2")],
    )
    result = await engine.run(g, trigger_data=[{"kind": "a"}, {"kind": "b"}])

    assert [i["kind"] for i in jsons(result.output_items("zero"))] == ["a"]
    assert [i["kind"] for i in jsons(result.output_items("two"))] == ["b"]


@pytest.mark.asyncio
async def test_per_edge_fan_in_invokes_once_per_edge(engine, graph):
    g = graph(
        [("t", "manualTrigger"), ("a", "noop"), ("b", "noop"), ("c", "noop")],
        [("t", "a"), ("t", "b"), ("a", "c"), ("b", "c")],
    )
    result = await engine.run(g)

    assert result.execution_order == ["t", "a", "c", "b", "c"]
    runs = result.runs("c")
    assert [r.source_edge for r in runs] == ["a-c", "b-c"]
    assert all(len(r.input_items) == 1 for r in runs)


@pytest.mark.asyncio
async def test_merge_fan_in_invokes_once_with_all_items(registry, settings, transport, graph):
    engine = WorkflowEngine(
        registry=registry, settings=settings, http=transport, clock=fixed_clock, fan_in="merge"
    )
    g = graph(
        [("t", "manualTrigger"), ("a", "noop"), ("b", "noop"), ("c", "noop")],
        [("t", "a"), ("t", "b"), ("a", "c"), ("b", "c")],
    )
    result = await engine.run(g)

    assert result.execution_order == ["t", "a", "b", "c"]
    (run_c,) = result.runs("c")
    assert len(run_c.input_items) == 2


@pytest.mark.asyncio
async def test_merge_mode_skips_nodes_without_successful_upstream(registry, settings, transport, graph):
    engine = WorkflowEngine(
        registry=registry, settings=settings, http=transport, clock=fixed_clock, fan_in="merge"
    )
    g = graph(
        [("t", "manualTrigger"), ("x", "boom"), ("after", "noop"), ("a", "noop"), ("join", "noop")],
        [("t", "x"), ("x", "after"), ("t", "a"), ("x", "join"), ("a", "join")],
    )
    result = await engine.run(g)

    assert result.status == ExecutionStatus.FAILED
    (skipped,) = result.runs("after")
    assert skipped.status == NodeRunStatus.SKIPPED
    assert result.log.for_node("after")[0].message.startswith("Skipped after")

    (join,) = result.runs("join")
    assert join.status == NodeRunStatus.SUCCESS
    assert len(join.input_items) == 1


@pytest.mark.asyncio
async def test_failed_node_stops_only_its_branch(engine, graph):
    g = graph(
        [("t", "manualTrigger"), ("x", "boom", {"label": "Exploder"}), ("child", "noop"), ("sibling", "noop")],
        [("t", "x"), ("x", "child"), ("t", "sibling")],
    )
    result = await engine.run(g)

    assert result.status == ExecutionStatus.FAILED
    assert result.execution_order == ["t", "x", "sibling"]
    assert result.runs("child") == []

    (error,) = result.errors
    assert error.node_id == "x"
    assert error.message == "kaboom"
    assert error.category == "unknown"

    failure = [e for e in result.log.entries if e.type == "error"]
    assert [e.message for e in failure] == ["Error executing Exploder: kaboom"]
    assert result.runs("x")[0].status == NodeRunStatus.ERROR


@pytest.mark.asyncio
async def test_missing_required_parameter_is_a_node_error(engine, graph, transport):
    g = graph([("t", "manualTrigger"), ("call", "httpRequest")], [("t", "call")])
    result = await engine.run(g)

    (error,) = result.errors
    assert error.category == "missing_parameter"
    assert "'url'" in error.message
    assert transport.requests == []


@pytest.mark.asyncio
async def test_transport_failure_is_classified(registry, settings, graph):
    failing = RecordingTransport(error=HttpTransportError("Network request failed: connection refused"))
    engine = WorkflowEngine(registry=registry, settings=settings, http=failing, clock=fixed_clock)
    g = graph(
        [("t", "manualTrigger"), ("call", "httpRequest", {"url": "https://down.example.com"})],
        [("t", "call")],
    )
    result = await engine.run(g)

    (error,) = result.errors
    assert error.category == "network_error"
    assert error.suggestion


@pytest.mark.asyncio
async def test_wrong_output_shape_is_a_configuration_error(registry, engine, graph):
    registry.register_type(
        {"name": "twoWay", "outputCount": 2, "outputs": ["yes", "no"]},
        lambda ctx: [{"a": 1}],
    )
    registry.register_type(
        {"name": "threeWay", "outputCount": 2, "outputs": ["yes", "no"]},
        lambda ctx: [[], [], []],
    )
    g = graph(
        [("t", "manualTrigger"), ("flat", "twoWay"), ("extra", "threeWay")],
        [("t", "flat"), ("t", "extra")],
    )
    result = await engine.run(g)

    assert [e.node_id for e in result.errors] == ["flat", "extra"]
    assert all("output count" in e.message for e in result.errors)
    assert all(e.category == "configuration_error" for e in result.errors)


@pytest.mark.asyncio
async def test_async_behaviors_and_plain_dict_items(registry, engine, graph):
    async def double(ctx):
        await asyncio.sleep(0)
        return [{"n": item.json_data["n"] * 2} for item in ctx.get_input_data()]

    registry.register_type({"name": "double"}, double)
    g = graph([("t", "manualTrigger"), ("d", "double")], [("t", "d")])
    result = await engine.run(g, trigger_data=[{"n": 2}, {"n": 5}])

    assert [i["n"] for i in jsons(result.output_items("d"))] == [4, 10]


# --- graph-level failures ---

@pytest.mark.asyncio
async def test_unknown_node_type_raises_before_logging(engine, graph):
    log = ExecutionLog()
    log.info("System", "left over from a previous run")
    g = graph([("t", "manualTrigger"), ("mystery", "nope")], [("t", "mystery")])

    with pytest.raises(UnknownNodeTypeError) as exc_info:
        await engine.run(g, log=log)

    assert exc_info.value.node_id == "mystery"
    assert len(log) == 0


@pytest.mark.asyncio
async def test_no_trigger_raises_and_logs(engine, graph):
    log = ExecutionLog()
    g = graph([("a", "noop"), ("b", "noop")], [("a", "b")])

    with pytest.raises(NoTriggerError):
        await engine.run(g, log=log)

    (entry,) = log.entries
    assert entry.node_id == "System"
    assert entry.type == "error"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "edges, problem",
    [
        ([("t", "ghost")], "unknown target 'ghost'"),
        ([("check", "a", "maybe"), ("t", "check")], "no output handle 'maybe'"),
        ([("t", "a"), ("a", "b"), ("b", "a")], "Cycle detected"),
    ],
)
async def test_invalid_graphs(engine, graph, edges, problem):
    g = graph(
        [("t", "manualTrigger"), ("check", "if"), ("a", "noop"), ("b", "noop")],
        edges,
    )
    with pytest.raises(InvalidGraphError, match=problem):
        await engine.run(g)


def test_duplicate_node_ids_are_reported():
    g = WorkflowGraph.from_dict(
        {"nodes": [{"id": "a", "type": "noop"}, {"id": "a", "type": "noop"}], "edges": []}
    )
    assert "Duplicate node id 'a'" in g.problems()


def test_execution_order_breaks_ties_by_graph_order(graph):
    g = WorkflowGraph.from_dict(
        graph(
            [("t2", "manualTrigger"), ("t1", "manualTrigger"), ("x", "noop")],
            [("t1", "x"), ("t2", "x")],
        )
    )
    assert [n.id for n in g.get_execution_order()] == ["t2", "t1", "x"]


# --- parallel branches ---

@pytest.mark.asyncio
async def test_parallel_branches_run_concurrently(registry, settings, transport, graph):
    released = asyncio.Event()

    async def waiter(ctx):
        await asyncio.wait_for(released.wait(), timeout=1)
        return ctx.get_input_data()

    async def releaser(ctx):
        released.set()
        return ctx.get_input_data()

    registry.register_type({"name": "waiter"}, waiter)
    registry.register_type({"name": "releaser"}, releaser)
    engine = WorkflowEngine(
        registry=registry, settings=settings, http=transport, clock=fixed_clock, parallel=True
    )
    g = graph(
        [("t", "manualTrigger"), ("w", "waiter"), ("r", "releaser")],
        [("t", "w"), ("t", "r")],
    )
    result = await engine.run(g)

    assert result.status == ExecutionStatus.COMPLETED
    assert set(result.execution_order) == {"t", "w", "r"}


@pytest.mark.asyncio
async def test_sequential_branches_do_not_overlap(registry, engine, graph):
    released = asyncio.Event()

    async def waiter(ctx):
        await asyncio.wait_for(released.wait(), timeout=0.05)
        return ctx.get_input_data()

    registry.register_type({"name": "waiter"}, waiter)
    registry.register_type({"name": "releaser"}, lambda ctx: released.set() or ctx.get_input_data())
    g = graph(
        [("t", "manualTrigger"), ("w", "waiter"), ("r", "releaser")],
        [("t", "w"), ("t", "r")],
    )
    result = await engine.run(g)

    assert [e.node_id for e in result.errors] == ["w"]
    assert result.execution_order == ["t", "w", "r"]


# --- results and entry points ---

@pytest.mark.asyncio
async def test_run_result_to_dict(engine, graph, now):
    g = graph([("t", "manualTrigger"), ("x", "boom")], [("t", "x")])
    data = (await engine.run(g)).to_dict()

    assert data["status"] == "failed"
    assert data["started_at"] == now.isoformat()
    assert data["errors"][0]["node_id"] == "x"
    assert data["run_data"]["t"][0]["status"] == "success"
    assert data["run_data"]["x"][0]["error"] == "kaboom"
    assert data["log"][0]["nodeId"] == "t"


@pytest.mark.asyncio
async def test_log_is_reused_across_runs(engine, graph):
    log = ExecutionLog()
    g = graph([("t", "manualTrigger")])

    await engine.run(g, log=log)
    last_seq = log.entries[-1].seq
    await engine.run(g, log=log)

    assert len(log) == 2
    assert log.entries[0].seq > last_seq


@pytest.mark.asyncio
async def test_log_subscribers_see_entries_as_they_happen(engine, graph):
    seen = []
    log = ExecutionLog(subscribers=[lambda entry: seen.append((entry.node_id, entry.type))])
    await engine.run(graph([("t", "manualTrigger"), ("a", "noop")], [("t", "a")]), log=log)

    assert seen == [("t", "info"), ("t", "success"), ("a", "info"), ("a", "success")]


def test_module_level_run(registry, transport, graph):
    result = run(
        graph(
            [("t", "manualTrigger"), ("w", "wait", {"waitTime": 0})],
            [("t", "w")],
        ),
        registry=registry,
        http=transport,
    )
    assert result.status == ExecutionStatus.COMPLETED
    assert "_waitInfo" in result.output_items("w")[0].json_data


def test_register_node_type_on_default_registry(graph):
    register_node_type(
        {"name": "testShout", "displayName": "Shout"},
        lambda ctx: [{"text": str(ctx.get_node_parameter("text", 0, "")).upper()}],
    )
    result = run(
        graph([("t", "manualTrigger"), ("s", "testShout", {"text": "hey"})], [("t", "s")]),
        http=RecordingTransport(),
    )
    assert result.output_items("s")[0].json_data == {"text": "HEY"}


def test_run_sync_accepts_json_graph(engine, graph):
    g = WorkflowGraph.from_json(
        '{"nodes": [{"id": "t", "type": "start", "position": {"x": 0, "y": 0}}], "edges": []}'
    )
    result = engine.run_sync(g)
    assert result.output_items("t")[0].json_data["trigger"] == "start"


@pytest.mark.asyncio
async def test_behaviors_do_not_mutate_their_input(engine, graph):
    write_a_c = {"keepOnlySet": False, "values": {"number": [{"name": "a.c", "value": "2"}]}}
    g = graph(
        [
            ("t", "manualTrigger", {"initialData": '{"a": {"b": 1}, "tags": ["x", "y"]}'}),
            ("setOnTrigger", "set", write_a_c),
            ("split", "splitOut", {"fieldToSplit": "tags"}),
            ("setOnSplit", "set", write_a_c),
        ],
        [("t", "setOnTrigger"), ("t", "split"), ("split", "setOnSplit")],
    )
    result = await engine.run(g)

    assert result.errors == []
    assert result.output_items("t")[0].json_data["a"] == {"b": 1}
    assert result.output_items("setOnTrigger")[0].json_data["a"] == {"b": 1, "c": 2}

    split = jsons(result.output_items("split"))
    assert [i["item"] for i in split] == ["x", "y"]
    assert all(i["a"] == {"b": 1} for i in split)
    assert all(i["a"] == {"b": 1, "c": 2} for i in jsons(result.output_items("setOnSplit")))
