"""
Tests for the nodeflow command line
"""

import json

import pytest
from click.testing import CliRunner

from nodeflow import __version__
from nodeflow.cli import main

from conftest import make_graph

QUIET = ["--log-level", "CRITICAL"]


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def write_graph(tmp_path):
    def _write(graph):
        path = tmp_path / "graph.json"
        path.write_text(json.dumps(graph))
        return str(path)

    return _write


def greeting_graph():
    return make_graph(
        [
            ("trigger", "manualTrigger", {"initialData": '{"name": "Ada"}'}),
            ("greet", "set", {"values": {"string": [{"name": "msg", "value": "Hi {{ $json.name }}"}]}}),
        ],
        [("trigger", "greet")],
    )


def test_run_as_json(runner, write_graph):
    result = runner.invoke(main, [*QUIET, "run", write_graph(greeting_graph()), "--json"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["status"] == "completed"
    assert data["errors"] == []
    assert data["run_data"]["greet"][0]["outputs"][0][0]["json"] == {"msg": "Hi Ada"}


def test_run_prints_execution_log(runner, write_graph):
    result = runner.invoke(main, [*QUIET, "run", write_graph(greeting_graph())])

    assert result.exit_code == 0, result.output
    assert "Execution log" in result.output
    assert "Workflow completed" in result.output


def test_run_with_trigger_data(runner, write_graph):
    result = runner.invoke(
        main,
        [*QUIET, "run", write_graph(greeting_graph()), "--json", "--trigger-data", '[{"id": 1}, {"id": 2}]'],
    )

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert len(data["run_data"]["greet"][0]["outputs"][0]) == 2


def test_run_reports_node_errors(runner, write_graph):
    graph = make_graph([("t", "manualTrigger"), ("call", "httpRequest")], [("t", "call")])
    result = runner.invoke(main, [*QUIET, "run", write_graph(graph), "--simulate-http"])

    assert result.exit_code == 1
    assert "Workflow failed with 1 error(s)" in result.output
    assert "missing_parameter" in result.output


def test_run_unknown_node_type(runner, write_graph):
    graph = make_graph([("t", "manualTrigger"), ("x", "doesNotExist")], [("t", "x")])
    result = runner.invoke(main, [*QUIET, "run", write_graph(graph)])

    assert result.exit_code == 1
    assert "Unknown node type: doesNotExist" in result.output


def test_run_rejects_bad_trigger_data(runner, write_graph):
    result = runner.invoke(
        main, [*QUIET, "run", write_graph(greeting_graph()), "--trigger-data", "{nope"]
    )
    assert result.exit_code == 2
    assert "not valid JSON" in result.output


def test_run_rejects_unreadable_graph(runner, tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")
    result = runner.invoke(main, [*QUIET, "run", str(path)])
    assert result.exit_code == 2
    assert "Could not read graph" in result.output


def test_nodes_lists_types(runner):
    result = runner.invoke(main, [*QUIET, "nodes"])

    assert result.exit_code == 0, result.output
    for name in ("switch", "wait", "webhook"):
        assert name in result.output


def test_describe_node_type(runner):
    result = runner.invoke(main, [*QUIET, "describe", "if"])

    assert result.exit_code == 0, result.output
    assert "conditions" in result.output
    assert "true, false" in result.output


def test_describe_unknown_node_type(runner):
    result = runner.invoke(main, [*QUIET, "describe", "nope"])
    assert result.exit_code == 1
    assert "Unknown node type: nope" in result.output


def test_version(runner):
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output
