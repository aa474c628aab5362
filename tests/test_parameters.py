"""
Tests for parameter resolution: defaults, coercion, expressions, collections
and required checks
"""

import pytest

from nodeflow.workflows.engine.definitions import WorkflowItem
from nodeflow.workflows.engine.errors import MissingRequiredParameterError
from nodeflow.workflows.engine.nodes.schema import (
    NodeProperty,
    NodeTypeDescriptor,
    PropertyCollection,
    SelectOption,
)
from nodeflow.workflows.engine.parameters import NodeParameters, coerce_boolean, coerce_number

DESCRIPTOR = NodeTypeDescriptor(
    name="sample",
    properties=[
        NodeProperty(name="count", type="number", default=1),
        NodeProperty(name="enabled", type="boolean", default=False),
        NodeProperty(
            name="mode",
            type="options",
            default="simple",
            options=[
                SelectOption(name="Simple", value="simple"),
                SelectOption(name="Advanced", value="advanced"),
            ],
        ),
        NodeProperty(
            name="target", type="string", default="", required=True,
            displayOptions={"show": {"mode": ["advanced"]}},
        ),
        NodeProperty(name="url", type="string", default="", required=True),
        NodeProperty(
            name="headers",
            type="fixedCollection",
            typeOptions={"multipleValues": True},
            default={},
            options=[
                PropertyCollection(
                    name="parameter",
                    values=[
                        NodeProperty(name="name", type="string", default=""),
                        NodeProperty(name="value", type="string", default=""),
                    ],
                )
            ],
        ),
    ],
)


def params(data, items=None):
    return NodeParameters(
        DESCRIPTOR, data, [WorkflowItem.create(d, i) for i, d in enumerate(items or [])]
    )


def test_coerce_number():
    assert coerce_number("42") == 42
    assert coerce_number(" 2.5 ") == 2.5
    assert coerce_number("abc") == 0
    assert coerce_number(True) == 1
    assert coerce_number(None) is None


def test_coerce_boolean():
    assert coerce_boolean("true") is True
    assert coerce_boolean("Yes") is True
    assert coerce_boolean("no") is False
    assert coerce_boolean(0) is False
    assert coerce_boolean(None) is None


def test_default_used_when_absent():
    p = params({})
    assert p.get("count") == 1
    assert p.get("enabled") is False
    assert p.get("mode") == "simple"


def test_unknown_parameter_returns_fallback():
    assert params({}).get("nope", fallback="x") == "x"
    assert params({}).get("nope") is None


def test_stored_values_are_coerced_to_declared_type():
    p = params({"count": "42", "enabled": "true"})
    assert p.get("count") == 42
    assert p.get("enabled") is True


def test_undeclared_keys_pass_through():
    assert params({"label": "My node"}).get("label") == "My node"


def test_expression_resolved_against_requested_item():
    p = params({"url": "https://api.example.com/{{ $json.id }}"}, [{"id": 1}, {"id": 2}])
    assert p.get("url", 0) == "https://api.example.com/1"
    assert p.get("url", 1) == "https://api.example.com/2"


def test_expression_result_is_coerced():
    p = params({"count": "{{ $json.n }}"}, [{"n": "7"}])
    assert p.get("count") == 7


def test_item_index_out_of_range_resolves_against_empty_json():
    p = params({"url": "{{ $json.id }}"}, [])
    assert p.get("url", 5) is None


def test_fixed_collection_entries_resolved():
    p = params(
        {"headers": {"parameter": [{"name": "X-Id", "value": "{{ $json.v }}"}]}},
        [{"v": "abc"}],
    )
    assert p.get("headers") == {"parameter": [{"name": "X-Id", "value": "abc"}]}
    assert p.get("headers.parameter") == [{"name": "X-Id", "value": "abc"}]


def test_fixed_collection_fills_sub_property_defaults():
    p = params({"headers": {"parameter": [{"name": "A"}]}})
    assert p.get("headers.parameter") == [{"name": "A", "value": ""}]


def test_dotted_path_missing_segment_returns_fallback():
    assert params({}).get("headers.parameter", fallback=[]) == []


def test_missing_required_respects_visibility():
    assert params({}).missing_required() == ["url"]
    assert params({"mode": "advanced"}).missing_required() == ["target", "url"]
    assert params({"url": "https://example.com"}).missing_required() == []


def test_ensure_required_raises():
    with pytest.raises(MissingRequiredParameterError) as exc_info:
        params({"url": ""}).ensure_required()
    assert exc_info.value.parameters == ["url"]
    assert "'url'" in str(exc_info.value)


def test_has_and_current_value():
    p = params({"count": "{{ $json.n }}"})
    assert p.has("count")
    assert not p.has("mode")
    assert p.current_value("count") == "{{ $json.n }}"
    assert p.current_value("mode") == "simple"


def test_hidden_property_still_resolves_stored_value(registry):
    descriptor = registry.lookup("switch").description
    p = NodeParameters(descriptor, {"mode": "expression", "dataProperty": "status"}, [])

    assert "dataProperty" not in [prop.name for prop in descriptor.visible_properties(p.raw)]
    assert p.get("dataProperty") == "status"
