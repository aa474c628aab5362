import copy
import json
from typing import Any, Dict, List

from nodeflow.workflows.engine.constants import NodeGroup
from nodeflow.workflows.engine.context import NodeContext
from nodeflow.workflows.engine.definitions import WorkflowItem
from nodeflow.workflows.engine.nodes.base import BaseNode
from nodeflow.workflows.engine.nodes.logic.conditions import collection_entries
from nodeflow.workflows.engine.nodes.registry import NodeRegistry
from nodeflow.workflows.engine.nodes.schema import (
    NodeProperty,
    NodeTypeDescriptor,
    PropertyCollection,
)

# Value groups in the order they are applied
VALUE_GROUPS = ["boolean", "number", "string", "object", "array"]


def _value_group(name: str, display_name: str, value: NodeProperty) -> PropertyCollection:
    return PropertyCollection(
        name=name,
        displayName=display_name,
        values=[
            NodeProperty(
                name="name", displayName="Name", type="string", default="propertyName",
                description="Name of the property to write data to",
            ),
            value,
        ],
    )


def set_property(data: Dict[str, Any], path: str, value: Any, dot_notation: bool = True) -> None:
    """Writes `value` at `path`, creating intermediate objects for dotted paths."""
    if not dot_notation or "." not in path:
        data[path] = value
        return

    *parents, last = path.split(".")
    current = data
    for key in parents:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]
    current[last] = value


def _parse_json(raw: Any, expected: type, name: str) -> Any:
    if isinstance(raw, expected):
        return copy.deepcopy(raw)
    if expected is list:
        try:
            parsed = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid JSON array for property \"{name}\": {e}") from e
        if not isinstance(parsed, list):
            raise ValueError(f"Invalid JSON array for property \"{name}\": Value is not a valid array")
        return parsed
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid JSON for object property \"{name}\": {e}") from e


@NodeRegistry.register
class SetNode(BaseNode):
    """Sets values on items, optionally dropping everything else"""

    @property
    def description(self) -> NodeTypeDescriptor:
        return NodeTypeDescriptor(
            name="set",
            displayName="Set",
            description="Sets values on items and optionally remove other values",
            group=[NodeGroup.INPUT.value],
            icon="fa:pen",
            color="#0000FF",
            properties=[
                NodeProperty(
                    name="keepOnlySet",
                    displayName="Keep Only Set",
                    type="boolean",
                    default=True,
                    description="Whether to keep only the values set on this node and remove all others",
                ),
                NodeProperty(
                    name="values",
                    displayName="Values to Set",
                    type="fixedCollection",
                    typeOptions={"multipleValues": True},
                    default={},
                    placeholder="Add Value",
                    options=[
                        _value_group("boolean", "Boolean", NodeProperty(
                            name="value", displayName="Value", type="boolean", default=False,
                        )),
                        _value_group("number", "Number", NodeProperty(
                            name="value", displayName="Value", type="number", default=0,
                        )),
                        _value_group("string", "String", NodeProperty(
                            name="value", displayName="Value", type="string", default="",
                        )),
                        _value_group("object", "Object", NodeProperty(
                            name="value", displayName="Value", type="string", default="{}",
                            typeOptions={"rows": 4}, placeholder='{"key": "value"}',
                        )),
                        _value_group("array", "Array", NodeProperty(
                            name="value", displayName="Value", type="string", default="[]",
                            typeOptions={"rows": 4}, placeholder='["item1", "item2", "item3"]',
                        )),
                    ],
                ),
                NodeProperty(
                    name="options",
                    displayName="Options",
                    type="fixedCollection",
                    default={},
                    placeholder="Add Option",
                    options=[
                        PropertyCollection(
                            name="dotNotation",
                            displayName="Dot Notation",
                            values=[NodeProperty(
                                name="dotNotation", displayName="Dot Notation", type="boolean",
                                default=True,
                                description="Whether to use dot-notation to set deep object properties",
                            )],
                        ),
                        PropertyCollection(
                            name="ignoreConversionErrors",
                            displayName="Ignore Conversion Errors",
                            values=[NodeProperty(
                                name="ignoreConversionErrors",
                                displayName="Ignore Conversion Errors",
                                type="boolean",
                                default=False,
                            )],
                        ),
                    ],
                ),
            ],
        )

    async def execute(self, context: NodeContext) -> List[WorkflowItem]:
        results = []

        for i, item in enumerate(context.get_input_data()):
            keep_only_set = context.get_node_parameter("keepOnlySet", i, True)
            values = context.get_node_parameter("values", i, {})
            dot_notation = context.get_node_parameter("options.dotNotation.dotNotation", i, True)
            ignore_errors = context.get_node_parameter(
                "options.ignoreConversionErrors.ignoreConversionErrors", i, False
            )

            new_json: Dict[str, Any] = {} if keep_only_set else copy.deepcopy(item.json_data)

            for group in VALUE_GROUPS:
                for entry in collection_entries(values, group):
                    name = entry.get("name")
                    if not name:
                        continue
                    value = entry.get("value")
                    if group in ("object", "array"):
                        try:
                            value = _parse_json(value, dict if group == "object" else list, name)
                        except ValueError:
                            if not ignore_errors:
                                raise
                    set_property(new_json, name, value, dot_notation is not False)

            results.append(WorkflowItem.create(new_json, i))

        return results
