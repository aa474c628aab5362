import json
from typing import Any, Dict, List

from nodeflow.workflows.engine.constants import NodeGroup
from nodeflow.workflows.engine.context import NodeContext
from nodeflow.workflows.engine.definitions import WorkflowItem
from nodeflow.workflows.engine.nodes.base import BaseNode
from nodeflow.workflows.engine.nodes.logic.conditions import MISSING, get_field_value
from nodeflow.workflows.engine.nodes.registry import NodeRegistry
from nodeflow.workflows.engine.nodes.schema import NodeProperty, NodeTypeDescriptor, SelectOption


def _fold_case(value: Any) -> Any:
    if isinstance(value, str):
        return value.lower()
    if isinstance(value, dict):
        return {k: _fold_case(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_fold_case(v) for v in value]
    return value


def _as_text(value: Any) -> str:
    if value is None or value is MISSING:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True, default=str)
    return str(value)


def duplicate_key(data: Dict[str, Any], fields: List[str], case_sensitive: bool = True) -> str:
    """
    Key two items share when they are duplicates: the listed fields, or the
    whole json with keys sorted at every level when no field is listed.
    """
    if not fields:
        payload = data if case_sensitive else _fold_case(data)
        return json.dumps(payload, sort_keys=True, default=str)

    parts = []
    for field in fields:
        value = get_field_value(data, field)
        text = _as_text(value)
        if not case_sensitive and isinstance(value, str):
            text = text.lower()
        parts.append(f"{field}:{text}")
    return "|".join(parts)


@NodeRegistry.register
class RemoveDuplicatesNode(BaseNode):
    """Keeps one item per duplicate key"""

    @property
    def description(self) -> NodeTypeDescriptor:
        return NodeTypeDescriptor(
            name="removeDuplicates",
            displayName="Remove Duplicates",
            description="Remove duplicate items based on specified fields",
            group=[NodeGroup.TRANSFORM.value],
            icon="fa:clone",
            color="#9C27B0",
            properties=[
                NodeProperty(
                    name="compareFields",
                    displayName="Compare Fields",
                    type="string",
                    default="",
                    placeholder="id, email, name",
                    description="Comma-separated list of fields to compare (empty compares entire items)",
                ),
                NodeProperty(
                    name="keep",
                    displayName="Keep",
                    type="options",
                    default="first",
                    options=[
                        SelectOption(name="First Occurrence", value="first",
                                     description="Keep the first occurrence of each duplicate"),
                        SelectOption(name="Last Occurrence", value="last",
                                     description="Keep the last occurrence of each duplicate"),
                    ],
                ),
                NodeProperty(
                    name="caseSensitive",
                    displayName="Case Sensitive",
                    type="boolean",
                    default=True,
                    description="Whether string comparisons should be case sensitive",
                ),
            ],
        )

    async def execute(self, context: NodeContext) -> List[WorkflowItem]:
        items = context.get_input_data()
        if not items:
            return []

        compare_fields = context.get_node_parameter("compareFields", 0, "") or ""
        keep = context.get_node_parameter("keep", 0, "first")
        case_sensitive = context.get_node_parameter("caseSensitive", 0, True)

        fields = [f.strip() for f in str(compare_fields).split(",") if f.strip()]

        # key -> index of the kept item in the input
        kept: Dict[str, int] = {}
        for i, item in enumerate(items):
            key = duplicate_key(item.json_data, fields, case_sensitive is not False)
            if key not in kept:
                kept[key] = i
            elif keep == "last":
                # Moves to the end, after everything seen in between
                del kept[key]
                kept[key] = i

        return [WorkflowItem.create(items[i].json_data, i) for i in kept.values()]
