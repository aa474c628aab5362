from typing import List

from nodeflow.workflows.engine.constants import NodeGroup
from nodeflow.workflows.engine.context import NodeContext
from nodeflow.workflows.engine.definitions import WorkflowItem
from nodeflow.workflows.engine.nodes.base import BaseNode
from nodeflow.workflows.engine.nodes.logic.conditions import (
    COMBINE_OPTIONS,
    FILTER_OPERATIONS,
    collection_entries,
    combine,
    evaluate_condition,
    get_field_value,
    operation_options,
)
from nodeflow.workflows.engine.nodes.registry import NodeRegistry
from nodeflow.workflows.engine.nodes.schema import (
    NodeProperty,
    NodeTypeDescriptor,
    PropertyCollection,
)


@NodeRegistry.register
class FilterNode(BaseNode):
    """Drops items that don't match the conditions"""

    @property
    def description(self) -> NodeTypeDescriptor:
        return NodeTypeDescriptor(
            name="filter",
            displayName="Filter",
            description="Filter items based on conditions",
            group=[NodeGroup.TRANSFORM.value],
            icon="fa:filter",
            color="#229eff",
            properties=[
                NodeProperty(
                    name="conditions",
                    displayName="Conditions",
                    type="fixedCollection",
                    typeOptions={"multipleValues": True},
                    default={},
                    placeholder="Add Condition",
                    options=[
                        PropertyCollection(
                            name="boolean",
                            displayName="Boolean",
                            values=[
                                NodeProperty(
                                    name="field", displayName="Field", type="string", default="",
                                    placeholder="data.status",
                                    description="The field to check (dot notation for nested fields)",
                                ),
                                NodeProperty(
                                    name="operation", displayName="Operation", type="options",
                                    default="equal", options=operation_options(FILTER_OPERATIONS),
                                ),
                                NodeProperty(
                                    name="value", displayName="Value", type="string", default="",
                                    displayOptions={
                                        "hide": {"operation": ["isEmpty", "isNotEmpty", "exists", "notExists"]}
                                    },
                                ),
                            ],
                        )
                    ],
                ),
                NodeProperty(
                    name="combineOperation",
                    displayName="Combine",
                    type="options",
                    default="all",
                    options=COMBINE_OPTIONS,
                ),
            ],
        )

    async def execute(self, context: NodeContext) -> List[WorkflowItem]:
        kept: List[WorkflowItem] = []

        for i, item in enumerate(context.get_input_data()):
            conditions = collection_entries(context.get_node_parameter("conditions", i, {}), "boolean")
            if not conditions:
                kept.append(WorkflowItem.create(item.json_data, i))
                continue

            results = [
                evaluate_condition(
                    get_field_value(item.json_data, c.get("field") or ""),
                    c.get("operation", "equal"),
                    c.get("value"),
                    case_sensitive=False,
                )
                for c in conditions
            ]
            if combine(results, context.get_node_parameter("combineOperation", i, "all")):
                kept.append(WorkflowItem.create(item.json_data, i))

        return kept
