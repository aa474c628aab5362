from typing import List

from nodeflow.workflows.engine.constants import FALSE_HANDLE, TRUE_HANDLE, NodeGroup
from nodeflow.workflows.engine.context import NodeContext
from nodeflow.workflows.engine.definitions import WorkflowItem
from nodeflow.workflows.engine.nodes.base import BaseNode
from nodeflow.workflows.engine.nodes.logic.conditions import (
    COMBINE_OPTIONS,
    IF_OPERATIONS,
    collection_entries,
    combine,
    evaluate_condition,
    operation_options,
)
from nodeflow.workflows.engine.nodes.registry import NodeRegistry
from nodeflow.workflows.engine.nodes.schema import (
    NodeProperty,
    NodeTypeDescriptor,
    PropertyCollection,
)


@NodeRegistry.register
class IfNode(BaseNode):
    """Routes each item to the true or false output"""

    @property
    def description(self) -> NodeTypeDescriptor:
        return NodeTypeDescriptor(
            name="if",
            displayName="IF",
            description="Route items to different branches (true/false)",
            group=[NodeGroup.LOGIC.value],
            icon="fa:map-signs",
            color="#408000",
            outputCount=2,
            outputs=[TRUE_HANDLE, FALSE_HANDLE],
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
                                    name="value1", displayName="Value 1", type="string", default="",
                                    description="The value to compare with the second one",
                                ),
                                NodeProperty(
                                    name="operation", displayName="Operation", type="options",
                                    default="equal", options=operation_options(IF_OPERATIONS),
                                ),
                                NodeProperty(
                                    name="value2", displayName="Value 2", type="string", default="",
                                    description="The value to compare with the first one",
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
                    description="If multiple conditions are set, whether all or any must match",
                ),
            ],
        )

    async def execute(self, context: NodeContext) -> List[List[WorkflowItem]]:
        true_items: List[WorkflowItem] = []
        false_items: List[WorkflowItem] = []

        for i, item in enumerate(context.get_input_data()):
            conditions = context.get_node_parameter("conditions", i, {})
            combine_operation = context.get_node_parameter("combineOperation", i, "all")

            results = [
                evaluate_condition(
                    c.get("value1"), c.get("operation", "equal"), c.get("value2"), case_sensitive=True
                )
                for c in collection_entries(conditions, "boolean")
            ]

            target = true_items if combine(results, combine_operation) else false_items
            target.append(WorkflowItem.create(item.json_data, i))

        return [true_items, false_items]
