import copy
from typing import List

from nodeflow.workflows.engine.constants import NodeGroup
from nodeflow.workflows.engine.context import NodeContext
from nodeflow.workflows.engine.definitions import WorkflowItem
from nodeflow.workflows.engine.errors import MissingRequiredParameterError
from nodeflow.workflows.engine.nodes.base import BaseNode
from nodeflow.workflows.engine.nodes.logic.conditions import MISSING, get_field_value
from nodeflow.workflows.engine.nodes.registry import NodeRegistry
from nodeflow.workflows.engine.nodes.schema import NodeProperty, NodeTypeDescriptor


@NodeRegistry.register
class SplitOutNode(BaseNode):
    """Turns a list inside an item into one item per element"""

    @property
    def description(self) -> NodeTypeDescriptor:
        return NodeTypeDescriptor(
            name="splitOut",
            displayName="Split Out",
            description="Turn a list inside item(s) into separate items",
            group=[NodeGroup.TRANSFORM.value],
            icon="fa:sign-out-alt",
            color="#FF6B6B",
            properties=[
                NodeProperty(
                    name="fieldToSplit",
                    displayName="Field to Split",
                    type="string",
                    default="",
                    required=True,
                    placeholder="data.items",
                    description="The field containing the list to split out (dot notation for nested fields)",
                ),
                NodeProperty(
                    name="includeOriginalData",
                    displayName="Include Original Data",
                    type="boolean",
                    default=True,
                    description="Whether to copy the rest of the item onto every new item",
                ),
                NodeProperty(
                    name="destinationField",
                    displayName="Destination Field",
                    type="string",
                    default="item",
                    description="The field the split out element is written to",
                ),
            ],
        )

    async def execute(self, context: NodeContext) -> List[WorkflowItem]:
        results = []

        for i, item in enumerate(context.get_input_data()):
            field_to_split = context.get_node_parameter("fieldToSplit", i, "")
            include_original = context.get_node_parameter("includeOriginalData", i, True)
            destination = context.get_node_parameter("destinationField", i, "item") or "item"

            if not field_to_split:
                raise MissingRequiredParameterError(["fieldToSplit"], self.name)

            value = get_field_value(item.json_data, field_to_split)
            base = copy.deepcopy(item.json_data) if include_original else {}

            if not isinstance(value, list):
                results.append(
                    WorkflowItem.create({**base, destination: None if value is MISSING else value}, i)
                )
                continue

            total = len(value)
            for j, element in enumerate(value):
                new_json = {
                    **copy.deepcopy(base),
                    destination: copy.deepcopy(element),
                    "_splitIndex": j,
                    "_splitTotal": total,
                }
                results.append(WorkflowItem.create(new_json, i))

        return results
