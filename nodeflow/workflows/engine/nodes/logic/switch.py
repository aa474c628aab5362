import math
from typing import List

from nodeflow.workflows.engine.constants import SWITCH_OUTPUTS, NodeGroup
from nodeflow.workflows.engine.context import NodeContext
from nodeflow.workflows.engine.definitions import WorkflowItem
from nodeflow.workflows.engine.nodes.base import BaseNode
from nodeflow.workflows.engine.nodes.logic.conditions import (
    SWITCH_OPERATIONS,
    collection_entries,
    evaluate_condition,
    get_field_value,
    operation_options,
)
from nodeflow.workflows.engine.nodes.registry import NodeRegistry
from nodeflow.workflows.engine.nodes.schema import (
    NodeProperty,
    NodeTypeDescriptor,
    PropertyCollection,
    SelectOption,
)
from nodeflow.workflows.engine.parameters import coerce_number


def clamp_output(value) -> int:
    number = coerce_number(value) or 0
    if math.isnan(number):
        number = 0
    return int(max(0, min(SWITCH_OUTPUTS - 1, number)))


@NodeRegistry.register
class SwitchNode(BaseNode):
    """Routes each item to one of four outputs; the first matching rule wins"""

    @property
    def description(self) -> NodeTypeDescriptor:
        return NodeTypeDescriptor(
            name="switch",
            displayName="Switch",
            description="Route data to different outputs based on conditions",
            group=[NodeGroup.LOGIC.value],
            icon="fa:code-branch",
            color="#FF5722",
            outputCount=SWITCH_OUTPUTS,
            properties=[
                NodeProperty(
                    name="mode",
                    displayName="Mode",
                    type="options",
                    default="rules",
                    options=[
                        SelectOption(name="Expression", value="expression",
                                     description="Use expressions to determine routing"),
                        SelectOption(name="Rules", value="rules",
                                     description="Use rules to determine routing"),
                    ],
                ),
                NodeProperty(
                    name="dataProperty",
                    displayName="Data Property",
                    type="string",
                    default="",
                    placeholder="data.status",
                    description="The property to check for routing decisions",
                    displayOptions={"show": {"mode": ["rules"]}},
                ),
                NodeProperty(
                    name="rules",
                    displayName="Rules",
                    type="fixedCollection",
                    typeOptions={"multipleValues": True},
                    default={},
                    placeholder="Add Rule",
                    displayOptions={"show": {"mode": ["rules"]}},
                    options=[
                        PropertyCollection(
                            name="rule",
                            displayName="Rule",
                            values=[
                                NodeProperty(
                                    name="output", displayName="Output", type="number", default=0,
                                    description="The output index to send data to (0-3)",
                                ),
                                NodeProperty(
                                    name="operation", displayName="Operation", type="options",
                                    default="equal", options=operation_options(SWITCH_OPERATIONS),
                                ),
                                NodeProperty(
                                    name="value", displayName="Value", type="string", default="",
                                    displayOptions={"hide": {"operation": ["isEmpty", "isNotEmpty"]}},
                                ),
                            ],
                        )
                    ],
                ),
                NodeProperty(
                    name="fallbackOutput",
                    displayName="Fallback Output",
                    type="number",
                    default=SWITCH_OUTPUTS - 1,
                    description="Output to use when no rules match (0-3)",
                ),
            ],
        )

    async def execute(self, context: NodeContext) -> List[List[WorkflowItem]]:
        outputs: List[List[WorkflowItem]] = [[] for _ in range(SWITCH_OUTPUTS)]

        for i, item in enumerate(context.get_input_data()):
            mode = context.get_node_parameter("mode", i, "rules")
            output_index = clamp_output(context.get_node_parameter("fallbackOutput", i))

            if mode == "rules":
                data_property = context.get_node_parameter("dataProperty", i, "")
                value = get_field_value(item.json_data, data_property)
                for rule in collection_entries(context.get_node_parameter("rules", i, {}), "rule"):
                    if evaluate_condition(
                        value, rule.get("operation", "equal"), rule.get("value"), case_sensitive=False
                    ):
                        output_index = clamp_output(rule.get("output"))
                        break

            outputs[output_index].append(WorkflowItem.create(item.json_data, i))

        return outputs
