import json
from typing import List

from nodeflow.workflows.engine.constants import NodeGroup
from nodeflow.workflows.engine.context import NodeContext
from nodeflow.workflows.engine.definitions import WorkflowItem
from nodeflow.workflows.engine.nodes.base import BaseNode
from nodeflow.workflows.engine.nodes.registry import NodeRegistry
from nodeflow.workflows.engine.nodes.schema import NodeProperty, NodeTypeDescriptor, SelectOption

DEFAULT_INITIAL_DATA = {"message": "Workflow started manually"}


def parse_initial_data(raw) -> dict:
    if isinstance(raw, dict):
        return dict(raw)
    try:
        data = json.loads(raw or "{}")
    except (TypeError, ValueError):
        return dict(DEFAULT_INITIAL_DATA)
    return data if isinstance(data, dict) else dict(DEFAULT_INITIAL_DATA)


@NodeRegistry.register
class ManualTriggerNode(BaseNode):
    @property
    def description(self) -> NodeTypeDescriptor:
        return NodeTypeDescriptor(
            name="manualTrigger",
            displayName="Manual Trigger",
            description="Starts the workflow manually with the provided initial data",
            group=[NodeGroup.TRIGGER.value],
            icon="fa:mouse-pointer",
            color="#909298",
            inputCount=0,
            properties=[
                NodeProperty(
                    name="mode",
                    displayName="Execution Mode",
                    type="options",
                    default="once",
                    options=[
                        SelectOption(name="Once", value="once", description="Execute once when triggered"),
                        SelectOption(name="Multiple Times", value="multiple",
                                     description="Can be executed multiple times"),
                    ],
                ),
                NodeProperty(
                    name="initialData",
                    displayName="Initial Data",
                    type="string",
                    default="{}",
                    typeOptions={"rows": 4},
                    placeholder='{"message": "Workflow started manually"}',
                    description="Initial data to pass to the workflow (JSON format)",
                ),
            ],
        )

    async def execute(self, context: NodeContext) -> List[WorkflowItem]:
        mode = context.get_node_parameter("mode", 0, "once")
        initial_data = parse_initial_data(context.get_node_parameter("initialData", 0, "{}"))
        timestamp = context.now().isoformat()

        # Trigger data supplied by the caller is kept underneath the initial data
        return [
            WorkflowItem.create(
                {
                    **item.json_data,
                    **initial_data,
                    "trigger": "manual",
                    "executionMode": mode,
                    "timestamp": timestamp,
                },
                i,
            )
            for i, item in enumerate(context.get_input_data())
        ]
