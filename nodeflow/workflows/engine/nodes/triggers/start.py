from typing import List

from nodeflow.workflows.engine.constants import NodeGroup
from nodeflow.workflows.engine.context import NodeContext
from nodeflow.workflows.engine.definitions import WorkflowItem
from nodeflow.workflows.engine.nodes.base import BaseNode
from nodeflow.workflows.engine.nodes.registry import NodeRegistry
from nodeflow.workflows.engine.nodes.schema import NodeProperty, NodeTypeDescriptor


@NodeRegistry.register
class StartNode(BaseNode):
    @property
    def description(self) -> NodeTypeDescriptor:
        return NodeTypeDescriptor(
            name="start",
            displayName="Start",
            description="Starts the workflow execution",
            group=[NodeGroup.TRIGGER.value],
            icon="fa:play",
            color="#00e000",
            inputCount=0,
            properties=[
                NodeProperty(
                    name="message", displayName="Initial Message", type="string",
                    default="Workflow started",
                ),
                NodeProperty(
                    name="includeTimestamp", displayName="Include Timestamp", type="boolean",
                    default=True,
                ),
            ],
        )

    async def execute(self, context: NodeContext) -> List[WorkflowItem]:
        data = {
            "trigger": "start",
            "message": context.get_node_parameter("message", 0, "Workflow started"),
        }
        if context.get_node_parameter("includeTimestamp", 0, True):
            data["timestamp"] = context.now().isoformat()
        return [WorkflowItem.create(data, 0)]
