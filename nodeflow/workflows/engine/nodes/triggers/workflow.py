from typing import List

from nodeflow.workflows.engine.constants import NodeGroup
from nodeflow.workflows.engine.context import NodeContext
from nodeflow.workflows.engine.definitions import WorkflowItem
from nodeflow.workflows.engine.nodes.base import BaseNode
from nodeflow.workflows.engine.nodes.registry import NodeRegistry
from nodeflow.workflows.engine.nodes.schema import NodeProperty, NodeTypeDescriptor


@NodeRegistry.register
class WorkflowTriggerNode(BaseNode):
    """Entry point when another workflow calls this one"""

    @property
    def description(self) -> NodeTypeDescriptor:
        return NodeTypeDescriptor(
            name="workflowTrigger",
            displayName="Workflow Trigger",
            description="Starts the workflow when called by another workflow",
            group=[NodeGroup.TRIGGER.value],
            icon="fa:sitemap",
            color="#ff6d5a",
            inputCount=0,
            properties=[
                NodeProperty(
                    name="workflowName", displayName="Workflow Name", type="string", default="",
                    placeholder="Enter workflow name",
                    description="Name of the workflow that can trigger this",
                ),
                NodeProperty(
                    name="waitForCompletion", displayName="Wait for Completion", type="boolean",
                    default=True,
                ),
                NodeProperty(
                    name="passData", displayName="Pass Data", type="boolean", default=True,
                    description="Whether to pass data from the calling workflow",
                ),
            ],
        )

    async def execute(self, context: NodeContext) -> List[WorkflowItem]:
        workflow_name = context.get_node_parameter("workflowName", 0, "")
        wait_for_completion = context.get_node_parameter("waitForCompletion", 0, True)
        pass_data = context.get_node_parameter("passData", 0, True)

        items = context.get_input_data()
        passed = dict(items[0].json_data) if items and pass_data else {}

        return [
            WorkflowItem.create(
                {
                    **passed,
                    "trigger": "workflow",
                    "callingWorkflow": workflow_name,
                    "waitForCompletion": wait_for_completion,
                    "passData": pass_data,
                    "timestamp": context.now().isoformat(),
                    "message": f"Workflow triggered by: {workflow_name or 'Unknown workflow'}",
                },
                0,
            )
        ]
