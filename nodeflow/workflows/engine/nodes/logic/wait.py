import copy
import logging
from datetime import timedelta
from typing import List

from nodeflow.workflows.engine.constants import NodeGroup
from nodeflow.workflows.engine.context import NodeContext
from nodeflow.workflows.engine.definitions import WorkflowItem
from nodeflow.workflows.engine.nodes.base import BaseNode
from nodeflow.workflows.engine.nodes.registry import NodeRegistry
from nodeflow.workflows.engine.nodes.schema import NodeProperty, NodeTypeDescriptor, SelectOption

logger = logging.getLogger(__name__)

UNIT_SECONDS = {"seconds": 1, "minutes": 60, "hours": 3600}


@NodeRegistry.register
class WaitNode(BaseNode):
    """Pauses the branch for a while, or marks items as waiting for a webhook"""

    @property
    def description(self) -> NodeTypeDescriptor:
        return NodeTypeDescriptor(
            name="wait",
            displayName="Wait",
            description="Wait for a specified amount of time before continuing",
            group=[NodeGroup.LOGIC.value],
            icon="fa:pause-circle",
            color="#804050",
            properties=[
                NodeProperty(
                    name="waitTime", displayName="Wait Time", type="number", default=1,
                    description="Amount of time to wait",
                ),
                NodeProperty(
                    name="timeUnit",
                    displayName="Time Unit",
                    type="options",
                    default="seconds",
                    options=[
                        SelectOption(name="Seconds", value="seconds"),
                        SelectOption(name="Minutes", value="minutes"),
                        SelectOption(name="Hours", value="hours"),
                    ],
                ),
                NodeProperty(
                    name="resumeOn",
                    displayName="Resume On",
                    type="options",
                    default="timer",
                    options=[
                        SelectOption(name="Timer", value="timer",
                                     description="Resume after the specified time"),
                        SelectOption(name="Webhook", value="webhook",
                                     description="Resume when a webhook is called"),
                    ],
                ),
                NodeProperty(
                    name="webhookPath",
                    displayName="Webhook Path",
                    type="string",
                    default="",
                    placeholder="/resume-workflow",
                    displayOptions={"show": {"resumeOn": ["webhook"]}},
                ),
            ],
        )

    async def execute(self, context: NodeContext) -> List[WorkflowItem]:
        wait_time = context.get_node_parameter("waitTime", 0, 1) or 0
        time_unit = context.get_node_parameter("timeUnit", 0, "seconds")
        resume_on = context.get_node_parameter("resumeOn", 0, "timer")

        start = context.now()
        wait_info = {
            "waitTime": wait_time,
            "timeUnit": time_unit,
            "resumeOn": resume_on,
            "startTime": start.isoformat(),
        }

        if resume_on == "webhook":
            wait_info["webhookPath"] = context.get_node_parameter("webhookPath", 0, "")
            wait_info["status"] = "waiting_for_webhook"
        else:
            seconds = max(0.0, float(wait_time) * UNIT_SECONDS.get(time_unit, 1))
            if seconds > context.settings.WAIT_MAX_SECONDS:
                logger.warning(
                    f"Wait of {seconds}s on node {context.node_id} capped at "
                    f"{context.settings.WAIT_MAX_SECONDS}s"
                )
                seconds = context.settings.WAIT_MAX_SECONDS
            await context.sleep(seconds)
            wait_info["endTime"] = (start + timedelta(seconds=seconds)).isoformat()

        return [
            WorkflowItem.create(
                {**copy.deepcopy(item.json_data), "_waitInfo": dict(wait_info)}, i
            )
            for i, item in enumerate(context.get_input_data())
        ]
