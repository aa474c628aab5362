from datetime import datetime
from typing import List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import croniter

from nodeflow.workflows.engine.constants import NodeGroup
from nodeflow.workflows.engine.context import NodeContext
from nodeflow.workflows.engine.definitions import WorkflowItem
from nodeflow.workflows.engine.nodes.base import BaseNode
from nodeflow.workflows.engine.nodes.registry import NodeRegistry
from nodeflow.workflows.engine.nodes.schema import NodeProperty, NodeTypeDescriptor, SelectOption

INTERVAL_CRON = {
    "minute": "* * * * *",
    "hour": "0 * * * *",
    "day": "0 0 * * *",
    "week": "0 0 * * 0",
}


def cron_for(interval: str, cron_expression: str) -> str:
    """
    Raises:
        ValueError: unknown interval or invalid cron expression
    """
    if interval == "cron":
        expr = (cron_expression or "").strip()
    elif interval in INTERVAL_CRON:
        expr = INTERVAL_CRON[interval]
    else:
        raise ValueError(f"Unknown interval: {interval}")

    if not croniter.croniter.is_valid(expr):
        raise ValueError(f"Invalid cron expression: '{expr}'")
    return expr


def next_run(expr: str, now: datetime, tz_name: str) -> datetime:
    try:
        tz = ZoneInfo(tz_name or "UTC")
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: '{tz_name}'") from e
    it = croniter.croniter(expr, now.astimezone(tz))
    return it.get_next(datetime)


@NodeRegistry.register
class ScheduleTriggerNode(BaseNode):
    @property
    def description(self) -> NodeTypeDescriptor:
        return NodeTypeDescriptor(
            name="scheduleTrigger",
            displayName="Schedule Trigger",
            description="Triggers the workflow on a schedule",
            group=[NodeGroup.TRIGGER.value],
            icon="fa:clock",
            color="#31C49F",
            inputCount=0,
            properties=[
                NodeProperty(
                    name="interval",
                    displayName="Trigger Interval",
                    type="options",
                    default="hour",
                    options=[
                        SelectOption(name="Every Minute", value="minute"),
                        SelectOption(name="Every Hour", value="hour"),
                        SelectOption(name="Every Day", value="day"),
                        SelectOption(name="Every Week", value="week"),
                        SelectOption(name="Custom Cron", value="cron",
                                     description="Use custom cron expression"),
                    ],
                ),
                NodeProperty(
                    name="cronExpression",
                    displayName="Cron Expression",
                    type="string",
                    default="0 * * * *",
                    placeholder="0 * * * *",
                    displayOptions={"show": {"interval": ["cron"]}},
                ),
                NodeProperty(
                    name="timezone",
                    displayName="Timezone",
                    type="string",
                    default="UTC",
                    placeholder="America/New_York",
                ),
            ],
        )

    async def execute(self, context: NodeContext) -> List[WorkflowItem]:
        interval = context.get_node_parameter("interval", 0, "hour")
        cron_expression = context.get_node_parameter("cronExpression", 0, "0 * * * *")
        timezone_name = context.get_node_parameter("timezone", 0, "UTC") or "UTC"

        expr = cron_for(interval, cron_expression)
        now = context.now()

        data = {
            "trigger": "schedule",
            "interval": interval,
            "timezone": timezone_name,
            "timestamp": now.isoformat(),
            "nextRun": next_run(expr, now, timezone_name).isoformat(),
            "message": f"Workflow triggered by schedule ({interval})",
        }
        if interval == "cron":
            data["cronExpression"] = expr

        return [WorkflowItem.create(data, 0)]
