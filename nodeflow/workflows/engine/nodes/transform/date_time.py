import copy
import re
from datetime import datetime, timezone
from typing import Any, Dict, List

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from nodeflow.workflows.engine.constants import NodeGroup
from nodeflow.workflows.engine.context import NodeContext
from nodeflow.workflows.engine.definitions import WorkflowItem
from nodeflow.workflows.engine.nodes.base import BaseNode
from nodeflow.workflows.engine.nodes.logic.conditions import MISSING, get_field_value
from nodeflow.workflows.engine.nodes.registry import NodeRegistry
from nodeflow.workflows.engine.nodes.schema import NodeProperty, NodeTypeDescriptor, SelectOption

DATE_FIELD_ACTIONS = ["formatDate", "parseDate", "addTime", "subtractTime", "getDateParts", "compareDates"]

TIME_UNITS = ["years", "months", "days", "hours", "minutes", "seconds"]

CUSTOM_TOKENS = re.compile(r"YYYY|MM|DD|HH|mm|ss")


def to_iso(value: datetime) -> str:
    """UTC ISO 8601 with milliseconds and a Z suffix: 2023-12-25T10:30:00.000Z"""
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def to_timestamp(value: datetime) -> int:
    """Milliseconds since the epoch."""
    return int(value.timestamp() * 1000)


def parse_date(value: Any) -> datetime:
    """
    Accepts datetimes, epoch milliseconds and date strings. Naive values are UTC.

    Raises:
        ValueError: if the value is not a date
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise ValueError(f"Invalid date value: {value}") from e
    elif isinstance(value, str):
        try:
            parsed = date_parser.parse(value)
        except (date_parser.ParserError, OverflowError, ValueError) as e:
            raise ValueError(f"Invalid date value: {value}") from e
    else:
        raise ValueError(f"Invalid date value: {value}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_date(value: datetime, date_format: str, custom_format: str = "") -> str:
    if date_format == "dateOnly":
        return value.strftime("%Y-%m-%d")
    if date_format == "timeOnly":
        return value.strftime("%H:%M:%S")
    if date_format == "humanReadable":
        return f"{value:%B} {value.day}, {value.year}"
    if date_format == "shortDate":
        return f"{value.month}/{value.day}/{value.year}"
    if date_format == "custom":
        return format_custom(value, custom_format or "YYYY-MM-DD HH:mm:ss")
    return to_iso(value)


def format_custom(value: datetime, pattern: str) -> str:
    tokens = {
        "YYYY": f"{value.year:04d}",
        "MM": f"{value.month:02d}",
        "DD": f"{value.day:02d}",
        "HH": f"{value.hour:02d}",
        "mm": f"{value.minute:02d}",
        "ss": f"{value.second:02d}",
    }
    return CUSTOM_TOKENS.sub(lambda m: tokens[m.group(0)], pattern)


def shift(value: datetime, unit: str, amount: float) -> datetime:
    if unit not in TIME_UNITS:
        raise ValueError(f"Unknown time unit: {unit}")
    if unit in ("years", "months"):
        # relativedelta only takes whole years and months
        return value + relativedelta(**{unit: int(amount)})
    return value + relativedelta(**{unit: amount})


@NodeRegistry.register
class DateTimeNode(BaseNode):
    """Date and time helpers: format, parse, shift, split and compare dates"""

    @property
    def description(self) -> NodeTypeDescriptor:
        return NodeTypeDescriptor(
            name="dateTime",
            displayName="Date & Time",
            description="Work with dates and times",
            group=[NodeGroup.TRANSFORM.value],
            icon="fa:clock",
            color="#FF9800",
            properties=[
                NodeProperty(
                    name="action",
                    displayName="Action",
                    type="options",
                    default="getCurrentDateTime",
                    options=[
                        SelectOption(name="Get Current Date/Time", value="getCurrentDateTime"),
                        SelectOption(name="Format Date", value="formatDate"),
                        SelectOption(name="Parse Date", value="parseDate"),
                        SelectOption(name="Add Time", value="addTime"),
                        SelectOption(name="Subtract Time", value="subtractTime"),
                        SelectOption(name="Get Date Parts", value="getDateParts"),
                        SelectOption(name="Compare Dates", value="compareDates"),
                    ],
                ),
                NodeProperty(
                    name="dateField",
                    displayName="Date Field",
                    type="string",
                    default="",
                    placeholder="data.createdAt",
                    description="The field containing the date value (use dot notation for nested fields)",
                    displayOptions={"show": {"action": DATE_FIELD_ACTIONS}},
                ),
                NodeProperty(
                    name="compareField",
                    displayName="Compare With Field",
                    type="string",
                    default="",
                    placeholder="data.dueDate",
                    description="The field holding the date to compare against",
                    displayOptions={"show": {"action": ["compareDates"]}},
                ),
                NodeProperty(
                    name="dateFormat",
                    displayName="Date Format",
                    type="options",
                    default="iso",
                    displayOptions={"show": {"action": ["formatDate"]}},
                    options=[
                        SelectOption(name="ISO 8601 (2023-12-25T10:30:00.000Z)", value="iso"),
                        SelectOption(name="Date Only (2023-12-25)", value="dateOnly"),
                        SelectOption(name="Time Only (10:30:00)", value="timeOnly"),
                        SelectOption(name="Human Readable (December 25, 2023)", value="humanReadable"),
                        SelectOption(name="Short Date (12/25/2023)", value="shortDate"),
                        SelectOption(name="Custom Format", value="custom"),
                    ],
                ),
                NodeProperty(
                    name="customFormat",
                    displayName="Custom Format",
                    type="string",
                    default="YYYY-MM-DD HH:mm:ss",
                    placeholder="YYYY-MM-DD HH:mm:ss",
                    displayOptions={"show": {"action": ["formatDate"], "dateFormat": ["custom"]}},
                ),
                NodeProperty(
                    name="timeUnit",
                    displayName="Time Unit",
                    type="options",
                    default="days",
                    displayOptions={"show": {"action": ["addTime", "subtractTime"]}},
                    options=[SelectOption(name=u.title(), value=u) for u in TIME_UNITS],
                ),
                NodeProperty(
                    name="amount",
                    displayName="Amount",
                    type="number",
                    default=1,
                    displayOptions={"show": {"action": ["addTime", "subtractTime"]}},
                ),
                NodeProperty(
                    name="outputField",
                    displayName="Output Field",
                    type="string",
                    default="dateTime",
                    description="The field name to store the result",
                ),
            ],
        )

    async def execute(self, context: NodeContext) -> List[WorkflowItem]:
        results = []

        for i, item in enumerate(context.get_input_data()):
            action = context.get_node_parameter("action", i, "getCurrentDateTime")
            output_field = context.get_node_parameter("outputField", i, "dateTime") or "dateTime"

            if action == "getCurrentDateTime":
                result = self._current(context.now())
            elif action in DATE_FIELD_ACTIONS:
                date = self._read_date(item.json_data, context.get_node_parameter("dateField", i, ""))
                result = self._apply(action, date, item.json_data, context, i)
            else:
                raise ValueError(f"Unknown action: {action}")

            new_json = copy.deepcopy(item.json_data)
            new_json[output_field] = result
            results.append(WorkflowItem.create(new_json, i))

        return results

    def _apply(self, action: str, date: datetime, data: Dict[str, Any], context: NodeContext, i: int) -> Any:
        if action == "formatDate":
            return format_date(
                date,
                context.get_node_parameter("dateFormat", i, "iso"),
                context.get_node_parameter("customFormat", i, ""),
            )

        if action == "parseDate":
            return {"iso": to_iso(date), "timestamp": to_timestamp(date), "valid": True}

        if action in ("addTime", "subtractTime"):
            unit = context.get_node_parameter("timeUnit", i, "days")
            amount = context.get_node_parameter("amount", i, 1) or 0
            if action == "addTime":
                return {"original": to_iso(date), "result": to_iso(shift(date, unit, amount)),
                        "added": f"{amount} {unit}"}
            return {"original": to_iso(date), "result": to_iso(shift(date, unit, -amount)),
                    "subtracted": f"{amount} {unit}"}

        if action == "getDateParts":
            return {
                "year": date.year,
                "month": date.month,
                "day": date.day,
                "hour": date.hour,
                "minute": date.minute,
                "second": date.second,
                "millisecond": date.microsecond // 1000,
                # Sunday is 0
                "dayOfWeek": (date.weekday() + 1) % 7,
                "dayName": f"{date:%A}",
                "monthName": f"{date:%B}",
                "dayOfYear": date.timetuple().tm_yday,
                "weekNumber": date.isocalendar()[1],
                "timestamp": to_timestamp(date),
            }

        # compareDates
        other = self._read_date(data, context.get_node_parameter("compareField", i, ""))
        difference_ms = to_timestamp(other) - to_timestamp(date)
        return {
            "date1": to_iso(date),
            "date2": to_iso(other),
            "isBefore": date < other,
            "isAfter": date > other,
            "isSame": date == other,
            "difference": {
                "milliseconds": difference_ms,
                "seconds": difference_ms / 1000,
                "minutes": difference_ms / 60_000,
                "hours": difference_ms / 3_600_000,
                "days": difference_ms / 86_400_000,
            },
        }

    @staticmethod
    def _read_date(data: Dict[str, Any], field: str) -> datetime:
        value = get_field_value(data, field) if field else MISSING
        if value is MISSING or value is None or value == "" or value == {}:
            raise ValueError(f"Date field '{field}' not found or empty")
        return parse_date(value)

    @staticmethod
    def _current(now: datetime) -> Dict[str, Any]:
        now = now.astimezone(timezone.utc)
        return {
            "iso": to_iso(now),
            "timestamp": to_timestamp(now),
            "dateOnly": now.strftime("%Y-%m-%d"),
            "timeOnly": now.strftime("%H:%M:%S"),
            "humanReadable": format_date(now, "humanReadable"),
            "shortDate": format_date(now, "shortDate"),
        }
