import itertools
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, List, Optional

from nodeflow.workflows.types import LogEntryDict, LogType

logger = logging.getLogger(__name__)

SYSTEM_NODE_ID = "System"

# Longest output summary written into a success entry
MAX_SUMMARY_LENGTH = 500


@dataclass(frozen=True)
class LogEntry:
    seq: int
    node_id: str
    message: str
    type: LogType
    timestamp: datetime

    def to_dict(self) -> LogEntryDict:
        return {
            "seq": self.seq,
            "nodeId": self.node_id,
            "message": self.message,
            "type": self.type,
            "timestamp": self.timestamp.isoformat(),
        }


class ExecutionLog:
    """
    Ordered, append-only record of per-node execution events.

    The engine is handed an instance per run; observers either read `entries`
    afterwards or subscribe to receive each entry as it is appended. Every
    entry is also mirrored to the Python logger.

    Appends are made from the event loop thread, so sequence numbers are
    strictly increasing in visitation order without any locking.
    """

    def __init__(
        self,
        subscribers: Optional[List[Callable[[LogEntry], Any]]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._entries: List[LogEntry] = []
        self._seq = itertools.count(1)
        self._subscribers: List[Callable[[LogEntry], Any]] = list(subscribers or [])
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def subscribe(self, callback: Callable[[LogEntry], Any]) -> None:
        self._subscribers.append(callback)

    def add(self, node_id: str, message: str, type: LogType = "info") -> LogEntry:
        entry = LogEntry(
            seq=next(self._seq),
            node_id=node_id,
            message=message,
            type=type,
            timestamp=self._clock(),
        )
        self._entries.append(entry)
        self._mirror(entry)
        self._publish(entry)
        return entry

    def info(self, node_id: str, message: str) -> LogEntry:
        return self.add(node_id, message, "info")

    def success(self, node_id: str, message: str) -> LogEntry:
        return self.add(node_id, message, "success")

    def error(self, node_id: str, message: str) -> LogEntry:
        return self.add(node_id, message, "error")

    def clear(self) -> None:
        """Drops all entries. Sequence numbers keep increasing across clears."""
        self._entries.clear()

    @property
    def entries(self) -> List[LogEntry]:
        return list(self._entries)

    def for_node(self, node_id: str) -> List[LogEntry]:
        return [e for e in self._entries if e.node_id == node_id]

    def to_list(self) -> List[LogEntryDict]:
        return [e.to_dict() for e in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(list(self._entries))

    # ------------------------------------------------------------------
    # Engine-facing helpers
    # ------------------------------------------------------------------

    def log_node_start(self, node_id: str, label: str, input_count: int) -> LogEntry:
        return self.info(node_id, f"Executing {label} ({input_count} input item(s))")

    def log_node_complete(self, node_id: str, label: str, outputs: List[List[Any]]) -> LogEntry:
        counts = ", ".join(str(len(branch)) for branch in outputs)
        summary = _summarize(outputs)
        return self.success(
            node_id, f"{label} executed successfully [{counts}]: {summary}"
        )

    def log_node_failed(self, node_id: str, label: str, error: str) -> LogEntry:
        return self.error(node_id, f"Error executing {label}: {error}")

    def log_node_skipped(self, node_id: str, label: str, reason: str) -> LogEntry:
        return self.info(node_id, f"Skipped {label}: {reason}")

    def log_workflow_failed(self, error: str) -> LogEntry:
        return self.error(SYSTEM_NODE_ID, error)

    def _mirror(self, entry: LogEntry) -> None:
        level = logging.ERROR if entry.type == "error" else logging.INFO
        logger.log(level, f"[node {entry.node_id}] {entry.message}")

    def _publish(self, entry: LogEntry) -> None:
        for callback in self._subscribers:
            try:
                callback(entry)
            except Exception as e:
                logger.error(f"Execution log subscriber failed: {e}")


def _summarize(outputs: List[List[Any]]) -> str:
    """Compact JSON preview of the first output item of each branch."""
    preview = []
    for branch in outputs:
        if not branch:
            preview.append(None)
            continue
        first = branch[0]
        preview.append(getattr(first, "json_data", first))
    try:
        text = json.dumps(preview, default=str)
    except (TypeError, ValueError):
        text = str(preview)
    if len(text) > MAX_SUMMARY_LENGTH:
        text = text[: MAX_SUMMARY_LENGTH - 3] + "..."
    return text
