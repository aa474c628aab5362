from nodeflow.workflows.logger import ExecutionLog, LogEntry

__all__ = ["ExecutionLog", "LogEntry"]
