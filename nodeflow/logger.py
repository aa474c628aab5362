import logging
import re

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

# Theme keyed by the kinds of messages the engine emits
custom_theme = Theme(
    {
        "info": "dim cyan",
        "warning": "magenta",
        "error": "bold red",
        "node": "bold blue",
        "engine": "bold green",
    }
)

console = Console(theme=custom_theme)


class CompactFilter(logging.Filter):
    """Shortens UUIDs and long floats so engine logs stay dense."""

    UUID_PATTERN = re.compile(
        r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.I
    )
    FLOAT_PATTERN = re.compile(r"(\d+\.\d{4,})")

    def filter(self, record):
        if not isinstance(record.msg, str):
            return True

        msg = record.msg

        def shorten_uuid(match):
            val = match.group(0)
            return f"{val[:4]}.."

        def shorten_float(match):
            val = float(match.group(0))
            return f"{val:.3f}"

        msg = self.UUID_PATTERN.sub(shorten_uuid, msg)
        msg = self.FLOAT_PATTERN.sub(shorten_float, msg)

        record.msg = msg
        return True


def setup_global_logger(log_level: str = "INFO") -> logging.Logger:
    """
    Configures the package logger with a Rich console handler.
    """
    logger = logging.getLogger("nodeflow")

    level = getattr(logging, log_level.upper(), logging.INFO)
    logger.setLevel(level)

    # Avoid duplicate handlers when called more than once
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        rich_handler = RichHandler(
            console=console,
            rich_tracebacks=True,
            markup=False,
            show_path=False,
            show_time=True,
            omit_repeated_times=True,
            keywords=["workflow", "node", "engine", "trigger", "ERROR", "WARNING"],
        )
        formatter = logging.Formatter("%(message)s", datefmt="[%X]")
        rich_handler.setFormatter(formatter)
        rich_handler.addFilter(CompactFilter())
        logger.addHandler(rich_handler)

    return logger


# Module-level logger for simple imports
logger = logging.getLogger("nodeflow")
