import logging
from typing import Any, Dict

from rich.logging import RichHandler


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(name)s | %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
    # httpx logs every request at INFO; the drain loop would flood the console
    logging.getLogger("httpx").setLevel(logging.WARNING)


def event(msg: str, extra: Dict[str, Any] | None = None, level: int = logging.INFO, logger: str = "ticker") -> None:
    """Log a structured event line; `extra` keys are appended as key=value pairs."""
    fields = extra or {}
    suffix = " ".join(f"{k}={v}" for k, v in fields.items())
    logging.getLogger(logger).log(level, "%s %s" % (msg, suffix) if suffix else msg, extra={"event": fields})
