"""
Logging setup for the pricing API and CLI.

Text output is for local runs. JSON output (``logging.format: json``) tags
every line with the service name and version, and carries the structured
fields the pricing code attaches through ``extra=`` (currency counts, limit
groups, resolved countries) as top-level keys.
"""

import logging
import logging.handlers
import sys
from pathlib import Path

from pythonjsonlogger.json import JsonFormatter

from bodyverse import __version__

SERVICE_NAME = "bodyverse-pricing"

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
TEXT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

JSON_FORMAT = "%(levelname)s %(name)s %(module)s %(funcName)s %(lineno)s %(message)s"
JSON_RENAMES = {
    "levelname": "level",
    "name": "logger",
    "funcName": "function",
    "lineno": "line",
}

# HTTP client libraries log every request at DEBUG/INFO
QUIET_LOGGERS = ("urllib3", "httpx", "httpcore")


def build_formatter(log_format: str = "text") -> logging.Formatter:
    """Return the formatter for ``text`` or ``json`` output."""
    if log_format.lower() == "json":
        return JsonFormatter(
            JSON_FORMAT,
            rename_fields=JSON_RENAMES,
            static_fields={"service": SERVICE_NAME, "version": __version__},
            timestamp=True,
        )
    return logging.Formatter(TEXT_FORMAT, datefmt=TEXT_DATE_FORMAT)


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    log_file: Path | None = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> None:
    """
    Configure root logging for the API or CLI process.

    Replaces existing root handlers, so calling it again (CLI after app
    import, tests) reconfigures rather than duplicates output.

    Args:
        level: Log level name; unknown names fall back to INFO.
        log_format: "text" for human-readable, "json" for structured.
        log_file: Optional file path; rotated at ``max_bytes``.
        max_bytes: Max log file size before rotation.
        backup_count: Number of rotated files to keep.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers.clear()

    formatter = build_formatter(log_format)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info(
        f"Logging configured: level={level}, format={log_format}",
        extra={"log_file": str(log_file) if log_file else None},
    )
