import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional


class SafeStreamHandler(logging.StreamHandler):
    """
    Stream handler that gracefully handles closed streams during shutdown.
    """

    def emit(self, record):
        try:
            super().emit(record)
        except (ValueError, OSError) as e:
            # Closed stderr during interpreter shutdown
            if "closed file" in str(e).lower() or "bad file descriptor" in str(e).lower():
                pass
            else:
                raise


class StructuredLogFormatter(logging.Formatter):
    """
    Formats log records as structured JSON with contextual fields.
    """

    CONTEXT_FIELDS = ("session_id", "request_id", "tool", "operation", "duration_ms")

    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in self.CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        elif record.exc_text:
            log_record["exception"] = record.exc_text
        return json.dumps(log_record, ensure_ascii=False)


PLAIN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def session_log_file(logs_dir: Path) -> Path:
    session_id = os.environ.get("MCP_SESSION_ID", datetime.now().strftime("%Y%m%d_%H%M%S"))
    return logs_dir / f"mcp_gitfs-{session_id}.log"


def configure_logging(
    log_level: str = "WARNING",
    structured: bool = False,
    log_file: Optional[Path] = None,
) -> None:
    """
    Centralized logging configuration for MCP GitFS Server.

    Everything goes to stderr; stdout carries the MCP protocol stream.
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    handler = SafeStreamHandler(sys.stderr)
    handler.setFormatter(StructuredLogFormatter() if structured else logging.Formatter(PLAIN_FORMAT))
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level.upper())

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(StructuredLogFormatter())
        root_logger.addHandler(file_handler)
        # File output is always verbose
        root_logger.setLevel(logging.DEBUG)
        handler.setLevel(log_level.upper())
        root_logger.info(f"📝 File logging enabled: {log_file}")

    logging.getLogger("asyncio").setLevel("WARNING")
    logging.getLogger("aiohttp").setLevel("WARNING")
    logging.getLogger("git").setLevel("WARNING")
    logging.getLogger("mcp").setLevel("WARNING")
