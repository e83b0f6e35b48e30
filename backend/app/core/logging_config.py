"""
Production-ready logging configuration
"""

import logging
import sys
import json
from datetime import datetime, timezone


# Record attributes lifted into the JSON payload when passed via ``extra=``
CONTEXT_FIELDS = (
    "user_id",
    "conversation_id",
    "provider",
    "topic",
    "source_ip",
    "request_id",
)


class StructuredFormatter(logging.Formatter):
    """JSON structured logging formatter for production"""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON"""

        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        # Add exception info if present
        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(level: str = "INFO") -> None:
    """Setup production logging configuration"""

    formatter = StructuredFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers = [console_handler]

    logging.getLogger("uvicorn.access").disabled = True  # Disable uvicorn access logs
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)  # Reduce SQL noise
