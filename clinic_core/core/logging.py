"""Structured logging configuration.

Lifecycle services log guard rejections on their module loggers and
write one audit line per successful write through ``audit_logger``.
Audit records carry the entity and actor as record attributes so the
structured formatter can emit them as separate fields.
"""

import logging
import sys
from typing import Any

from clinic_core.core.config import settings

# Record attributes copied into structured output when present
AUDIT_FIELDS = ("action", "actor_type", "actor_id", "entity_type", "entity_id", "from_status", "to_status")


class StructuredFormatter(logging.Formatter):
    """key=value formatter with audit fields lifted out of the message."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in AUDIT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return " ".join(f"{k}={v}" for k, v in log_data.items())


def setup_logging() -> None:
    """Configure engine logging.

    Development gets a plain human-readable line; every other
    environment gets ``StructuredFormatter`` output on stdout.
    """
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    if settings.is_dev:
        console_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
    else:
        console_handler.setFormatter(StructuredFormatter())
    root_logger.addHandler(console_handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


class AuditLogger:
    """Writes lifecycle audit events to the ``audit`` logger."""

    def __init__(self, name: str = "audit") -> None:
        self.logger = logging.getLogger(name)

    def log(
        self,
        action: str,
        actor_type: str,
        actor_id: str | None,
        entity_type: str,
        entity_id: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Log an audit event.

        ``from_status`` and ``to_status`` in ``metadata`` are also set as
        record attributes.
        """
        metadata = metadata or {}
        self.logger.info(
            f"AUDIT: action={action} actor={actor_type}:{actor_id or '-'} "
            f"entity={entity_type}:{entity_id} metadata={metadata}",
            extra={
                "action": action,
                "actor_type": actor_type,
                "actor_id": actor_id,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "from_status": metadata.get("from_status"),
                "to_status": metadata.get("to_status"),
            },
        )


audit_logger = AuditLogger()
