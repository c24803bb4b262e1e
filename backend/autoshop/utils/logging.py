"""structlog configuration and the loggers used by the workflows."""

import logging
import sys
from typing import Optional

import structlog

# Libraries that log every statement or request at INFO
_QUIET_LOGGERS = ("aiosqlite", "sqlalchemy.engine", "httpx", "httpcore", "passlib")


def _add_service_name(name: str):
    def processor(_logger, _method, event_dict):
        event_dict.setdefault("service", name)
        return event_dict

    return processor


def setup_logging(debug: bool = False, service: str = "autoshop") -> None:
    """Console output while developing, one JSON object per line otherwise."""
    level = logging.DEBUG if debug else logging.INFO
    renderer = structlog.dev.ConsoleRenderer() if debug else structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _add_service_name(service),
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


class WorkflowLogger:
    """Logger bound to one appointment or project."""

    def __init__(self, entity_type: str, entity_id: Optional[int] = None):
        self.logger = get_logger(f"workflow.{entity_type}").bind(
            entity_type=entity_type,
            entity_id=entity_id,
        )

    def transition(self, from_status: str, to_status: str, action: str) -> None:
        """Record a status change that has been written."""
        self.logger.info(
            "status_transition",
            from_status=from_status,
            to_status=to_status,
            action=action,
        )
