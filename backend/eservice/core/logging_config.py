"""
E-Service Portal - Logging
==========================

One "eservice" logger for the whole app. Development gets a short console
format; production writes one JSON object per line. Every line carries the
request id, user id and office id of the request being served, taken from
context variables set by the middleware and the auth dependency.

Usage:
    from eservice.core.logging_config import logger

    logger.info("[Offices] Created office")
    logger.log_workflow_event("request", request.id, "approve", staff.id, status="approved")
"""

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from eservice.core.config import settings


request_id_var: ContextVar[str] = ContextVar('request_id', default='')
user_id_var: ContextVar[str] = ContextVar('user_id', default='')
office_id_var: ContextVar[str] = ContextVar('office_id', default='')

CONTEXT_VARS = (
    ('request_id', request_id_var),
    ('user_id', user_id_var),
    ('office_id', office_id_var),
)

# Attributes every LogRecord has; anything else came in through `extra`
_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {'message', 'asctime'}

SLOW_REQUEST_MS = 1000
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def set_user_id(user_id: Any) -> None:
    user_id_var.set(str(user_id) if user_id else '')


def set_office_id(office_id: Any) -> None:
    office_id_var.set(str(office_id) if office_id else '')


def generate_request_id() -> str:
    return uuid.uuid4().hex[:8]


def mask_phone(phone_number: Optional[str]) -> str:
    """Keep the last four digits of a phone number for log lines"""
    if not phone_number:
        return '-'
    return f"***{phone_number[-4:]}"


def current_context() -> Dict[str, str]:
    return {name: var.get() for name, var in CONTEXT_VARS if var.get()}


class JSONFormatter(logging.Formatter):
    """Structured lines for log aggregation in production"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update(current_context())
        entry.update(
            (key, value) for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS and key not in entry and not key.startswith('_')
        )
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class ContextualFormatter(logging.Formatter):
    """Plain text with the request context filled in"""

    def format(self, record: logging.LogRecord) -> str:
        for name, var in CONTEXT_VARS:
            setattr(record, name, var.get() or '-')
        return super().format(record)


class PortalLogger(logging.Logger):
    """Logger with helpers for the events the portal reports on"""

    def log_request(self, method: str, path: str, status_code: int,
                    duration_ms: float, **kwargs) -> None:
        if status_code >= 500:
            level = logging.ERROR
        elif status_code >= 400 or duration_ms > SLOW_REQUEST_MS:
            level = logging.WARNING
        else:
            level = logging.INFO
        slow = " SLOW" if duration_ms > SLOW_REQUEST_MS else ""
        self.log(
            level,
            f"{method} {path} - {status_code} ({duration_ms:.2f}ms){slow}",
            extra={
                "event_type": "http_request",
                "http_method": method,
                "http_path": path,
                "http_status": status_code,
                "duration_ms": round(duration_ms, 2),
                **kwargs
            }
        )

    def log_auth_event(self, event: str, success: bool, phone_number: str = None,
                       reason: str = None, **kwargs) -> None:
        """Signup, login, password changes; the phone number is masked"""
        outcome = 'success' if success else 'failed'
        suffix = f" - {reason}" if reason else ""
        self.log(
            logging.INFO if success else logging.WARNING,
            f"Auth {event} {outcome} for {mask_phone(phone_number)}{suffix}",
            extra={
                "event_type": "auth",
                "auth_event": event,
                "auth_success": success,
                "failure_reason": reason,
                **kwargs
            }
        )

    def log_workflow_event(self, entity: str, entity_id: Any, action: str,
                           actor_id: Any, status: str = None, **kwargs) -> None:
        """Approval steps on requests, reports and appointments"""
        transition = f" -> {status}" if status else ""
        self.info(
            f"Workflow {entity} {entity_id}: {action} by {actor_id}{transition}",
            extra={
                "event_type": "workflow",
                "entity": entity,
                "workflow_action": action,
                "new_status": status,
                **kwargs
            }
        )

    def log_sms_event(self, action: str, phone_number: str, success: bool,
                      reason: str = None, **kwargs) -> None:
        suffix = f" - {reason}" if reason else ""
        self.log(
            logging.INFO if success else logging.WARNING,
            f"SMS {action} to {mask_phone(phone_number)}: {'sent' if success else 'failed'}{suffix}",
            extra={"event_type": "sms", "sms_action": action, "sms_success": success, **kwargs}
        )

    def log_error_with_context(self, error: Exception, context: str = None,
                               **kwargs) -> None:
        self.error(
            f"Error in {context}: {type(error).__name__}: {error}",
            exc_info=error,
            extra={"event_type": "error", "error_type": type(error).__name__, **kwargs}
        )


def _file_handler(formatter: logging.Formatter) -> Optional[logging.Handler]:
    if not settings.LOG_FILE:
        return None
    log_file = Path(settings.LOG_FILE)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(log_file, maxBytes=LOG_FILE_MAX_BYTES, backupCount=5, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    return handler


def setup_logging() -> PortalLogger:
    """Configure the "eservice" logger for the current environment"""
    logging.setLoggerClass(PortalLogger)
    logger = logging.getLogger("eservice")
    if not isinstance(logger, PortalLogger):
        logger.__class__ = PortalLogger
    logging.setLoggerClass(logging.Logger)

    logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    logger.handlers.clear()
    logger.propagate = False

    json_logs = settings.ENVIRONMENT == "production"
    if json_logs:
        console_formatter = file_formatter = JSONFormatter()
    else:
        console_formatter = ContextualFormatter("%(levelname)-8s | [%(request_id)s] %(message)s")
        file_formatter = ContextualFormatter(
            "%(asctime)s | %(levelname)-8s | [%(request_id)s] [%(user_id)s] [%(office_id)s] | "
            "%(module)s.%(funcName)s:%(lineno)d | %(message)s"
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    file_handler = _file_handler(file_formatter)
    if file_handler:
        logger.addHandler(file_handler)

    for noisy in ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine", "aiosqlite"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger.debug(f"Logging initialized (environment={settings.ENVIRONMENT}, json={json_logs})")
    return logger


logger: PortalLogger = setup_logging()
