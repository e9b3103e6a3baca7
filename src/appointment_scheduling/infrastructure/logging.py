"""Structured JSON logging for the appointment scheduling service.

Every record is written as one JSON object per line and tagged with the
correlation ID of the HTTP request that produced it.
"""

import json
import logging
import logging.handlers
import os
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional


DEFAULT_SERVICE_NAME = "appointment-scheduling"
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB

# Libraries that only log at WARNING and above
NOISY_LOGGERS = (
    'sqlalchemy.engine',
    'sqlalchemy.pool',
    'sqlalchemy.orm',
    'asyncpg',
    'uvicorn.access',
    'httpx',
)

correlation_id_context: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)

# Attributes every LogRecord has; anything else arrived through extra=
_STANDARD_RECORD_FIELDS = frozenset(
    vars(logging.LogRecord('', logging.INFO, '', 0, '', (), None))
) | {'message', 'asctime', 'correlation_id'}


class CorrelationIDFilter(logging.Filter):
    """Tag records with the correlation ID of the current request."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_context.get() or "unknown"
        return True


class JSONFormatter(logging.Formatter):
    """Render log records as single-line JSON documents."""

    def __init__(self, service_name: str = DEFAULT_SERVICE_NAME):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, 'correlation_id', 'unknown'),
            "source": self._source(record),
        }

        if record.exc_info:
            entry["exception"] = self._exception(record)

        context = {
            key: value for key, value in vars(record).items()
            if key not in _STANDARD_RECORD_FIELDS
        }
        if context:
            entry["context"] = context

        return json.dumps(entry, default=str, ensure_ascii=False)

    @staticmethod
    def _source(record: logging.LogRecord) -> Dict[str, Any]:
        source: Dict[str, Any] = {"module": record.module, "line": record.lineno}
        if record.funcName and record.funcName != '<module>':
            source["function"] = record.funcName
        return source

    def _exception(self, record: logging.LogRecord) -> Dict[str, Any]:
        exc_type, exc_value, _ = record.exc_info
        return {
            "type": exc_type.__name__ if exc_type else None,
            "message": str(exc_value) if exc_value else None,
            "traceback": self.formatException(record.exc_info),
        }


class LoggingConfig:
    """Root logger setup: JSON lines to stdout and to rotating log files."""

    def __init__(self,
                 log_level: str = "INFO",
                 service_name: str = DEFAULT_SERVICE_NAME,
                 log_dir: Optional[str] = None,
                 max_file_size: int = DEFAULT_MAX_FILE_SIZE,
                 backup_count: int = 5,
                 enable_console: bool = True,
                 enable_file: bool = True):
        """
        Args:
            log_level: Level name for the root logger
            service_name: Written into every entry and used for the log file names
            log_dir: Directory for log files, logs/ in the project root by default
            max_file_size: Size in bytes at which a log file rotates
            backup_count: Rotated files to keep
            enable_console: Write to stdout
            enable_file: Write the main log and the errors-only log
        """
        self.log_level = getattr(logging, log_level.upper())
        self.service_name = service_name
        self.log_dir = Path(log_dir) if log_dir else Path(__file__).resolve().parents[3] / "logs"
        self.max_file_size = max_file_size
        self.backup_count = backup_count
        self.enable_console = enable_console
        self.enable_file = enable_file

    @classmethod
    def from_env(cls, log_level: Optional[str] = None) -> "LoggingConfig":
        """Build the configuration from the LOG_* environment variables."""
        return cls(
            log_level=log_level or os.getenv('LOG_LEVEL', 'INFO'),
            service_name=os.getenv('SERVICE_NAME', DEFAULT_SERVICE_NAME),
            log_dir=os.getenv('LOG_DIR'),
            max_file_size=int(os.getenv('LOG_MAX_FILE_SIZE', str(DEFAULT_MAX_FILE_SIZE))),
            backup_count=int(os.getenv('LOG_BACKUP_COUNT', '5')),
            enable_console=_env_flag('LOG_ENABLE_CONSOLE'),
            enable_file=_env_flag('LOG_ENABLE_FILE'),
        )

    def handlers(self) -> List[logging.Handler]:
        """Handlers for the enabled outputs, sharing one filter and formatter."""
        outputs = []
        if self.enable_console:
            outputs.append((logging.StreamHandler(sys.stdout), self.log_level))
        if self.enable_file:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            outputs.append((self._rotating_file(f"{self.service_name}.log"), self.log_level))
            outputs.append((self._rotating_file(f"{self.service_name}-errors.log"), logging.ERROR))

        correlation_filter = CorrelationIDFilter()
        formatter = JSONFormatter(service_name=self.service_name)
        for handler, level in outputs:
            handler.setLevel(level)
            handler.addFilter(correlation_filter)
            handler.setFormatter(formatter)

        return [handler for handler, _ in outputs]

    def setup_logging(self) -> None:
        """Replace the root logger's handlers with the configured ones."""
        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

        root_logger.setLevel(self.log_level)
        for handler in self.handlers():
            root_logger.addHandler(handler)

        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    def _rotating_file(self, filename: str) -> logging.Handler:
        return logging.handlers.RotatingFileHandler(
            filename=self.log_dir / filename,
            maxBytes=self.max_file_size,
            backupCount=self.backup_count,
            encoding='utf-8'
        )


def _env_flag(name: str, default: bool = True) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes')


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return str(uuid.uuid4())


def set_correlation_id(correlation_id: str) -> None:
    """Set correlation ID for the current context."""
    correlation_id_context.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    """Get current correlation ID."""
    return correlation_id_context.get()


def clear_correlation_id() -> None:
    """Clear correlation ID from current context."""
    correlation_id_context.set(None)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the specified name."""
    return logging.getLogger(name)


def setup_logging_from_env(log_level: Optional[str] = None) -> LoggingConfig:
    """Configure the root logger from the environment.

    An explicit log_level (from application settings) wins over LOG_LEVEL.
    """
    config = LoggingConfig.from_env(log_level)
    config.setup_logging()
    return config


def log_with_extra(logger: logging.Logger, level: int, message: str, **extra) -> None:
    """Log message with the keyword arguments as structured context."""
    logger.log(level, message, extra=extra)


def _level_for_status(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


def log_request(logger: logging.Logger, method: str, path: str, **extra) -> None:
    """Log an incoming HTTP request."""
    log_with_extra(
        logger,
        logging.INFO,
        f"{method} {path}",
        request_method=method,
        request_path=path,
        **extra
    )


def log_response(logger: logging.Logger, method: str, path: str, status_code: int, duration_ms: float, **extra) -> None:
    """Log a finished HTTP request; client errors warn, server errors are errors."""
    log_with_extra(
        logger,
        _level_for_status(status_code),
        f"{method} {path} -> {status_code} ({duration_ms:.2f}ms)",
        request_method=method,
        request_path=path,
        response_status=status_code,
        duration_ms=round(duration_ms, 2),
        **extra
    )


def log_database_operation(logger: logging.Logger, operation: str, table: str, **extra) -> None:
    """Log a statement against the appointment store at DEBUG."""
    log_with_extra(
        logger,
        logging.DEBUG,
        f"{operation} {table}",
        db_operation=operation,
        db_table=table,
        **extra
    )


def log_admission_decision(logger: logging.Logger, accepted: bool, **extra) -> None:
    """Log the outcome of a booking admission."""
    log_with_extra(
        logger,
        logging.INFO if accepted else logging.WARNING,
        "Booking admitted" if accepted else "Booking rejected",
        admission_accepted=accepted,
        **extra
    )


def log_business_rule_violation(logger: logging.Logger, rule: str, details: str, **extra) -> None:
    """Log a request refused by a scheduling rule."""
    log_with_extra(
        logger,
        logging.WARNING,
        f"Rule {rule} refused request: {details}",
        business_rule=rule,
        violation_details=details,
        **extra
    )
