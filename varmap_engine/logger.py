"""
Structured JSON Logging for the variable map engine

Provides JSON-structured file logging with run correlation and a
human-readable console stream, used by the CLI and long-running callers.
"""

import json
import logging
import sys
import uuid
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


class JSONFormatter(logging.Formatter):
    """Custom formatter that outputs structured JSON logs"""

    def __init__(self, run_id: str):
        super().__init__()
        self.run_id = run_id

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON"""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "run_id": self.run_id,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            exc_info = (
                record.exc_info if isinstance(record.exc_info, tuple) else sys.exc_info()
            )
            if exc_info and isinstance(exc_info, tuple):
                log_data["exception"] = {
                    "type": exc_info[0].__name__ if exc_info[0] else None,
                    "message": str(exc_info[1]) if exc_info[1] else None,
                    "traceback": self.formatException(exc_info),
                }

        # Extra structured data attached by ProductionLogger.log_event
        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class ProductionLogger:
    """
    Logger with structured JSON output and run correlation.

    Features:
    - JSON lines to a rotating file under ``log_dir`` (optional)
    - Human-readable console output
    - Engine module loggers (``varmap_engine.*``) routed to the same handlers
    - Context-aware logging with custom fields
    """

    def __init__(
        self,
        run_id: Optional[str] = None,
        log_level: str = "INFO",
        log_dir: Optional[Path] = None,
        json_logs: bool = True,
    ):
        """
        Args:
            run_id: Unique identifier for this run. Generated if not provided.
            log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for the JSON log file
            json_logs: Write JSON logs to ``log_dir``; console only when False
        """
        self.run_id = run_id or self._generate_run_id()
        self.log_level = getattr(logging, log_level.upper())
        self.log_dir = Path(log_dir) if log_dir is not None else Path("logs")
        self.json_logs = json_logs
        self._setup_logging()

    def _generate_run_id(self) -> str:
        """Generate unique run ID with timestamp and UUID"""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        unique_suffix = str(uuid.uuid4())[:8]
        return f"{timestamp}-{unique_suffix}"

    def _setup_logging(self) -> None:
        """Setup console and optional JSON file logging"""
        self.logger = logging.getLogger(f"varmap.{self.run_id}")
        self.logger.setLevel(self.log_level)

        # Prevent duplicate handlers if logger already exists
        if self.logger.handlers:
            return

        handlers = []
        if self.json_logs:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            json_handler = RotatingFileHandler(
                self.log_dir / "varmap.log",
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=10,
            )
            json_handler.setFormatter(JSONFormatter(self.run_id))
            json_handler.setLevel(self.log_level)
            handlers.append(json_handler)

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        console_handler.setLevel(self.log_level)
        handlers.append(console_handler)

        # Engine records go to the most recently created logger only
        engine_logger = logging.getLogger("varmap_engine")
        for handler in engine_logger.handlers[:]:
            if getattr(handler, "varmap_run_id", None) is not None:
                engine_logger.removeHandler(handler)
        engine_logger.setLevel(self.log_level)
        for handler in handlers:
            handler.varmap_run_id = self.run_id
            self.logger.addHandler(handler)
            engine_logger.addHandler(handler)
        self._handlers = handlers

        self.logger.propagate = False

    def log_event(self, level: str, message: str, **kwargs) -> None:
        """
        Log structured event with additional context

        Args:
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            message: Human-readable log message
            **kwargs: Additional structured data to include in JSON
        """
        record = self.logger.makeRecord(
            name=self.logger.name,
            level=getattr(logging, level.upper()),
            fn="",
            lno=0,
            msg=message,
            args=(),
            exc_info=None,
        )
        record.extra_data = kwargs
        self.logger.handle(record)

    def debug(self, message: str, **kwargs) -> None:
        self.log_event("DEBUG", message, **kwargs)

    def info(self, message: str, **kwargs) -> None:
        self.log_event("INFO", message, **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self.log_event("WARNING", message, **kwargs)

    def error(self, message: str, **kwargs) -> None:
        self.log_event("ERROR", message, **kwargs)

    def get_run_id(self) -> str:
        return self.run_id

    def close(self) -> None:
        """Close all handlers and detach them from the engine logger"""
        engine_logger = logging.getLogger("varmap_engine")
        for handler in getattr(self, "_handlers", []):
            engine_logger.removeHandler(handler)
        for handler in self.logger.handlers[:]:
            handler.close()
            self.logger.removeHandler(handler)


def get_logger(
    run_id: Optional[str] = None,
    log_level: str = "INFO",
    log_dir: Optional[Path] = None,
    json_logs: bool = True,
) -> ProductionLogger:
    """
    Factory function to get a configured production logger

    Args:
        run_id: Optional run ID. Generated if not provided.
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for the JSON log file
        json_logs: Write JSON logs to ``log_dir``

    Returns:
        Configured ProductionLogger instance
    """
    return ProductionLogger(run_id=run_id, log_level=log_level, log_dir=log_dir, json_logs=json_logs)
