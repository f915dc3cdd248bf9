"""
Logging and Error Handling System

This module provides centralized logging configuration and per-item error
tracking for offline sync runs.
"""

import logging
import logging.handlers
import os
import sys
from datetime import datetime
from collections import Counter
from typing import Any, Dict, List, Optional, Union
import traceback
from pathlib import Path


APP_NAME = "offline_sync"


class OfflineSyncLogger:
    """
    Centralized logging system for the offline sync engine.

    Configures the package logger with a rotating log file, a console stream
    and a separate error log. Modules log through ``logging.getLogger(__name__)``
    and propagate into it.
    """

    def __init__(self, log_dir: str = "logs", app_name: str = APP_NAME, console: bool = True):
        """
        Initialize the logging system.

        Args:
            log_dir: Directory to store log files
            app_name: Root logger name (the package name)
            console: Also log INFO and above to stderr
        """
        self.log_dir = Path(log_dir)
        self.app_name = app_name
        self.console = console
        self.loggers: Dict[str, logging.Logger] = {}

        self.log_dir.mkdir(parents=True, exist_ok=True)

    def setup_logger(self, level: int = logging.INFO) -> logging.Logger:
        """
        Set up the main logger with file and console handlers.

        Args:
            level: Logging level (default: INFO)

        Returns:
            Configured logger instance
        """
        logger = logging.getLogger(self.app_name)
        logger.setLevel(min(level, logging.DEBUG))

        # Prevent duplicate handlers
        if logger.handlers:
            self.loggers['main'] = logger
            return logger

        detailed_formatter = logging.Formatter(
            '%(asctime)s | %(name)s | %(levelname)s | %(funcName)s:%(lineno)d | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        console_formatter = logging.Formatter(
            '%(asctime)s | %(levelname)s | %(message)s',
            datefmt='%H:%M:%S'
        )

        log_file = self.log_dir / f"{self.app_name}.log"
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10*1024*1024,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(detailed_formatter)
        logger.addHandler(file_handler)

        if self.console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(level)
            console_handler.setFormatter(console_formatter)
            logger.addHandler(console_handler)

        error_file = self.log_dir / f"{self.app_name}_errors.log"
        error_handler = logging.handlers.RotatingFileHandler(
            error_file,
            maxBytes=5*1024*1024,  # 5MB
            backupCount=3,
            encoding='utf-8'
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(detailed_formatter)
        logger.addHandler(error_handler)

        self.loggers['main'] = logger
        return logger

    def get_logger(self, name: str) -> logging.Logger:
        full_name = f"{self.app_name}.{name}"

        if full_name not in self.loggers:
            self.loggers[full_name] = logging.getLogger(full_name)

        return self.loggers[full_name]

    def close(self):
        """Detach and close every handler installed by setup_logger."""
        logger = logging.getLogger(self.app_name)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

    def log_system_info(self):
        """Log system information for debugging."""
        logger = self.get_logger('system')

        logger.debug("=== Offline Sync Started ===")
        logger.debug(f"Python version: {sys.version}")
        logger.debug(f"Platform: {sys.platform}")
        logger.debug(f"Working directory: {os.getcwd()}")
        logger.debug(f"Log directory: {self.log_dir.absolute()}")


class ErrorTracker:
    """
    Records per-item failures of a sync run.

    The sync engine never lets these interrupt a batch; they are kept here for
    diagnostics and for the CLI's error report.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.errors: List[Dict[str, Any]] = []
        self.warnings: List[Dict[str, Any]] = []

    @staticmethod
    def _record_id(prefix: str, seq: int) -> str:
        return f"{prefix}_{datetime.now().strftime('%Y%m%d_%H%M%S')}_{seq:03d}"

    @staticmethod
    def _describe(record_id: str, message: str, context: Optional[str], url: Optional[str]) -> str:
        parts = [f"[{record_id}] {message}"]
        if context:
            parts.append(f"(Context: {context})")
        if url:
            parts.append(f"(URL: {url})")
        return " ".join(parts)

    def log_error(self,
                  error: Exception,
                  context: str = None,
                  url: str = None,
                  additional_info: Dict[str, Any] = None) -> str:
        """
        Record and log a per-item error.

        Args:
            error: The exception that was caught
            context: Pipeline stage ("fetch", "write", ...)
            url: URL being processed
            additional_info: Extra details kept with the record

        Returns:
            Error ID for tracking
        """
        error_id = self._record_id("ERR", len(self.errors))
        self.errors.append({
            'id': error_id,
            'timestamp': datetime.now(),
            'type': type(error).__name__,
            'message': str(error),
            'context': context,
            'url': url,
            'traceback': ''.join(traceback.format_exception(type(error), error, error.__traceback__)),
            'additional_info': additional_info or {},
        })

        self.logger.error(self._describe(error_id, f"{type(error).__name__}: {error}", context, url))
        self.logger.debug(f"[{error_id}] Full traceback:\n{self.errors[-1]['traceback']}")
        return error_id

    def log_warning(self, message: str, context: str = None, url: str = None) -> str:
        warning_id = self._record_id("WARN", len(self.warnings))
        self.warnings.append({
            'id': warning_id,
            'timestamp': datetime.now(),
            'message': message,
            'context': context,
            'url': url,
        })
        self.logger.warning(self._describe(warning_id, message, context, url))
        return warning_id

    def failed_urls(self) -> List[str]:
        return [e['url'] for e in self.errors if e['url']]

    def get_error_summary(self) -> Dict[str, Any]:
        return {
            'total_errors': len(self.errors),
            'total_warnings': len(self.warnings),
            'error_types': dict(Counter(e['type'] for e in self.errors)),
            'recent_errors': self.errors[-5:],
            'recent_warnings': self.warnings[-5:],
        }

    def save_error_report(self, output_path: Union[str, Path]):
        """
        Write the recorded failures as a plain-text report.

        Failed URLs are listed first so a host can re-queue them; details
        (including tracebacks) follow.

        Args:
            output_path: Path where the report should be saved
        """
        lines = [
            "OFFLINE SYNC ERROR REPORT",
            "=" * 50,
            f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
            f"Failed URLs: {len(self.failed_urls())}",
            f"Warnings: {len(self.warnings)}",
            "",
        ]
        lines.extend(f"  {url}" for url in self.failed_urls())

        for section, records in (("ERRORS", self.errors), ("WARNINGS", self.warnings)):
            if not records:
                continue
            lines += ["", f"{section}:", "-" * 30]
            for rec in records:
                lines.append(f"[{rec['id']}] {rec['timestamp']:%Y-%m-%d %H:%M:%S}")
                if 'type' in rec:
                    lines.append(f"Type: {rec['type']}")
                lines.append(f"Message: {rec['message']}")
                lines += [f"{label}: {rec[key]}" for label, key in (("Context", 'context'), ("URL", 'url'))
                          if rec[key]]
                if rec.get('traceback'):
                    lines.append(rec['traceback'].rstrip())
                lines.append("")

        Path(output_path).write_text("\n".join(lines) + "\n", encoding='utf-8')
        self.logger.info(f"Error report saved to: {output_path}")


# Global logger instance
_logger_instance: Optional[OfflineSyncLogger] = None


def get_logger(name: str = None) -> logging.Logger:
    """
    Get a logger under the package hierarchy.

    Args:
        name: Name of the module/component (optional)

    Returns:
        Logger instance
    """
    if _logger_instance is not None:
        return _logger_instance.get_logger(name or 'main')
    return logging.getLogger(f"{APP_NAME}.{name}" if name else APP_NAME)


def initialize_logging(log_dir: str = "logs", level: Union[int, str] = logging.INFO,
                       console: bool = True) -> OfflineSyncLogger:
    """
    Initialize the global logging system.

    Args:
        log_dir: Directory for log files
        level: Logging level (number or name)
        console: Also log to stderr
    """
    global _logger_instance
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    if _logger_instance is not None:
        _logger_instance.close()
    _logger_instance = OfflineSyncLogger(log_dir, console=console)
    _logger_instance.setup_logger(level)
    _logger_instance.log_system_info()
    return _logger_instance


def shutdown_logging():
    """Close the handlers installed by initialize_logging."""
    global _logger_instance
    if _logger_instance is not None:
        _logger_instance.close()
        _logger_instance = None


def create_error_tracker(logger_name: str = None) -> ErrorTracker:
    return ErrorTracker(get_logger(logger_name))
