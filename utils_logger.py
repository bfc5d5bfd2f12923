# Copyright [2025] [ecki]
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-
"""
Shared Logging Utility
Provides consistent logging for the position bookmark tools.
"""
import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler
from datetime import datetime


class ColoredFormatter(logging.Formatter):
    """Formatter with ANSI colors for console output"""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
        'RESET': '\033[0m'
    }

    def format(self, record):
        """Format log record, coloring the level name on a terminal"""
        if sys.stdout.isatty():
            levelname = record.levelname
            if levelname in self.COLORS:
                record = logging.makeLogRecord(record.__dict__)
                record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"

        return super().format(record)


class ToolLogger:
    """
    Logger wrapper for the bookmark manager and its helpers.

    Features:
    - Optional rotating log file (10MB per file, 5 backups)
    - Colored console output
    - Helpers for operations, file access, navigation and user actions
    """

    def __init__(self, tool_name, log_dir="config/logs", log_level=logging.INFO,
                 log_to_file=True, log_to_console=True, max_bytes=10 * 1024 * 1024,
                 backup_count=5):
        """
        Initialize logger for a specific tool.

        Args:
            tool_name: Name of the tool (used for log file name)
            log_dir: Directory for log files
            log_level: Logging level, either an int or a level name
            log_to_file: Enable file logging
            log_to_console: Enable console logging
            max_bytes: Maximum size of log file before rotation
            backup_count: Number of backup files to keep
        """
        if isinstance(log_level, str):
            log_level = logging.getLevelName(log_level.upper())
            if not isinstance(log_level, int):
                log_level = logging.INFO

        self.tool_name = tool_name
        self.log_dir = Path(log_dir)
        self.log_level = log_level

        self.logger = logging.getLogger(tool_name)
        self.logger.setLevel(log_level)
        self.logger.propagate = False

        # Re-creating a tool logger must not stack handlers
        for handler in list(self.logger.handlers):
            handler.close()
        self.logger.handlers.clear()

        detailed_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s:%(lineno)d - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        simple_formatter = ColoredFormatter(
            '%(asctime)s - %(levelname)s - %(message)s',
            datefmt='%H:%M:%S'
        )

        if log_to_file:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            log_file = self.log_dir / f"{tool_name}.log"
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding='utf-8'
            )
            file_handler.setLevel(log_level)
            file_handler.setFormatter(detailed_formatter)
            self.logger.addHandler(file_handler)

        if log_to_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(log_level)
            console_handler.setFormatter(simple_formatter)
            self.logger.addHandler(console_handler)

        if not self.logger.handlers:
            self.logger.addHandler(logging.NullHandler())

        self.logger.debug(f"Logger initialized for {tool_name}")

    def debug(self, message, **kwargs):
        """Log debug message"""
        self.logger.debug(message, **kwargs)

    def info(self, message, **kwargs):
        """Log info message"""
        self.logger.info(message, **kwargs)

    def warning(self, message, **kwargs):
        """Log warning message"""
        self.logger.warning(message, **kwargs)

    def error(self, message, exc_info=False, **kwargs):
        """Log error message, optionally with traceback"""
        self.logger.error(message, exc_info=exc_info, **kwargs)

    def critical(self, message, exc_info=False, **kwargs):
        """Log critical message, optionally with traceback"""
        self.logger.critical(message, exc_info=exc_info, **kwargs)

    def exception(self, message, **kwargs):
        """
        Log exception with full traceback.
        Should be called from exception handler.
        """
        self.logger.exception(message, **kwargs)

    def log_operation_start(self, operation_name, **params):
        """Log the start of an operation with its parameters"""
        param_str = ", ".join(f"{k}={v}" for k, v in params.items())
        self.info(f"Starting operation: {operation_name}({param_str})")

    def log_operation_end(self, operation_name, success=True, duration=None, **results):
        """
        Log the end of an operation with results.

        Args:
            operation_name: Name of the operation
            success: Whether operation succeeded
            duration: Duration in seconds
            **results: Operation results
        """
        status = "SUCCESS" if success else "FAILED"
        result_str = ", ".join(f"{k}={v}" for k, v in results.items())

        if duration is not None:
            msg = f"Operation {operation_name} {status} in {duration:.2f}s"
        else:
            msg = f"Operation {operation_name} {status}"

        if result_str:
            msg += f" - {result_str}"

        if success:
            self.info(msg)
        else:
            self.error(msg)

    def log_file_operation(self, operation, filepath, success=True, error=None):
        """Log file reads and writes"""
        if success:
            self.info(f"File {operation}: {filepath}")
        else:
            self.error(f"File {operation} failed: {filepath} - {error}")

    def log_user_action(self, action, details=None):
        """Log user actions (button clicks, table edits, ...)"""
        if details:
            self.debug(f"User action: {action} - {details}")
        else:
            self.debug(f"User action: {action}")

    def log_navigation(self, outcome, x, y, z, t):
        """Log the outcome of a navigation request"""
        self.info(f"Navigation {outcome}: X={x}, Y={y}, Z={z}, T={t}")

    def create_session_log(self):
        """Create a session-specific log entry"""
        session_id = datetime.now().strftime("%Y%m%d_%H%M%S")
        self.info(f"=== New Session Started: {session_id} ===")
        return session_id

    def end_session_log(self, session_id=None):
        """End session log"""
        if session_id:
            self.info(f"=== Session Ended: {session_id} ===")
        else:
            self.info("=== Session Ended ===")


def get_logger(tool_name, **kwargs):
    """
    Convenience function to get a configured logger.

    Args:
        tool_name: Name of the tool
        **kwargs: Additional arguments for ToolLogger

    Returns:
        ToolLogger instance
    """
    return ToolLogger(tool_name, **kwargs)


class LoggedOperation:
    """
    Context manager for logging operations with timing.

    Usage:
        with LoggedOperation(logger, "load_positions", path=path):
            ...
    """

    def __init__(self, logger, operation_name, **params):
        self.logger = logger
        self.operation_name = operation_name
        self.params = params
        self.start_time = None
        self.success = False
        self.results = {}

    def __enter__(self):
        """Start operation logging"""
        self.start_time = datetime.now()
        self.logger.log_operation_start(self.operation_name, **self.params)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """End operation logging"""
        duration = (datetime.now() - self.start_time).total_seconds()

        if exc_type is None:
            self.success = True
            self.logger.log_operation_end(
                self.operation_name,
                success=True,
                duration=duration,
                **self.results
            )
        else:
            self.logger.log_operation_end(
                self.operation_name,
                success=False,
                duration=duration,
                error=str(exc_val)
            )

        # Don't suppress exception
        return False
