# Copyright [2025] [ecki]
# SPDX-License-Identifier: Apache-2.0

# -*- coding: utf-8 -*-
"""
Shared Error Handling Utility
Error taxonomy of the position bookmark manager plus helpers that log,
optionally report and recover from those errors.

None of the errors defined here is fatal: the manager stays usable after
any of them.
"""
from enum import Enum


class ErrorSeverity(Enum):
    """How loudly an error is reported"""
    INFO = 1
    WARNING = 2
    ERROR = 3
    CRITICAL = 4


class PositionError(Exception):
    """Base exception for position manager errors"""

    severity = ErrorSeverity.ERROR
    title = "Error"

    def __init__(self, message, details=None, severity=None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if severity is not None:
            self.severity = severity

    def __str__(self):
        return self.message


class NoImageError(PositionError):
    """Raised when no image viewport is active"""
    severity = ErrorSeverity.WARNING
    title = "No Image"

    def __init__(self, message="No image open", details=None):
        super().__init__(message, details)


class OutOfBoundsError(PositionError):
    """Raised when X/Y lie outside the active image"""
    title = "Out of Bounds"

    def __init__(self, x, y, width, height):
        super().__init__(
            f"Coordinates out of bounds! X={x} (1-{width}), Y={y} (1-{height})",
            details={'x': x, 'y': y, 'width': width, 'height': height}
        )


class InvalidFormatError(PositionError):
    """Raised when a row or line cannot be parsed as a position"""
    severity = ErrorSeverity.WARNING
    title = "Invalid Format"


class DuplicateCoordinateError(PositionError):
    """Raised when a coordinate already exists in the list"""
    severity = ErrorSeverity.WARNING
    title = "Duplicate Position"

    def __init__(self, record, row):
        super().__init__(
            f"Position {record.coords_text()} already exists at row {row + 1}",
            details={'row': row}
        )
        self.record = record
        self.row = row


class IOFailureError(PositionError):
    """Raised when a positions file cannot be read or written"""
    severity = ErrorSeverity.CRITICAL
    title = "File Error"

    def __init__(self, operation, path, reason):
        super().__init__(
            f"Error during {operation} of {path}: {reason}",
            details={'operation': operation, 'path': str(path)}
        )
        self.path = path


def show_error_dialog(error, parent=None):
    """Show a message box for an error if a Qt application is running"""
    from PyQt6.QtWidgets import QApplication, QMessageBox

    if QApplication.instance() is None:
        return False

    severity = getattr(error, 'severity', ErrorSeverity.ERROR)
    title = getattr(error, 'title', "Error")
    if severity in (ErrorSeverity.INFO,):
        QMessageBox.information(parent, title, str(error))
    elif severity == ErrorSeverity.WARNING:
        QMessageBox.warning(parent, title, str(error))
    else:
        QMessageBox.critical(parent, title, str(error))
    return True


def _log_error(logger, operation, error):
    if logger is None:
        return
    message = f"{operation} failed: {error}" if operation else str(error)
    severity = getattr(error, 'severity', ErrorSeverity.ERROR)
    if severity == ErrorSeverity.INFO:
        logger.info(message)
    elif severity == ErrorSeverity.WARNING:
        logger.warning(message)
    elif severity == ErrorSeverity.CRITICAL:
        logger.critical(message)
    else:
        logger.error(message)


class ErrorHandler:
    """
    Context manager that recovers from PositionError.

    The error is logged, optionally shown in a dialog, suppressed and kept
    in ``self.error``. Any other exception propagates.

    Usage:
        with ErrorHandler(logger, "loading positions") as handler:
            ...
        if handler.error:
            ...
    """

    def __init__(self, logger, operation, show_dialog=False, parent=None):
        self.logger = logger
        self.operation = operation
        self.show_dialog = show_dialog
        self.parent = parent
        self.error = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None or not issubclass(exc_type, PositionError):
            return False

        self.error = exc_val
        _log_error(self.logger, self.operation, exc_val)
        if self.show_dialog:
            show_error_dialog(exc_val, self.parent)
        return True


def handle_errors(show_dialog=False, default=None, logger_attr='logger'):
    """
    Decorator recovering from PositionError raised by a method.

    The logger is looked up on the bound instance (``self.logger``) when
    present. Returns ``default`` when an error was handled.
    """

    def decorator(func):
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except PositionError as e:
                logger = getattr(args[0], logger_attr, None) if args else None
                _log_error(logger, func.__name__, e)
                if show_dialog:
                    show_error_dialog(e)
                return default

        wrapper.__name__ = func.__name__
        wrapper.__doc__ = func.__doc__
        return wrapper

    return decorator


def safe_file_operation(func, filepath, operation, logger=None):
    """
    Run a file operation, converting OSError into IOFailureError.

    Args:
        func: Callable doing the actual work
        filepath: File being accessed (for messages)
        operation: Short description ("read", "write", ...)
        logger: Optional ToolLogger for the file operation log
    """
    try:
        result = func()
    except (OSError, UnicodeError) as e:
        if logger:
            logger.log_file_operation(operation, filepath, success=False, error=e)
        raise IOFailureError(operation, filepath, e) from e

    if logger:
        logger.log_file_operation(operation, filepath, success=True)
    return result
