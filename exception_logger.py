"""
Exception Logger for InterviewAssist

Provides centralized error logging for the question detection engine. Logs
recoverable failures (AI enhancement, response parsing, OCR) with
timestamps, module tags and stack traces, and keeps a running count that
health checks report.

Features:
- Thread-safe error logging
- Stack trace capture
- Module-specific error categorization
- Log file taken from INTERVIEWASSIST_ERROR_LOG when set
- Console fallback when no log file is configured

Author: Quinn Evans
"""

import os
import threading
import traceback
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional


class ExceptionLogger:
    """
    Centralized exception logging for the detection engine.

    Attributes:
        log_file (str): Path to the current log file, or None for console
        lock (threading.Lock): Guards file writes and counters
        error_counts (dict): Number of entries logged per module
    """

    def __init__(self, log_file_path: Optional[str] = None):
        """
        Initialize the exception logger.

        Args:
            log_file_path (str, optional): Error log file. Falls back to
                the INTERVIEWASSIST_ERROR_LOG environment variable.
        """
        self.log_file = None
        self.lock = threading.Lock()
        self.error_counts: Dict[str, int] = {}

        log_file_path = log_file_path or os.getenv("INTERVIEWASSIST_ERROR_LOG")
        if log_file_path:
            self.set_log_file(log_file_path)

    def set_log_file(self, log_file_path: str):
        """
        Set the log file path for error logging.

        Args:
            log_file_path (str): Full path to the error log file
        """
        self.log_file = log_file_path

        log_dir = os.path.dirname(log_file_path)
        if log_dir:
            Path(log_dir).mkdir(parents=True, exist_ok=True)

    def log_exception(self, exception: Exception, module: str = "unknown",
                      context: Optional[str] = None):
        """
        Log an exception with full details.

        Args:
            exception (Exception): The exception that occurred
            module (str): Name of the module where exception occurred
            context (str, optional): Additional context information
        """
        self._count(module)

        if not self.log_file:
            print(f"[{module}] {type(exception).__name__}: {exception}")
            return

        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        log_entry = f"\n[{timestamp}] [{module.upper()}] {type(exception).__name__}: {exception}\n"

        if context:
            log_entry += f"Context: {context}\n"

        log_entry += "Stack Trace:\n"
        log_entry += "".join(traceback.format_exception(
            type(exception), exception, exception.__traceback__
        ))
        log_entry += "\n" + "=" * 80 + "\n"

        self._write(log_entry)

    def log_error(self, error_message: str, module: str = "unknown",
                  context: Optional[str] = None):
        """
        Log a custom error message without an exception object.

        Args:
            error_message (str): The error message to log
            module (str): Name of the module where error occurred
            context (str, optional): Additional context information
        """
        self._count(module)

        if not self.log_file:
            print(f"[{module}] {error_message}")
            return

        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        log_entry = f"[{timestamp}] [{module.upper()}] {error_message}"
        if context:
            log_entry += f" | Context: {context}"
        log_entry += "\n"

        self._write(log_entry)

    @property
    def error_count(self) -> int:
        with self.lock:
            return sum(self.error_counts.values())

    def snapshot(self) -> Dict[str, int]:
        """Copy of the per-module error counts."""
        with self.lock:
            return dict(self.error_counts)

    def reset_counts(self):
        with self.lock:
            self.error_counts.clear()

    def _count(self, module: str):
        with self.lock:
            self.error_counts[module] = self.error_counts.get(module, 0) + 1

    def _write(self, log_entry: str):
        with self.lock:
            try:
                with open(self.log_file, 'a', encoding='utf-8') as f:
                    f.write(log_entry)
            except OSError as write_error:
                print(f"Failed to write to error log: {write_error}")
                print(f"Original error: {log_entry}")


# Global exception logger instance
exception_logger = ExceptionLogger()
