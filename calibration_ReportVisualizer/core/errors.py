# calibration_ReportVisualizer/core/errors.py
from __future__ import annotations


class CalibrationError(Exception):
    """Base exception for load and export failures."""

    pass


class FileAccessError(CalibrationError):
    """Raised when the input file is missing or cannot be read."""

    pass


class ParseError(CalibrationError):
    """Raised when a row or field cannot be parsed.

    ``line`` is the 1-based line number in the input file (header = 1).
    """

    def __init__(self, message: str, line: int | None = None):
        self.line = line
        if line is not None:
            message = f"Failed to parse CSV record at line {line}: {message}"
        super().__init__(message)


class EmptyDatasetError(CalibrationError):
    """Raised when the file has a header but no data rows."""

    pass


class ExportError(CalibrationError):
    """Raised when an export cannot be written or encoded."""

    pass
