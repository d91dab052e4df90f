#!/usr/bin/env python3

"""
Custom exceptions for the lncRNA categorization pipeline.

Format and geometry errors carry the file, line or transcript they refer to.
"""

class PipelineError(Exception):
    """Base exception for all pipeline-related errors."""
    pass


class FormatError(PipelineError):
    """Malformed gene prediction, GTF or tracking record."""

    def __init__(self, message: str, filename: str = "", line_number: int = 0, line: str = ""):
        super().__init__(message)
        self.filename = filename
        self.line_number = line_number
        self.line = line

    def __str__(self):
        message = super().__str__()
        if self.filename and self.line_number:
            message = f"Format error in {self.filename} at line {self.line_number}: {message}"
        elif self.filename:
            message = f"Format error in {self.filename}: {message}"
        if self.line:
            message = f"{message}\n\nError occurred on line:\n\n{self.line}"
        return message


class GeometryError(PipelineError):
    """Exon or transcript coordinates violate a geometric invariant."""

    def __init__(self, message: str, transcript_id: str = ""):
        super().__init__(message)
        self.transcript_id = transcript_id

    def __str__(self):
        if self.transcript_id:
            return f"Geometry error for transcript {self.transcript_id}: {super().__str__()}"
        return super().__str__()


class ConfigurationError(PipelineError):
    """Error in pipeline configuration or required inputs."""
    pass


class MemoryError(PipelineError):
    """Memory usage exceeded limits."""

    def __init__(self, message: str, current_usage: float, limit: float):
        super().__init__(message)
        self.current_usage = current_usage
        self.limit = limit

    def __str__(self):
        return f"Memory error: {super().__str__()} (current: {self.current_usage:.1f}MB, limit: {self.limit:.1f}MB)"


class EmptyResultWarning(UserWarning):
    """No candidate transcripts remained eligible for a classification unit."""

    def __init__(self, message: str, unit: str = ""):
        super().__init__(message)
        self.unit = unit

    def __str__(self):
        if self.unit:
            return f"[ {self.unit} ] {super().__str__()}"
        return super().__str__()
