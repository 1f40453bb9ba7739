"""
Question Detection Error Taxonomy

Exceptions raised inside the detection pipeline. Only UnsupportedInputType
and ServiceUnavailable are surfaced to callers, and only as failed
DetectionResult payloads; the remaining types are recorded through the
exception logger and recovered where they occur.

Author: Quinn Evans
"""


class DetectionError(Exception):
    """Base class for every question detection failure."""


class UnsupportedInputType(DetectionError):
    """Input is neither text nor an image payload."""


class ServiceUnavailable(DetectionError):
    """OCR was required but no OCR service is configured or it failed."""


class NoTextExtracted(DetectionError):
    """Input or OCR output was empty or whitespace only."""


class AIEnhancementFailure(DetectionError):
    """The AI collaborator failed, timed out, or returned nothing usable."""


class ParseError(DetectionError):
    """An AI response could not be parsed by either parsing tier."""
