"""
Exception hierarchy for the chapter translation pipeline
"""
from typing import Any, Optional


class InkTranslateError(Exception):
    """Base class for all pipeline errors"""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class MalformedDocument(InkTranslateError):
    """Chapter markup could not be parsed into a tree"""
    pass


class TranslationServiceError(InkTranslateError):
    """A remote translation call failed (network, quota, malformed response)"""
    pass


class ReassemblyCorruption(InkTranslateError):
    """A translated fragment could not be put back into the document"""
    pass


class ArchiveIOError(InkTranslateError):
    """The EPUB container could not be read or written"""
    pass
