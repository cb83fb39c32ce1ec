# sharptools/errors.py
from typing import Optional


class SharpToolsError(Exception):
    """Base class for every error this package raises on purpose."""


class ValidationError(SharpToolsError):
    """Input rejected before the operation was attempted."""


class NoInput(ValidationError):
    """Assembly requested on an empty collection."""


class TransportError(SharpToolsError):
    """The split endpoint answered with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AssemblyError(SharpToolsError):
    """Decoding or encoding failed while building a PDF; no partial output."""


class SplitError(SharpToolsError):
    """The uploaded PDF could not be read or written."""
