"""Custom Exception Hierarchy for the video catalog.

This module defines specific error types to allow for granular error handling
and better debugging. All custom exceptions inherit from `VideoCatalogError`.
"""

class VideoCatalogError(Exception):
    """Base exception for all video catalog errors."""
    def __init__(self, message: str, original_error: Exception | None = None, context: dict | None = None):
        super().__init__(message)
        self.original_error = original_error
        self.context = context or {}

class AssetNotFoundError(VideoCatalogError):
    """Raised when an asset id is unknown to the catalog."""
    pass

class FileMissingError(VideoCatalogError):
    """Raised when a catalog record points at a file absent from storage."""
    pass

class RangeError(VideoCatalogError):
    """Base for Range header failures."""
    pass

class RangeRequiredError(RangeError):
    """Raised when a stream request carries no Range header."""
    pass

class MalformedRangeError(RangeError):
    """Raised by strict parsing when the Range header cannot be read."""

    def __init__(self, message: str, file_size: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.file_size = file_size

class UnsatisfiableRangeError(RangeError):
    """Raised when the requested window lies outside the resource."""

    def __init__(self, message: str, file_size: int, **kwargs):
        super().__init__(message, **kwargs)
        self.file_size = file_size

class StorageError(VideoCatalogError):
    """Raised when reading or writing stored media fails."""
    pass

class UploadError(VideoCatalogError):
    """Raised when an uploaded file is rejected."""
    pass

class DatabaseError(VideoCatalogError):
    """Raised when database operations fail."""
    pass
