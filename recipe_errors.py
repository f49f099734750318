"""
Error types raised by the recipe extraction pipeline
"""

from typing import Optional


class RecipeError(Exception):
    """Base class for every error the extraction pipeline surfaces."""

    def __init__(self, message: str, details: Optional[dict] = None, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.hint = hint

    def to_dict(self) -> dict:
        data = {"error": self.message, "type": type(self).__name__}
        if self.hint:
            data["hint"] = self.hint
        return data


class ValidationError(RecipeError):
    """Malformed input: bad URL, bad upload, or a recipe that fails validation."""


class NetworkError(RecipeError):
    """The webpage could not be fetched."""

    def __init__(self, message: str, status: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status = status


class ApiError(RecipeError):
    """The vision/completion provider failed."""

    def __init__(self, message: str, status: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status = status


class ConfigurationError(ApiError):
    """A provider credential is missing or still set to a placeholder."""


class ExtractionError(RecipeError):
    """No usable recipe could be assembled from otherwise successful input."""
