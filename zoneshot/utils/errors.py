"""Error types raised by Zoneshot."""

from typing import List, Optional

__all__ = ["ZoneshotError", "ValidationError", "CaptureError", "PostProcessError"]


class ZoneshotError(RuntimeError):
    """Base class for Zoneshot errors."""


class ValidationError(ZoneshotError):
    """Raised for bad flags or values, before anything touches the disk."""


class CaptureError(ZoneshotError):
    """Raised when the capture backend produced no artifact.

    ``hint`` carries an install command for the missing tools and
    ``available_windows`` lists window titles when a window search failed.
    """

    def __init__(self, message: str, hint: Optional[str] = None,
                 available_windows: Optional[List[str]] = None):
        super().__init__(message)
        self.hint = hint
        self.available_windows = available_windows


class PostProcessError(ZoneshotError):
    """Raised when a crop, resize or probe step fails."""
