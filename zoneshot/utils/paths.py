"""Centralized path management for Zoneshot.

This module provides utilities for managing the output directory and the
names of the final screenshot and the temporary artifacts produced by the
post-processing pipeline.
"""

import os
from datetime import datetime
from pathlib import Path
from typing import Optional


class ZoneshotPaths:
    """Output directory and file naming for a single capture run.

    The timestamp is fixed when the object is created so that every artifact
    of one run shares the same suffix.
    """

    # Default directory (will be expanded with os.path.expanduser)
    DEFAULT_SCREENSHOTS_DIR = "~/Pictures/Screenshots"

    # File naming configuration
    SCREENSHOT_PREFIX = "dashboard"
    CAPTURE_PREFIX = "temp"
    ZONE_PREFIX = "zone"
    REGION_PREFIX = "region"
    ZOOM_PREFIX = "zoom"
    SCREENSHOT_EXTENSION = ".png"
    TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"

    def __init__(self, directory: Optional[str] = None, timestamp: Optional[datetime] = None):
        self.directory = os.path.expanduser(directory or self.DEFAULT_SCREENSHOTS_DIR)
        self.timestamp = (timestamp or datetime.now()).strftime(self.TIMESTAMP_FORMAT)

    def ensure_directory(self) -> str:
        """Create the output directory if it doesn't exist.

        Returns:
            str: Absolute path of the output directory.
        """
        Path(self.directory).mkdir(parents=True, exist_ok=True)
        return self.directory

    def _path(self, prefix: str) -> str:
        filename = f"{prefix}_{self.timestamp}{self.SCREENSHOT_EXTENSION}"
        return os.path.join(self.directory, filename)

    @property
    def screenshot_path(self) -> str:
        """Canonical output path: <dir>/dashboard_YYYYMMDD_HHMMSS.png"""
        return self._path(self.SCREENSHOT_PREFIX)

    @property
    def capture_path(self) -> str:
        """Raw capture path used when post-processing follows."""
        return self._path(self.CAPTURE_PREFIX)

    def zone_path(self, step: int) -> str:
        """Intermediate path for the 1-based step of a zone chain."""
        return self._path(f"{self.ZONE_PREFIX}_{step}")

    @property
    def region_path(self) -> str:
        return self._path(self.REGION_PREFIX)

    @property
    def zoom_path(self) -> str:
        return self._path(self.ZOOM_PREFIX)
