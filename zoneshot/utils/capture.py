"""
Screen capture backends for Zoneshot.

This module handles the capture step of the pipeline:
- Full screen capture (scrot)
- Interactive region selection (scrot -s)
- Window capture by name (ImageMagick import, falling back to scrot -u)

A capture only counts as successful when the destination file exists; some
capture tools exit 0 without writing anything under certain compositors.
"""

import logging
import os
from enum import Enum
from typing import Optional

from .artifacts import ImageArtifact, check_tool_available, run_tool
from .errors import CaptureError
from .window_detect import WindowSearch, list_windows

logger = logging.getLogger(__name__)


class CaptureMode(Enum):
    FULL = "full"
    WINDOW = "window"
    SELECT = "select"


class CaptureBackend:
    """Chooses and runs the capture strategy for a request."""

    INSTALL_HINT = "sudo apt-get install scrot xdotool imagemagick"
    SELECT_HINT = "sudo apt-get install scrot"
    # Delay before scrot grabs the focused window, in seconds
    FOCUSED_WINDOW_DELAY = "0.1"

    def __init__(self, window_search: Optional[WindowSearch] = None):
        self.window_search = window_search or WindowSearch()

    def capture(self, request, destination: str) -> ImageArtifact:
        """
        Capture according to request.mode into destination.

        Args:
            request: CaptureRequest
            destination: Path of the raw capture file

        Returns:
            ImageArtifact for the raw capture

        Raises:
            CaptureError: If no file was produced
        """
        if request.mode == CaptureMode.SELECT:
            return self.capture_selection(destination)
        elif request.mode == CaptureMode.WINDOW:
            return self.capture_window(request.window_pattern, destination)
        return self.capture_full_screen(destination)

    def capture_selection(self, destination: str) -> ImageArtifact:
        """Interactive box selection. Blocks until the user draws a box."""
        print("📸 Draw a box around the region you want to capture...")
        result = run_tool(["scrot", "-s", destination], expected_output=destination)
        if not result.ok:
            # No fallback for interactive selection
            raise CaptureError(
                "Selection failed. Make sure scrot is installed",
                hint=self.SELECT_HINT,
            )
        return ImageArtifact(destination)

    def capture_window(self, pattern: str, destination: str) -> ImageArtifact:
        """Capture the first window whose name matches pattern."""
        window = self.window_search.find_window(pattern)
        if window is None:
            raise CaptureError(
                f"No window found matching: '{pattern}'",
                hint="install wmctrl or xdotool to list windows",
                available_windows=list_windows(),
            )

        print(f"📸 Capturing window: {window.title} (ID: {window.window_id})")

        if check_tool_available("import"):
            result = run_tool(
                ["import", "-window", str(window.window_id), destination],
                expected_output=destination,
            )
        else:
            logger.info("ImageMagick import not found, falling back to scrot -u")
            # scrot cannot target a window id; it grabs the focused window
            result = run_tool(
                ["scrot", "-u", "-d", self.FOCUSED_WINDOW_DELAY, destination],
                expected_output=destination,
            )

        if not result.ok:
            raise CaptureError("Screenshot failed", hint=self.INSTALL_HINT)
        return ImageArtifact(destination)

    def capture_full_screen(self, destination: str) -> ImageArtifact:
        result = run_tool(["scrot", destination], expected_output=destination)
        if not result.ok:
            raise CaptureError("Screenshot failed", hint=self.INSTALL_HINT)
        logger.debug(f"Full screen captured: {destination} ({os.path.getsize(destination)} bytes)")
        return ImageArtifact(destination)
