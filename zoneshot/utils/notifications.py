"""
Desktop notifications for Zoneshot.

Shows a notify-send notification when a screenshot is saved. Notifications
are optional: when notify-send is missing the failure is only logged.
"""

import logging
import subprocess
from pathlib import Path
from typing import Optional

from .artifacts import check_tool_available
from .finalize import PipelineResult, format_file_size

logger = logging.getLogger(__name__)


class NotificationTimeouts:
    """Timeout constants for notifications (milliseconds)."""

    NOTIFICATION_DISPLAY_MS = 5000
    DEGRADED_NOTIFICATION_MS = 8000


class NotificationSystem:
    """Handles desktop notifications for Zoneshot."""

    APP_NAME = "Zoneshot"

    def __init__(self):
        """Initialize the notification system."""
        self.notification_available = check_tool_available("notify-send")

    def notify_screenshot_saved(self, result: PipelineResult) -> None:
        """
        Show a notification that a screenshot was saved.

        Degraded results are shown with normal urgency and a warning icon.
        """
        if not self.notification_available:
            logger.warning("Notification system not available (notify-send not found)")
            return

        body = f"{format_file_size(result.size)}\n{Path(result.path).name}"
        if result.degraded:
            icon = "dialog-warning"
            timeout = NotificationTimeouts.DEGRADED_NOTIFICATION_MS
            body += "\nSkipped: " + ", ".join(result.skipped)
        else:
            icon = "camera-photo"
            timeout = NotificationTimeouts.NOTIFICATION_DISPLAY_MS

        try:
            subprocess.Popen(
                [
                    "notify-send",
                    "-i", icon,
                    "-t", str(timeout),
                    "-a", self.APP_NAME,
                    f"{self.APP_NAME} - Screenshot Saved!",
                    body,
                ],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            logger.error(f"Failed to show notification: {e}")


# Global notification system instance
_notification_system: Optional[NotificationSystem] = None


def get_notification_system() -> NotificationSystem:
    """Get the global notification system instance."""
    global _notification_system
    if _notification_system is None:
        _notification_system = NotificationSystem()
    return _notification_system


def notify_screenshot_saved(result: PipelineResult) -> None:
    """Show notification for a saved screenshot."""
    get_notification_system().notify_screenshot_saved(result)
