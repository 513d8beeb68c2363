"""
Window discovery for Zoneshot.

This module maps a window name pattern to an X11 window identifier and
enumerates windows for diagnostics:
- xdotool search (preferred)
- Direct X11 lookup through python-xlib (fallback when xdotool is missing)
- wmctrl / xdotool / python-xlib listing of available windows
"""

import logging
import re
from typing import List, NamedTuple, Optional

from Xlib import X, display
from Xlib.error import BadMatch, BadWindow

from .artifacts import check_tool_available, run_tool

logger = logging.getLogger(__name__)


class WindowInfo(NamedTuple):
    """Container for window information."""
    window_id: int
    title: str
    class_name: str = "Unknown"


class WindowDetector:
    """Handles X11 window enumeration through python-xlib."""

    def __init__(self):
        """Initialize the window detector."""
        self.display = display.Display()
        self.root = self.display.screen().root

        # Cache for atoms we'll need
        self._atoms = {}
        self._init_atoms()

    def _init_atoms(self):
        """Initialize commonly used X11 atoms."""
        atom_names = [
            "_NET_CLIENT_LIST",
            "WM_CLASS",
            "WM_NAME",
            "_NET_WM_NAME",
        ]

        for atom_name in atom_names:
            try:
                self._atoms[atom_name] = self.display.intern_atom(atom_name)
            except Exception as e:
                logger.debug(f"Failed to intern atom {atom_name}: {e}")

    def _get_client_windows(self) -> list:
        """Managed client windows, falling back to the root's children."""
        if "_NET_CLIENT_LIST" in self._atoms:
            prop = self.root.get_full_property(self._atoms["_NET_CLIENT_LIST"], X.AnyPropertyType)
            if prop and prop.value is not None and len(prop.value):
                return [self.display.create_resource_object("window", window_id)
                        for window_id in prop.value]

        logger.debug("_NET_CLIENT_LIST unavailable, using root window children")
        return self.root.query_tree().children

    def _get_window_class(self, window) -> str:
        """Get window class name."""
        try:
            wm_class = window.get_wm_class()
            if wm_class:
                # WM_CLASS is (instance, class)
                return wm_class[1] or wm_class[0]
        except (BadWindow, BadMatch) as e:
            logger.debug(f"Failed to get window class: {e}")

        return "Unknown"

    def _get_window_title(self, window) -> str:
        """Get window title, trying both _NET_WM_NAME and WM_NAME."""
        for atom_name in ("_NET_WM_NAME", "WM_NAME"):
            if atom_name not in self._atoms:
                continue
            try:
                prop = window.get_full_property(self._atoms[atom_name], X.AnyPropertyType)
            except (BadWindow, BadMatch) as e:
                logger.debug(f"Failed to get window title: {e}")
                return ""
            if prop and prop.value:
                value = prop.value
                if isinstance(value, bytes):
                    value = value.decode("utf-8", errors="ignore")
                return value

        return ""

    def get_windows(self) -> List[WindowInfo]:
        """
        Get a list of all titled client windows.

        Returns:
            List of WindowInfo objects
        """
        windows = []

        try:
            for window in self._get_client_windows():
                title = self._get_window_title(window)
                if title:
                    windows.append(WindowInfo(window.id, title, self._get_window_class(window)))
        except (BadWindow, BadMatch) as e:
            logger.error(f"Failed to enumerate windows: {e}")

        return windows

    def find_windows(self, pattern: str) -> List[WindowInfo]:
        """
        Find windows whose title matches a pattern.

        The pattern is a case-insensitive regular expression, like xdotool's
        --name matching. An invalid expression is matched literally.
        """
        try:
            regex = re.compile(pattern, re.IGNORECASE)
        except re.error:
            regex = re.compile(re.escape(pattern), re.IGNORECASE)
        return [window for window in self.get_windows() if regex.search(window.title)]

    def cleanup(self):
        """Clean up X11 resources."""
        try:
            self.display.close()
        except Exception as e:
            logger.warning(f"Error during window detector cleanup: {e}")


def _open_detector() -> Optional[WindowDetector]:
    try:
        return WindowDetector()
    except Exception as e:
        # No $DISPLAY, no X server, or an Xlib connection error
        logger.warning(f"Failed to initialize window detector: {e}")
        return None


class XdotoolSearch:
    """Window search through the xdotool command-line tool."""

    name = "xdotool"

    @property
    def available(self) -> bool:
        return check_tool_available("xdotool")

    def find(self, pattern: str) -> Optional[WindowInfo]:
        result = run_tool(["xdotool", "search", "--name", pattern])
        ids = result.output.split() if result.ok else []
        if not ids:
            return None

        # First match wins
        window_id = int(ids[0])
        name = run_tool(["xdotool", "getwindowname", str(window_id)])
        title = name.output.strip() if name.ok else ""
        return WindowInfo(window_id, title)


class XlibSearch:
    """Window search through a direct X11 connection."""

    name = "xlib"
    available = True

    def find(self, pattern: str) -> Optional[WindowInfo]:
        detector = _open_detector()
        if detector is None:
            return None
        try:
            matches = detector.find_windows(pattern)
            return matches[0] if matches else None
        finally:
            detector.cleanup()


class WindowSearch:
    """Ordered strategy list for mapping a name pattern to a window."""

    def __init__(self, strategies=None):
        if strategies is None:
            strategies = [XdotoolSearch(), XlibSearch()]
        self.strategies = strategies

    def find_window(self, pattern: str) -> Optional[WindowInfo]:
        """
        Return the first window whose name matches pattern.

        Strategies are tried in order; the first one that is available
        decides. Later strategies are only consulted when earlier ones are
        not installed.
        """
        for strategy in self.strategies:
            if not strategy.available:
                logger.debug(f"Window search via {strategy.name} not available")
                continue
            window = strategy.find(pattern)
            logger.debug(f"Window search via {strategy.name} for '{pattern}': {window}")
            return window
        logger.warning("No window search tool available")
        return None


def list_windows() -> List[str]:
    """
    List currently available windows as display lines, for diagnostics.

    Tries wmctrl, then xdotool, then a direct X11 connection.
    """
    if check_tool_available("wmctrl"):
        result = run_tool(["wmctrl", "-l"])
        if result.ok:
            return [line for line in result.output.splitlines() if line.strip()]

    if check_tool_available("xdotool"):
        result = run_tool(["xdotool", "search", "--name", ".", "getwindowname", "%@"])
        if result.ok:
            return [line for line in result.output.splitlines() if line.strip()]

    detector = _open_detector()
    if detector is not None:
        try:
            return [f"0x{window.window_id:08x}  {window.class_name:<20} {window.title}"
                    for window in detector.get_windows()]
        finally:
            detector.cleanup()

    return []
