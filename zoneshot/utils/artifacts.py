"""
Artifact and external tool plumbing shared by the capture, window search and
image backends.

An ImageArtifact is an immutable handle to a raster file on disk. Every
pipeline stage returns a new artifact instead of mutating a shared path, and
only deletes its predecessor once the successor exists.
"""

import logging
import os
import subprocess
from dataclasses import dataclass
from typing import List, NamedTuple, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageArtifact:
    """Raster file produced by a pipeline stage."""
    path: str
    stage: str = "capture"

    def exists(self) -> bool:
        return os.path.isfile(self.path)

    @property
    def size(self) -> int:
        return os.path.getsize(self.path)

    def discard(self) -> None:
        """Delete the file; a file that is already gone is not an error."""
        try:
            os.remove(self.path)
            logger.debug(f"Removed intermediate artifact: {self.path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove intermediate artifact {self.path}: {e}")


class ToolResult(NamedTuple):
    """Uniform pass/fail result of one external tool invocation."""
    ok: bool
    output: str = ""
    error: str = ""


def check_tool_available(tool: str) -> bool:
    """Check if a command-line tool is available on the system."""
    try:
        result = subprocess.run(
            ["which", tool],
            capture_output=True,
            text=True,
            timeout=2,
        )
        return result.returncode == 0
    except (OSError, subprocess.SubprocessError) as e:
        logger.warning(f"Error checking for {tool}: {e}")
        return False


def run_tool(command: List[str], expected_output: Optional[str] = None) -> ToolResult:
    """
    Run an external tool once, without retry or timeout.

    Args:
        command: Argument vector, e.g. ['scrot', '/tmp/a.png']
        expected_output: File the tool must create. When given, the result is
            only ok if that file exists, whatever the exit code says.

    Returns:
        ToolResult with the tool's stdout on success and stderr otherwise
    """
    logger.debug(f"Running: {' '.join(command)}")
    try:
        completed = subprocess.run(command, capture_output=True, text=True)
    except OSError as e:
        logger.warning(f"Failed to run {command[0]}: {e}")
        return ToolResult(False, error=str(e))

    ok = completed.returncode == 0
    if expected_output is not None:
        produced = os.path.isfile(expected_output)
        if ok and not produced:
            logger.warning(f"{command[0]} exited 0 but produced no file: {expected_output}")
        ok = produced

    if not ok:
        logger.debug(f"{command[0]} failed (exit {completed.returncode}): {completed.stderr.strip()}")
    return ToolResult(ok, completed.stdout, completed.stderr.strip())
