"""
Result finalization for Zoneshot.

Promotes the last surviving artifact of the pipeline to the canonical output
path and describes which optional operations were applied or skipped.
"""

import logging
import os
import shutil
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Tuple

from .artifacts import ImageArtifact
from .geometry import Rectangle, ZONE_SEPARATOR

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    """Final output of a capture run."""
    path: str
    size: int
    zones_applied: Tuple[str, ...] = ()
    region_applied: Optional[Rectangle] = None
    zoom_applied: Optional[Decimal] = None
    skipped: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()

    @property
    def degraded(self) -> bool:
        """True when a requested enhancement was not applied."""
        return bool(self.skipped)


def promote(artifact: ImageArtifact, final_path: str) -> Tuple[ImageArtifact, bool]:
    """
    Move an artifact to final_path.

    Uses an atomic rename. If the rename fails the file is copied and the
    source removed afterwards.

    Returns:
        Tuple of (final artifact, whether the copy fallback was used)
    """
    if os.path.abspath(artifact.path) == os.path.abspath(final_path):
        return ImageArtifact(final_path, "final"), False

    try:
        os.replace(artifact.path, final_path)
        logger.debug(f"Renamed {artifact.path} -> {final_path}")
        return ImageArtifact(final_path, "final"), False
    except OSError as e:
        logger.warning(f"Rename to {final_path} failed, copying instead: {e}")

    shutil.copyfile(artifact.path, final_path)
    artifact.discard()
    return ImageArtifact(final_path, "final"), True


def finalize(
    artifact: ImageArtifact,
    final_path: str,
    zones_applied: Tuple[str, ...] = (),
    region_applied: Optional[Rectangle] = None,
    zoom_applied: Optional[Decimal] = None,
    skipped: List[str] = None,
    warnings: List[str] = None,
) -> PipelineResult:
    """
    Promote artifact to final_path and build the PipelineResult.

    Args:
        artifact: Last surviving artifact of the pipeline
        final_path: Canonical output path
        zones_applied: Zones whose crop actually succeeded, in order
        region_applied: Region that was actually cropped
        zoom_applied: Zoom factor that was actually applied
        skipped: Requested operations that were not applied
        warnings: Warnings collected by the pipeline
    """
    warnings = list(warnings or [])
    final, copied = promote(artifact, final_path)
    if copied:
        warnings.append(f"Could not rename {artifact.path}, result was copied instead")

    result = PipelineResult(
        path=final.path,
        size=final.size,
        zones_applied=tuple(zones_applied),
        region_applied=region_applied,
        zoom_applied=zoom_applied,
        skipped=tuple(skipped or ()),
        warnings=tuple(warnings),
    )
    logger.info(f"Screenshot finalized: {result.path} ({result.size} bytes)")
    return result


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in human-readable format.

    Returns:
        Formatted string (e.g., "2.4 MB", "156.0 KB")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    else:
        return f"{size_bytes / (1024 * 1024):.1f} MB"


def format_report(result: PipelineResult) -> List[str]:
    """Render the user-facing report lines for a finished run."""
    lines = [
        f"✅ Screenshot saved: {result.path}",
        f"File size: {format_file_size(result.size)}",
    ]
    if result.zones_applied:
        lines.append(f"Zone: {ZONE_SEPARATOR.join(result.zones_applied)}")
    if result.region_applied is not None:
        rect = result.region_applied
        lines.append(f"Region: {rect.x},{rect.y},{rect.w},{rect.h}")
    if result.zoom_applied is not None:
        lines.append(f"Zoom level: {result.zoom_applied}x")
    for skipped in result.skipped:
        lines.append(f"⚠️  Skipped: {skipped}")
    lines.append("")
    lines.append(f"To view, open: {result.path}")
    return lines
