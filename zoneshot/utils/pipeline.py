"""
Capture and post-processing pipeline for Zoneshot.

Stages run strictly in this order, each one blocking until its output file
exists:

    capture -> zone chain crops -> region crop -> zoom -> finalize

Every stage takes an ImageArtifact and returns a new one. A stage deletes its
predecessor only after the successor exists. Crop and zoom failures are
never fatal: the pipeline keeps the best artifact it has and finalizes it
with a warning. Only the capture step can fail the run.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, NamedTuple, Optional, Tuple

from .artifacts import ImageArtifact
from .capture import CaptureBackend, CaptureMode
from .errors import PostProcessError, ValidationError
from .finalize import PipelineResult, finalize
from .geometry import ZONE_SEPARATOR, Rectangle, resolve_zone, to_scale_percent
from .imaging import ImageMagickBackend, ImageTool
from .paths import ZoneshotPaths

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CaptureRequest:
    """Normalized, immutable description of one capture run."""
    mode: CaptureMode = CaptureMode.FULL
    window_pattern: Optional[str] = None
    zone_chain: Tuple[str, ...] = ()
    region: Optional[Rectangle] = None
    zoom_factor: Optional[Decimal] = None

    def __post_init__(self):
        if self.mode == CaptureMode.WINDOW and not (self.window_pattern or "").strip():
            raise ValidationError("--window requires a window name")
        if self.zoom_factor is not None and self.zoom_factor <= 0:
            raise ValidationError(f"Zoom factor must be positive, got {self.zoom_factor}")
        object.__setattr__(self, "zone_chain", tuple(self.zone_chain))

    @property
    def needs_processing(self) -> bool:
        return bool(self.zone_chain) or self.region is not None or self.zoom_factor is not None


class StageResult(NamedTuple):
    """Outcome of one post-processing stage."""
    artifact: ImageArtifact
    applied: bool
    warning: Optional[str] = None


def _warn(warnings: List[str], message: str) -> None:
    logger.warning(message)
    print(f"⚠️  Warning: {message}")
    warnings.append(message)


def _crop(image_tool: ImageTool, artifact: ImageArtifact, rect: Rectangle,
          destination: str, stage: str) -> ImageArtifact:
    if rect.w == 0 or rect.h == 0:
        # ImageMagick reads a 0 dimension as "full size"
        raise PostProcessError(f"Image too small to crop to {rect.geometry}")
    return image_tool.crop(artifact, rect, destination, stage=stage)


def apply_zone_chain(artifact: ImageArtifact, zones: Tuple[str, ...], paths: ZoneshotPaths,
                     image_tool: ImageTool) -> Tuple[ImageArtifact, Tuple[str, ...], Optional[str]]:
    """
    Crop recursively through a zone chain.

    Each zone is resolved against the dimensions of the current, already
    cropped artifact. On the first failure the chain halts and the latest
    successful crop is kept.

    Returns:
        Tuple of (current artifact, zones applied, warning or None)
    """
    current = artifact
    applied = []

    for step, zone in enumerate(zones, start=1):
        try:
            width, height = image_tool.probe(current)
            rect = resolve_zone(zone, width, height)
            print(f"✂️  Cropping zone {step}/{len(zones)}: {zone} ({rect.geometry})")
            successor = _crop(image_tool, current, rect, paths.zone_path(step), f"zone_{step}")
        except (ValidationError, PostProcessError) as e:
            return current, tuple(applied), f"Zone chain stopped at '{zone}': {e}"

        current.discard()
        current = successor
        applied.append(zone)

    return current, tuple(applied), None


def apply_region(artifact: ImageArtifact, region: Rectangle, paths: ZoneshotPaths,
                 image_tool: ImageTool) -> StageResult:
    """Crop to an explicit rectangle in absolute pixels."""
    print(f"✂️  Cropping region: {region.x},{region.y},{region.w},{region.h}")
    try:
        successor = _crop(image_tool, artifact, region, paths.region_path, "region")
    except PostProcessError as e:
        return StageResult(artifact, False, f"Region crop failed, using previous result: {e}")

    artifact.discard()
    return StageResult(successor, True)


def apply_zoom(artifact: ImageArtifact, factor: Decimal, paths: ZoneshotPaths,
               image_tool: ImageTool) -> StageResult:
    """Resize by factor, after all cropping."""
    print(f"🔍 Zooming {factor}x...")
    try:
        percent = to_scale_percent(factor)
        successor = image_tool.resize(artifact, percent, paths.zoom_path)
    except (PostProcessError, ArithmeticError) as e:
        return StageResult(artifact, False, f"Zoom failed, keeping previous result: {e}")

    artifact.discard()
    return StageResult(successor, True)


def _describe_requested(request: CaptureRequest) -> List[str]:
    described = []
    if request.zone_chain:
        described.append(f"zone {ZONE_SEPARATOR.join(request.zone_chain)}")
    if request.region is not None:
        described.append(f"region {request.region.geometry}")
    if request.zoom_factor is not None:
        described.append(f"zoom {request.zoom_factor}x")
    return described


def run_pipeline(
    request: CaptureRequest,
    paths: ZoneshotPaths,
    capture_backend: Optional[CaptureBackend] = None,
    image_tool: Optional[ImageTool] = None,
) -> PipelineResult:
    """
    Capture and post-process according to request.

    Args:
        request: Validated CaptureRequest
        paths: Naming for the final output and intermediates of this run
        capture_backend: Capture strategy selector (default: CaptureBackend())
        image_tool: Image backends (default: ImageTool() from the environment)

    Returns:
        PipelineResult describing the final file

    Raises:
        CaptureError: If the capture step produced no file
    """
    capture_backend = capture_backend or CaptureBackend()
    paths.ensure_directory()

    if not request.needs_processing:
        # Capture straight to the final path: no intermediates at all
        artifact = capture_backend.capture(request, paths.screenshot_path)
        return finalize(artifact, paths.screenshot_path)

    artifact = capture_backend.capture(request, paths.capture_path)
    image_tool = image_tool if image_tool is not None else ImageTool()
    warnings: List[str] = []
    skipped: List[str] = []

    if not image_tool.available:
        _warn(warnings, "no image tool found, skipping post-processing "
                        f"(install with: {ImageMagickBackend.INSTALL_HINT})")
        return finalize(artifact, paths.screenshot_path,
                        skipped=_describe_requested(request), warnings=warnings)

    zones_applied: Tuple[str, ...] = ()
    region_applied = None
    zoom_applied = None

    if request.zone_chain:
        artifact, zones_applied, warning = apply_zone_chain(
            artifact, request.zone_chain, paths, image_tool
        )
        if warning:
            _warn(warnings, warning)
            remaining = request.zone_chain[len(zones_applied):]
            skipped.append(f"zone {ZONE_SEPARATOR.join(remaining)}")
        if request.region is not None:
            _warn(warnings, "both a zone chain and a region were requested; the region is ignored")
            skipped.append(f"region {request.region.geometry}")
    elif request.region is not None:
        stage = apply_region(artifact, request.region, paths, image_tool)
        artifact = stage.artifact
        if stage.applied:
            region_applied = request.region
        else:
            _warn(warnings, stage.warning)
            skipped.append(f"region {request.region.geometry}")

    if request.zoom_factor is not None:
        stage = apply_zoom(artifact, request.zoom_factor, paths, image_tool)
        artifact = stage.artifact
        if stage.applied:
            zoom_applied = request.zoom_factor
        else:
            _warn(warnings, stage.warning)
            skipped.append(f"zoom {request.zoom_factor}x")

    return finalize(
        artifact,
        paths.screenshot_path,
        zones_applied=zones_applied,
        region_applied=region_applied,
        zoom_applied=zoom_applied,
        skipped=skipped,
        warnings=warnings,
    )
