"""
Image post-processing backends for Zoneshot.

This module exposes three operations on an ImageArtifact:
- Dimension probe
- Crop by rectangle
- Resize by percentage

Each operation is tried against an ordered list of backends (ImageMagick
first, then Pillow in-process) and succeeds as soon as one backend produces
the expected output. When every backend fails a PostProcessError is raised;
the pipeline decides how to degrade.
"""

import logging
import os
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from PIL import Image, UnidentifiedImageError

from .artifacts import ImageArtifact, ToolResult, check_tool_available, run_tool
from .errors import PostProcessError
from .geometry import Rectangle, format_percent

logger = logging.getLogger(__name__)

# Comma-separated backend names overriding the default order
BACKENDS_ENV_VAR = "ZONESHOT_IMAGE_BACKENDS"


class ImageMagickBackend:
    """Crop/resize/probe through ImageMagick subprocesses.

    Prefers the ImageMagick 7 `magick` entry point and falls back to the
    ImageMagick 6 `convert`/`identify` pair.
    """

    name = "imagemagick"
    INSTALL_HINT = "sudo apt-get install imagemagick"

    def __init__(self):
        if check_tool_available("magick"):
            self.convert_cmd = ["magick"]
            self.identify_cmd = ["magick", "identify"]
        elif check_tool_available("convert"):
            self.convert_cmd = ["convert"]
            self.identify_cmd = ["identify"]
        else:
            self.convert_cmd = None
            self.identify_cmd = None

    @property
    def available(self) -> bool:
        return self.convert_cmd is not None

    def probe(self, path: str) -> ToolResult:
        return run_tool(self.identify_cmd + ["-format", "%w %h", path])

    def crop(self, source: str, rect: Rectangle, destination: str) -> ToolResult:
        return run_tool(
            self.convert_cmd + [source, "-crop", rect.geometry, "+repage", destination]
        )

    def resize(self, source: str, percent: Decimal, destination: str) -> ToolResult:
        return run_tool(
            self.convert_cmd + [source, "-resize", format_percent(percent), destination]
        )


class PillowBackend:
    """In-process crop/resize/probe using Pillow."""

    name = "pillow"
    available = True

    def probe(self, path: str) -> ToolResult:
        try:
            with Image.open(path) as image:
                width, height = image.size
            return ToolResult(True, f"{width} {height}")
        except (OSError, UnidentifiedImageError) as e:
            return ToolResult(False, error=str(e))

    def crop(self, source: str, rect: Rectangle, destination: str) -> ToolResult:
        try:
            with Image.open(source) as image:
                # Clip to the image like ImageMagick does instead of padding
                right = min(rect.x + rect.w, image.width)
                bottom = min(rect.y + rect.h, image.height)
                if rect.x >= right or rect.y >= bottom:
                    return ToolResult(
                        False,
                        error=f"crop {rect.geometry} is outside {image.width}x{image.height}",
                    )
                image.crop((rect.x, rect.y, right, bottom)).save(destination, "PNG")
            return ToolResult(True)
        except (OSError, UnidentifiedImageError) as e:
            return ToolResult(False, error=str(e))

    def resize(self, source: str, percent: Decimal, destination: str) -> ToolResult:
        try:
            with Image.open(source) as image:
                scale = Decimal(percent) / 100
                size = (
                    max(1, int((image.width * scale).to_integral_value())),
                    max(1, int((image.height * scale).to_integral_value())),
                )
                image.resize(size, Image.Resampling.LANCZOS).save(destination, "PNG")
            return ToolResult(True)
        except (OSError, UnidentifiedImageError, ValueError, ArithmeticError, MemoryError) as e:
            return ToolResult(False, error=str(e))


BACKEND_TYPES = {
    ImageMagickBackend.name: ImageMagickBackend,
    PillowBackend.name: PillowBackend,
}

DEFAULT_BACKEND_ORDER = (ImageMagickBackend.name, PillowBackend.name)


def backend_order_from_env() -> Tuple[str, ...]:
    """Read the backend order from the environment, ignoring unknown names."""
    raw = os.environ.get(BACKENDS_ENV_VAR)
    if raw is None:
        return DEFAULT_BACKEND_ORDER
    names = tuple(name.strip().lower() for name in raw.split(",") if name.strip())
    for name in names:
        if name not in BACKEND_TYPES:
            logger.warning(f"Ignoring unknown image backend in {BACKENDS_ENV_VAR}: {name}")
    return tuple(name for name in names if name in BACKEND_TYPES)


class ImageTool:
    """Ordered strategy list over the available image backends."""

    def __init__(self, backends: Optional[Sequence] = None):
        if backends is None:
            backends = [BACKEND_TYPES[name]() for name in backend_order_from_env()]
        self.backends: List = [backend for backend in backends if backend.available]
        skipped = [backend.name for backend in backends if not backend.available]
        if skipped:
            logger.info(f"Image backends not available: {', '.join(skipped)}")

    @property
    def available(self) -> bool:
        return bool(self.backends)

    def probe(self, artifact: ImageArtifact) -> Tuple[int, int]:
        """
        Get the pixel dimensions of an artifact.

        Raises:
            PostProcessError: If no backend could read the file
        """
        errors = []
        for backend in self.backends:
            result = backend.probe(artifact.path)
            if result.ok:
                try:
                    width, height = (int(value) for value in result.output.split()[:2])
                    return width, height
                except ValueError:
                    errors.append(f"{backend.name}: unexpected output '{result.output}'")
                    continue
            errors.append(f"{backend.name}: {result.error or 'failed'}")
        raise PostProcessError(f"Could not read image size of {artifact.path} ({'; '.join(errors)})")

    def crop(self, artifact: ImageArtifact, rect: Rectangle, destination: str,
             stage: str = "crop") -> ImageArtifact:
        """
        Crop an artifact into a new one at destination.

        The source artifact is left untouched.

        Raises:
            PostProcessError: If every backend failed
        """
        return self._apply("crop", artifact, rect, destination, stage)

    def resize(self, artifact: ImageArtifact, percent: Decimal, destination: str,
               stage: str = "zoom") -> ImageArtifact:
        """
        Resize an artifact by a percentage into a new one at destination.

        Raises:
            PostProcessError: If every backend failed
        """
        return self._apply("resize", artifact, percent, destination, stage)

    def _apply(self, operation: str, artifact: ImageArtifact, parameter,
               destination: str, stage: str) -> ImageArtifact:
        errors = []
        for backend in self.backends:
            result = getattr(backend, operation)(artifact.path, parameter, destination)
            successor = ImageArtifact(destination, stage)
            if result.ok and successor.exists():
                logger.info(f"{operation} {parameter} via {backend.name}: {destination}")
                return successor
            errors.append(f"{backend.name}: {result.error or 'no output produced'}")
            # Partial output from a failed backend must not leak
            successor.discard()
        if not errors:
            errors.append("no image backend available")
        raise PostProcessError(f"{operation} failed for {artifact.path} ({'; '.join(errors)})")
