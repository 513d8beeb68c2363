"""
Zone geometry and zoom arithmetic for Zoneshot.

This module is pure: it never touches the disk. It handles:
- Resolving a named zone against the current image dimensions
- Parsing and resolving recursive zone chains ("bottom:right")
- Parsing explicit X,Y,W,H regions
- Converting a zoom factor into a resize percentage

All divisions are floor divisions. Thirds are h//3 tall and the bottom third
starts at (2*h)//3, so a chain resolved twice against the same dimensions
always yields the same rectangles.
"""

import re
from decimal import Decimal
from typing import Iterable, List, NamedTuple, Tuple

from .errors import ValidationError

ZONE_NAMES: Tuple[str, ...] = (
    "top-left",
    "top-right",
    "bottom-left",
    "bottom-right",
    "center",
    "top",
    "middle",
    "bottom",
    "left",
    "right",
)

ZONE_SEPARATOR = ":"

# Integers or decimals only: no sign, no exponent
ZOOM_PATTERN = re.compile(r"^[0-9]+(\.[0-9]+)?$")


class Rectangle(NamedTuple):
    """Crop rectangle in absolute pixels."""
    x: int
    y: int
    w: int
    h: int

    @property
    def geometry(self) -> str:
        """ImageMagick geometry string, e.g. '600x300+600+0'."""
        return f"{self.w}x{self.h}+{self.x}+{self.y}"

    def __str__(self) -> str:
        return self.geometry


def resolve_zone(zone: str, width: int, height: int) -> Rectangle:
    """
    Resolve a zone name against the current image dimensions.

    Args:
        zone: One of ZONE_NAMES
        width: Width of the current (possibly already cropped) image
        height: Height of the current image

    Returns:
        Rectangle relative to the current image

    Raises:
        ValidationError: If the zone name is unknown
    """
    half_w, half_h = width // 2, height // 2

    if zone == "top-left":
        return Rectangle(0, 0, half_w, half_h)
    elif zone == "top-right":
        return Rectangle(half_w, 0, half_w, half_h)
    elif zone == "bottom-left":
        return Rectangle(0, half_h, half_w, half_h)
    elif zone == "bottom-right":
        return Rectangle(half_w, half_h, half_w, half_h)
    elif zone == "center":
        return Rectangle(width // 4, height // 4, half_w, half_h)
    elif zone == "top":
        return Rectangle(0, 0, width, height // 3)
    elif zone == "middle":
        return Rectangle(0, height // 3, width, height // 3)
    elif zone == "bottom":
        # (2*h)//3 rather than 2*(h//3): no uncropped sliver at the bottom
        return Rectangle(0, (height * 2) // 3, width, height // 3)
    elif zone == "left":
        return Rectangle(0, 0, half_w, height)
    elif zone == "right":
        return Rectangle(half_w, 0, half_w, height)

    raise ValidationError(
        f"Unknown zone: '{zone}'. Available: {', '.join(ZONE_NAMES)}"
    )


def parse_zone_chain(text: str) -> Tuple[str, ...]:
    """
    Split and validate a zone chain such as 'bottom:right'.

    Raises:
        ValidationError: If the chain is empty or contains an unknown zone
    """
    zones = tuple(part.strip() for part in text.split(ZONE_SEPARATOR))
    if not text.strip() or any(not zone for zone in zones):
        raise ValidationError(
            f"Invalid zone chain: '{text}'. Use ZONE[:ZONE...] with zones from: "
            f"{', '.join(ZONE_NAMES)}"
        )
    for zone in zones:
        resolve_zone(zone, 0, 0)
    return zones


def resolve_zone_chain(zones: Iterable[str], width: int, height: int) -> List[Rectangle]:
    """
    Resolve a zone chain without touching any image.

    Each rectangle is relative to the image produced by the previous step,
    whose size is assumed to be exactly the previous rectangle's size.
    """
    rectangles = []
    for zone in zones:
        rect = resolve_zone(zone, width, height)
        rectangles.append(rect)
        width, height = rect.w, rect.h
    return rectangles


def parse_region(text: str) -> Rectangle:
    """
    Parse an explicit region in 'X,Y,W,H' format.

    Raises:
        ValidationError: If the format is wrong, a value is negative or the
            region is empty
    """
    try:
        x, y, w, h = (int(part) for part in text.split(","))
    except ValueError:
        raise ValidationError(
            f"Region format should be 'X,Y,W,H' (e.g., '100,100,800,600'), got '{text}'"
        )
    if min(x, y, w, h) < 0 or w == 0 or h == 0:
        raise ValidationError(
            f"Region values must be non-negative with a non-zero size, got '{text}'"
        )
    return Rectangle(x, y, w, h)


def parse_zoom_factor(text: str) -> Decimal:
    """
    Validate a zoom factor such as '2' or '1.5'.

    Raises:
        ValidationError: If the text is not a plain positive number
    """
    if not ZOOM_PATTERN.match(text):
        raise ValidationError(
            f"--zoom requires a numeric value (e.g., 2 or 1.5), got '{text}'"
        )
    factor = Decimal(text)
    if factor <= 0:
        raise ValidationError(f"--zoom must be greater than zero, got '{text}'")
    return factor


def to_scale_percent(factor: Decimal) -> Decimal:
    """
    Convert a zoom factor into a resize percentage.

    There is no upper bound: a factor of 100 yields a 10000% resize.
    """
    # 2.50 * 100 -> 2.5E+2; format_percent renders it as "250"
    return (Decimal(factor) * 100).normalize()


def format_percent(percent: Decimal) -> str:
    """Render a percentage for the resize tool (never in exponent form)."""
    return f"{percent:f}%"
