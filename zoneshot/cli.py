#!/usr/bin/env python3
"""
Zoneshot CLI interface and command routing.

This module handles command-line argument parsing, turns the arguments into
a CaptureRequest and routes it to the capture pipeline (or lists windows).
Every argument is validated before the output directory is touched.

Main entry point: zoneshot/__main__.py or the zoneshot console script.
"""

import argparse
import logging
import sys
from decimal import Decimal

from zoneshot.utils.capture import CaptureMode
from zoneshot.utils.errors import CaptureError, ValidationError
from zoneshot.utils.geometry import (
    ZONE_NAMES,
    parse_region,
    parse_zone_chain,
    parse_zoom_factor,
)
from zoneshot.utils.paths import ZoneshotPaths

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# --dashboard is shorthand for --zone center --zoom 2.5
DASHBOARD_ZONES = ("center",)
DASHBOARD_ZOOM = Decimal("2.5")


class ZoneshotArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 and a usage hint on errors."""

    def error(self, message):
        print(f"❌ Error: {message}")
        print("Use --help for usage information")
        self.exit(1)


def _validated(parse):
    """Adapt a geometry parser into an argparse type."""
    def convert(text):
        try:
            return parse(text)
        except ValidationError as e:
            raise argparse.ArgumentTypeError(str(e))
    convert.__name__ = parse.__name__
    return convert


def build_parser() -> argparse.ArgumentParser:
    parser = ZoneshotArgumentParser(
        prog="zoneshot",
        description="Zoneshot - Capture the screen, a window or a selection, "
                    "crop it to named zones and magnify it",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Available zones:
  {', '.join(ZONE_NAMES)}
Zones can be chained with ':' and each zone is taken from the previous crop.

Examples:
  %(prog)s                              # Full screen capture
  %(prog)s --window Firefox             # Capture Firefox window
  %(prog)s --zone bottom --zoom 2       # Bottom third, zoomed 2x
  %(prog)s --zone bottom:right          # Right half of the bottom third
  %(prog)s --zone center --zoom 3       # Center area, magnified 3x
  %(prog)s --region 100,100,800,600     # Custom 800x600 region
  %(prog)s --select                     # Draw box around region
  %(prog)s --dashboard                  # Same as --zone center --zoom 2.5
        """,
    )

    # Capture mode
    parser.add_argument("--window", "-w", metavar="NAME",
                        help="Capture specific window by name")
    parser.add_argument("--select", "-s", action="store_true",
                        help="Interactive region selection (wins over --window)")

    # Post-processing
    parser.add_argument("--zone", metavar="ZONE[:ZONE...]", type=_validated(parse_zone_chain),
                        help="Crop to a pre-defined zone, or a chain of zones")
    parser.add_argument("--region", metavar="X,Y,W,H", type=_validated(parse_region),
                        help="Crop to a custom region (pixels)")
    parser.add_argument("--zoom", "-z", metavar="FACTOR", type=_validated(parse_zoom_factor),
                        help="Zoom/upscale image (e.g., 2 for 2x)")
    parser.add_argument("--dashboard", action="store_true",
                        help="Preset for --zone center --zoom 2.5")

    # Output
    parser.add_argument("--output", "-o", metavar="DIR",
                        help=f"Output directory (default: {ZoneshotPaths.DEFAULT_SCREENSHOTS_DIR})")
    parser.add_argument("--notify", action="store_true",
                        help="Show a desktop notification when the screenshot is saved")
    parser.add_argument("--list-windows", action="store_true",
                        help="List available windows and exit")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Enable debug logging")
    return parser


def build_request(args):
    """
    Turn parsed arguments into a CaptureRequest.

    Raises:
        ValidationError: If the combination of arguments is invalid
    """
    from zoneshot.utils.pipeline import CaptureRequest

    zone_chain = args.zone
    zoom_factor = args.zoom
    if args.dashboard:
        # Explicit --zone/--zoom win over the preset
        zone_chain = zone_chain or DASHBOARD_ZONES
        zoom_factor = zoom_factor if zoom_factor is not None else DASHBOARD_ZOOM

    if zone_chain and args.region is not None:
        raise ValidationError("--zone and --region cannot be combined")

    if args.select:
        mode = CaptureMode.SELECT
    elif args.window is not None:
        mode = CaptureMode.WINDOW
    else:
        mode = CaptureMode.FULL

    return CaptureRequest(
        mode=mode,
        window_pattern=args.window,
        zone_chain=zone_chain or (),
        region=args.region,
        zoom_factor=zoom_factor,
    )


def cmd_list_windows(args) -> int:
    """List all available windows."""
    from zoneshot.utils.window_detect import list_windows

    windows = list_windows()
    if not windows:
        print("No windows found (install wmctrl or xdotool to list windows)")
        return 0

    print(f"Found {len(windows)} windows:")
    for line in windows:
        print(f"  {line}")
    return 0


def cmd_screenshot(args, request) -> int:
    """Run the capture pipeline and report the result."""
    from zoneshot.utils.finalize import format_report
    from zoneshot.utils.pipeline import run_pipeline

    paths = ZoneshotPaths(args.output)

    try:
        result = run_pipeline(request, paths)
    except CaptureError as e:
        print(f"❌ {e}")
        if e.available_windows is not None:
            print("Available windows:")
            for line in e.available_windows or ["(install wmctrl or xdotool to list windows)"]:
                print(f"  {line}")
        elif e.hint:
            print("Make sure required tools are installed:")
            print(f"  {e.hint}")
        return 1
    except OSError as e:
        print(f"❌ Could not write screenshot to {paths.directory}: {e}")
        return 1

    for line in format_report(result):
        print(line)

    if args.notify:
        from zoneshot.utils.notifications import notify_screenshot_saved

        try:
            notify_screenshot_saved(result)
        except Exception as e:
            logging.getLogger(__name__).warning(f"Failed to show notification: {e}")

    return 0


def main(argv=None) -> int:
    """Main entry point for CLI interface."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format=LOG_FORMAT,
    )

    if args.list_windows:
        return cmd_list_windows(args)

    try:
        request = build_request(args)
    except ValidationError as e:
        print(f"❌ Error: {e}")
        print("Use --help for usage information")
        return 1

    return cmd_screenshot(args, request)


if __name__ == "__main__":
    sys.exit(main())
