import os
from decimal import Decimal

import pytest

from conftest import FakeCaptureBackend, image_size
from zoneshot.utils.artifacts import ToolResult
from zoneshot.utils.capture import CaptureMode
from zoneshot.utils.errors import CaptureError, ValidationError
from zoneshot.utils.geometry import Rectangle
from zoneshot.utils.imaging import ImageTool, PillowBackend
from zoneshot.utils.pipeline import CaptureRequest, run_pipeline


class FlakyPillowBackend(PillowBackend):
    """Pillow backend that fails operations whose output matches a name."""

    name = "flaky"

    def __init__(self, fail_crop_into=None, fail_resize=False):
        self.fail_crop_into = fail_crop_into
        self.fail_resize = fail_resize

    def crop(self, source, rect, destination):
        if self.fail_crop_into and os.path.basename(destination).startswith(self.fail_crop_into):
            return ToolResult(False, error="convert: corrupt image")
        return super().crop(source, rect, destination)

    def resize(self, source, percent, destination):
        if self.fail_resize:
            return ToolResult(False, error="convert: resize failed")
        return super().resize(source, percent, destination)


def _files(paths):
    return sorted(os.listdir(paths.directory))


def test_request_validation():
    with pytest.raises(ValidationError):
        CaptureRequest(mode=CaptureMode.WINDOW)
    with pytest.raises(ValidationError):
        CaptureRequest(mode=CaptureMode.WINDOW, window_pattern="  ")
    with pytest.raises(ValidationError):
        CaptureRequest(zoom_factor=Decimal(0))

    request = CaptureRequest(zone_chain=["bottom", "right"])
    assert request.zone_chain == ("bottom", "right")
    assert request.needs_processing is True
    assert CaptureRequest().needs_processing is False


def test_plain_capture_goes_straight_to_final_path(paths, fake_capture):
    result = run_pipeline(CaptureRequest(), paths, fake_capture, ImageTool([PillowBackend()]))

    assert fake_capture.destinations == [paths.screenshot_path]
    assert result.path == paths.screenshot_path
    assert result.size == os.path.getsize(paths.screenshot_path)
    assert result.degraded is False
    assert _files(paths) == ["dashboard_20251026_143022.png"]


def test_zone_chain_crops_recursively(paths, fake_capture):
    request = CaptureRequest(zone_chain=("bottom", "right"))

    result = run_pipeline(request, paths, fake_capture, ImageTool([PillowBackend()]))

    assert fake_capture.destinations == [paths.capture_path]
    assert image_size(result.path) == (600, 300)
    assert result.zones_applied == ("bottom", "right")
    assert result.skipped == ()
    assert _files(paths) == ["dashboard_20251026_143022.png"]


def test_unknown_zone_halts_chain_and_keeps_last_crop(paths, fake_capture):
    request = CaptureRequest(zone_chain=("bottom", "sideways", "left"))

    result = run_pipeline(request, paths, fake_capture, ImageTool([PillowBackend()]))

    assert image_size(result.path) == (1200, 300)
    assert result.zones_applied == ("bottom",)
    assert result.skipped == ("zone sideways:left",)
    assert result.degraded is True
    assert any("sideways" in warning for warning in result.warnings)
    assert _files(paths) == ["dashboard_20251026_143022.png"]


def test_crop_failure_mid_chain_keeps_previous_crop(paths, fake_capture):
    tool = ImageTool([FlakyPillowBackend(fail_crop_into="zone_2")])

    result = run_pipeline(CaptureRequest(zone_chain=("top-left", "center")), paths, fake_capture, tool)

    assert image_size(result.path) == (600, 450)
    assert result.zones_applied == ("top-left",)
    assert _files(paths) == ["dashboard_20251026_143022.png"]


def test_crop_failure_on_first_zone_keeps_raw_capture(paths, fake_capture):
    tool = ImageTool([FlakyPillowBackend(fail_crop_into="zone_1")])

    result = run_pipeline(CaptureRequest(zone_chain=("bottom",), zoom_factor=Decimal(2)), paths, fake_capture, tool)

    # Zoom still applies to the uncropped capture
    assert image_size(result.path) == (2400, 1800)
    assert result.zones_applied == ()
    assert result.zoom_applied == Decimal(2)
    assert _files(paths) == ["dashboard_20251026_143022.png"]


def test_zoom_applies_after_cropping(paths):
    capture = FakeCaptureBackend(size=(1000, 800))
    request = CaptureRequest(zone_chain=("center",), zoom_factor=Decimal("2.5"))

    result = run_pipeline(request, paths, capture, ImageTool([PillowBackend()]))

    assert image_size(result.path) == (1250, 1000)
    assert result.zoom_applied == Decimal("2.5")
    assert _files(paths) == ["dashboard_20251026_143022.png"]


def test_zoom_failure_keeps_previous_result(paths, fake_capture):
    tool = ImageTool([FlakyPillowBackend(fail_resize=True)])
    request = CaptureRequest(zone_chain=("left",), zoom_factor=Decimal(3))

    result = run_pipeline(request, paths, fake_capture, tool)

    assert image_size(result.path) == (600, 900)
    assert result.zoom_applied is None
    assert result.skipped == ("zoom 3x",)
    assert _files(paths) == ["dashboard_20251026_143022.png"]


@pytest.mark.parametrize("factor", [Decimal("100000000000"), Decimal("9" * 30)])
def test_oversized_zoom_keeps_previous_result(paths, factor):
    capture = FakeCaptureBackend(size=(20, 20))

    result = run_pipeline(CaptureRequest(zoom_factor=factor), paths, capture, ImageTool([PillowBackend()]))

    assert image_size(result.path) == (20, 20)
    assert result.zoom_applied is None
    assert len(result.skipped) == 1
    assert result.skipped[0].startswith("zoom ")
    assert _files(paths) == ["dashboard_20251026_143022.png"]


def test_region_crop(paths, fake_capture):
    request = CaptureRequest(region=Rectangle(100, 100, 800, 600))

    result = run_pipeline(request, paths, fake_capture, ImageTool([PillowBackend()]))

    assert image_size(result.path) == (800, 600)
    assert result.region_applied == Rectangle(100, 100, 800, 600)
    assert _files(paths) == ["dashboard_20251026_143022.png"]


def test_zone_chain_takes_precedence_over_region(paths, fake_capture):
    request = CaptureRequest(zone_chain=("top",), region=Rectangle(0, 0, 10, 10))

    result = run_pipeline(request, paths, fake_capture, ImageTool([PillowBackend()]))

    assert image_size(result.path) == (1200, 300)
    assert result.region_applied is None
    assert result.skipped == ("region 10x10+0+0",)


def test_missing_image_tooling_finalizes_raw_capture(paths, fake_capture, capsys):
    request = CaptureRequest(zone_chain=("center",), zoom_factor=Decimal(2))

    result = run_pipeline(request, paths, fake_capture, ImageTool([]))

    assert image_size(result.path) == (1200, 900)
    assert result.degraded is True
    assert result.skipped == ("zone center", "zoom 2x")
    assert "skipping post-processing" in capsys.readouterr().out
    assert _files(paths) == ["dashboard_20251026_143022.png"]


def test_capture_failure_propagates(paths):
    with pytest.raises(CaptureError):
        run_pipeline(CaptureRequest(zoom_factor=Decimal(2)), paths,
                     FakeCaptureBackend(fail=True), ImageTool([PillowBackend()]))

    assert _files(paths) == []


def test_same_chain_twice_gives_identical_output(tmp_path):
    from zoneshot.utils.paths import ZoneshotPaths

    sizes = []
    for run in ("a", "b"):
        run_paths = ZoneshotPaths(str(tmp_path / run))
        result = run_pipeline(CaptureRequest(zone_chain=("bottom", "right", "center")), run_paths,
                              FakeCaptureBackend(size=(1366, 768)), ImageTool([PillowBackend()]))
        sizes.append(image_size(result.path))

    assert sizes[0] == sizes[1] == (341, 128)


def test_default_image_tool_reads_environment(paths, fake_capture, monkeypatch):
    monkeypatch.setenv("ZONESHOT_IMAGE_BACKENDS", "pillow")

    result = run_pipeline(CaptureRequest(zone_chain=("top-right",)), paths, fake_capture)

    assert image_size(result.path) == (600, 450)
