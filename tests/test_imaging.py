from decimal import Decimal

import pytest
from PIL import Image

from conftest import image_size
from zoneshot.utils import imaging
from zoneshot.utils.artifacts import ImageArtifact, ToolResult
from zoneshot.utils.errors import PostProcessError
from zoneshot.utils.geometry import Rectangle


@pytest.fixture
def source(tmp_path):
    path = tmp_path / "temp.png"
    Image.new("RGB", (1200, 900), color="white").save(path, "PNG")
    return ImageArtifact(str(path))


class BrokenBackend:
    name = "broken"
    available = True

    def __init__(self):
        self.calls = []

    def probe(self, path):
        self.calls.append("probe")
        return ToolResult(False, error="identify: no decode delegate")

    def crop(self, source, rect, destination):
        self.calls.append("crop")
        # Leaves a truncated file behind, like a crashed converter would
        with open(destination, "wb") as fh:
            fh.write(b"\x89PNG")
        return ToolResult(False, error="convert: crashed")

    def resize(self, source, percent, destination):
        self.calls.append("resize")
        return ToolResult(False, error="convert: crashed")


class MissingBackend:
    name = "missing"
    available = False


def test_pillow_probe_crop_and_resize(source, tmp_path):
    tool = imaging.ImageTool([imaging.PillowBackend()])

    assert tool.probe(source) == (1200, 900)

    cropped = tool.crop(source, Rectangle(0, 600, 1200, 300), str(tmp_path / "zone_1.png"), stage="zone_1")
    assert cropped.stage == "zone_1"
    assert image_size(cropped.path) == (1200, 300)
    assert source.exists()

    zoomed = tool.resize(cropped, Decimal(250), str(tmp_path / "zoom.png"))
    assert image_size(zoomed.path) == (3000, 750)


def test_pillow_crop_is_clipped_to_image(source, tmp_path):
    tool = imaging.ImageTool([imaging.PillowBackend()])

    cropped = tool.crop(source, Rectangle(1000, 800, 500, 500), str(tmp_path / "region.png"))

    assert image_size(cropped.path) == (200, 100)


def test_pillow_crop_outside_image_fails(source, tmp_path):
    tool = imaging.ImageTool([imaging.PillowBackend()])

    with pytest.raises(PostProcessError):
        tool.crop(source, Rectangle(5000, 5000, 10, 10), str(tmp_path / "region.png"))


def test_failed_backend_falls_through_and_cleans_partial_output(source, tmp_path):
    broken = BrokenBackend()
    tool = imaging.ImageTool([broken, imaging.PillowBackend()])
    destination = tmp_path / "zone_1.png"

    assert tool.probe(source) == (1200, 900)
    cropped = tool.crop(source, Rectangle(0, 0, 600, 450), str(destination))

    assert broken.calls == ["probe", "crop"]
    assert image_size(cropped.path) == (600, 450)


def test_every_backend_failing_raises_and_leaves_no_file(source, tmp_path):
    tool = imaging.ImageTool([BrokenBackend()])
    destination = tmp_path / "zone_1.png"

    with pytest.raises(PostProcessError) as excinfo:
        tool.crop(source, Rectangle(0, 0, 600, 450), str(destination))

    assert "convert: crashed" in str(excinfo.value)
    assert not destination.exists()


def test_unavailable_backends_are_dropped(source, tmp_path):
    tool = imaging.ImageTool([MissingBackend()])

    assert tool.available is False
    with pytest.raises(PostProcessError):
        tool.resize(source, Decimal(200), str(tmp_path / "zoom.png"))


def test_probe_of_corrupt_file_raises(tmp_path):
    corrupt = tmp_path / "temp.png"
    corrupt.write_bytes(b"not a png")
    tool = imaging.ImageTool([imaging.PillowBackend()])

    with pytest.raises(PostProcessError):
        tool.probe(ImageArtifact(str(corrupt)))


def test_imagemagick_commands_prefer_magick(monkeypatch):
    commands = []
    monkeypatch.setattr(imaging, "check_tool_available", lambda tool: tool == "magick")
    monkeypatch.setattr(imaging, "run_tool", lambda command: commands.append(command) or ToolResult(True, "1200 900"))

    backend = imaging.ImageMagickBackend()
    backend.probe("in.png")
    backend.crop("in.png", Rectangle(600, 0, 600, 300), "out.png")
    backend.resize("in.png", Decimal(250), "out.png")

    assert commands == [
        ["magick", "identify", "-format", "%w %h", "in.png"],
        ["magick", "in.png", "-crop", "600x300+600+0", "+repage", "out.png"],
        ["magick", "in.png", "-resize", "250%", "out.png"],
    ]


def test_imagemagick6_uses_convert_and_identify(monkeypatch):
    monkeypatch.setattr(imaging, "check_tool_available", lambda tool: tool == "convert")

    backend = imaging.ImageMagickBackend()

    assert backend.available is True
    assert backend.convert_cmd == ["convert"]
    assert backend.identify_cmd == ["identify"]


def test_imagemagick_unavailable(monkeypatch):
    monkeypatch.setattr(imaging, "check_tool_available", lambda tool: False)

    assert imaging.ImageMagickBackend().available is False


def test_backend_order_from_env(monkeypatch):
    monkeypatch.setenv(imaging.BACKENDS_ENV_VAR, "Pillow, gimp")
    assert imaging.backend_order_from_env() == ("pillow",)

    monkeypatch.setenv(imaging.BACKENDS_ENV_VAR, "")
    assert imaging.backend_order_from_env() == ()

    monkeypatch.delenv(imaging.BACKENDS_ENV_VAR)
    assert imaging.backend_order_from_env() == ("imagemagick", "pillow")


def test_pillow_resize_overflow_fails_cleanly(source, tmp_path):
    tool = imaging.ImageTool([imaging.PillowBackend()])
    destination = tmp_path / "zoom.png"

    with pytest.raises(PostProcessError):
        tool.resize(source, Decimal("10000000000000"), str(destination))

    assert not destination.exists()
