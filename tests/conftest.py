from datetime import datetime

import pytest
from PIL import Image

from zoneshot.utils.artifacts import ImageArtifact
from zoneshot.utils.errors import CaptureError
from zoneshot.utils.paths import ZoneshotPaths


class FakeCaptureBackend:
    """Writes a solid image instead of grabbing the screen."""

    def __init__(self, size=(1200, 900), fail=False):
        self.size = size
        self.fail = fail
        self.destinations = []

    def capture(self, request, destination):
        self.destinations.append(destination)
        if self.fail:
            raise CaptureError("Screenshot failed", hint="sudo apt-get install scrot")
        Image.new("RGB", self.size, color="navy").save(destination, "PNG")
        return ImageArtifact(destination)


@pytest.fixture
def paths(tmp_path):
    return ZoneshotPaths(str(tmp_path / "shots"), timestamp=datetime(2025, 10, 26, 14, 30, 22))


@pytest.fixture
def fake_capture():
    return FakeCaptureBackend()


def image_size(path):
    with Image.open(path) as image:
        return image.size
