"""Shared fixtures: a throwaway source tree and a codec that records calls."""

from pathlib import Path

import pytest
from PIL import Image

from html_images.codec import ImageHandle, PillowCodec
from html_images.report import Reporter


class RecordingHandle(ImageHandle):
    def __init__(self, path, calls):
        super().__init__(path)
        self.calls = calls

    def resize(self, width=None, height=None):
        self.calls.append(("resize", width, height))
        super().resize(width, height)

    def write_to(self, target):
        self.calls.append(("write", Path(target).name))
        super().write_to(target)


class RecordingCodec(PillowCodec):
    def __init__(self):
        self.calls = []

    def open(self, path):
        return RecordingHandle(path, self.calls)

    def writes(self):
        return [c for c in self.calls if c[0] == "write"]

    def resizes(self):
        return [c for c in self.calls if c[0] == "resize"]


class RecordingReporter(Reporter):
    def __init__(self):
        super().__init__(quiet=True)
        self.notices = []
        self.artifacts = []
        self.batches = []

    def notice(self, notice):
        self.notices.append(notice)

    def generated(self, name, original_kb, new_kb, seconds):
        self.artifacts.append(name)

    def batch(self, generated, total, seconds):
        self.batches.append((generated, total))


@pytest.fixture
def source_root(tmp_path):
    root = tmp_path / "src"
    (root / "img").mkdir(parents=True)
    return root


@pytest.fixture
def make_image():
    def _make(path, size=(200, 100), mode="RGB", color=(200, 10, 10)):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.new(mode, size, color).save(path)
        return path
    return _make


@pytest.fixture
def codec():
    return RecordingCodec()


@pytest.fixture
def reporter():
    return RecordingReporter()
