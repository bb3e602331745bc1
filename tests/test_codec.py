import pytest
from PIL import Image

from html_images.codec import PillowCodec, supported_formats
from html_images.errors import CodecError
from html_images.options import FormatOptions, JpegOptions, PngOptions


@pytest.fixture
def pillow():
    return PillowCodec()


def test_supported_formats_are_lowercase(pillow):
    assert {"jpeg", "png", "gif"} <= pillow.supported_formats
    assert "jpg" not in supported_formats()


def test_resize_by_width_keeps_aspect_ratio(pillow, tmp_path, make_image):
    src = make_image(tmp_path / "photo.jpg", size=(200, 100))
    handle = pillow.open(src)
    handle.resize(100, None)
    handle.write_to(tmp_path / "out.jpg")
    with Image.open(tmp_path / "out.jpg") as im:
        assert im.size == (100, 50)


def test_resize_to_box_crops(pillow, tmp_path, make_image):
    src = make_image(tmp_path / "photo.png", size=(200, 100))
    handle = pillow.open(src)
    handle.resize(50, 50)
    handle.write_to(tmp_path / "out.png")
    with Image.open(tmp_path / "out.png") as im:
        assert im.size == (50, 50)


def test_encode_reports_applied_quality(pillow, tmp_path):
    handle = pillow.open(tmp_path / "unused.png")
    assert handle.encode("jpg", FormatOptions())["quality"] == 75
    assert handle.encode("jpeg", JpegOptions(quality=40))["quality"] == 40
    assert "quality" not in handle.encode("png", PngOptions(quality=81))


def test_encode_rejects_unknown_format(pillow, tmp_path):
    with pytest.raises(CodecError):
        pillow.open(tmp_path / "x.png").encode("xyz", FormatOptions())


def test_background_flattens_transparency(pillow, tmp_path, make_image):
    src = make_image(tmp_path / "logo.png", mode="RGBA", color=(0, 0, 0, 0))
    handle = pillow.open(src)
    assert handle.set_background("#ff0000")
    handle.encode("jpeg", FormatOptions())
    handle.write_to(tmp_path / "logo.jpg")
    with Image.open(tmp_path / "logo.jpg") as im:
        assert im.format == "JPEG"
        r, g, b = im.getpixel((10, 10))
        assert r > 240 and g < 15 and b < 15


def test_background_ignored_for_opaque_image(pillow, tmp_path, make_image):
    src = make_image(tmp_path / "photo.png")
    assert not pillow.open(src).set_background("#ffffff")


def test_failed_write_leaves_nothing_behind(pillow, tmp_path):
    src = tmp_path / "broken.jpg"
    src.write_bytes(b"not an image")
    out_dir = tmp_path / "out"
    out_dir.mkdir()
    handle = pillow.open(src)
    handle.resize(10, None)
    with pytest.raises(CodecError):
        handle.write_to(out_dir / "broken.w10.jpg")
    assert list(out_dir.iterdir()) == []


def test_missing_source_raises_codec_error(pillow, tmp_path):
    with pytest.raises(CodecError):
        pillow.open(tmp_path / "missing.png").has_alpha
