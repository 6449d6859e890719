import io
from types import SimpleNamespace

import numpy as np
import pytest
from PIL import Image, UnidentifiedImageError

from facetstudio import imaging


def _png(size, color=(255, 255, 255)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


@pytest.mark.parametrize(
    "size, expected",
    [
        ((2048, 1024), (1024, 512)),
        ((1000, 3000), (341, 1024)),
        ((640, 480), (640, 480)),
        ((1024, 1024), (1024, 1024)),
    ],
)
def test_bounded_size(size, expected):
    assert imaging.bounded_size(*size) == expected


def test_prepare_capture_resizes_and_mirrors():
    img = Image.new("RGB", (2000, 1000), (255, 255, 255))
    img.paste((255, 0, 0), (0, 0, 1000, 1000))
    buf = io.BytesIO()
    img.save(buf, format="PNG")

    out = Image.open(io.BytesIO(imaging.prepare_capture(buf.getvalue())))

    assert out.format == "JPEG"
    assert out.size == (1024, 512)
    # red half moved to the right
    r, g, b = out.getpixel((900, 256))
    assert r > 200 and g < 60 and b < 60


def test_prepare_capture_without_mirror_keeps_small_images():
    out = Image.open(io.BytesIO(imaging.prepare_capture(_png((320, 240)), mirror=False)))
    assert out.size == (320, 240)


def test_data_urls():
    url = imaging.to_data_url(b"abc", "image/png")
    assert url == "data:image/png;base64,YWJj"
    assert imaging.from_data_url(url) == ("image/png", b"abc")
    assert imaging.from_data_url("YWJj") == ("image/jpeg", b"abc")


def test_thumbnail_is_bounded():
    url = imaging.thumbnail_data_url(_png((1200, 600)), size=300)
    mime, raw = imaging.from_data_url(url)
    assert mime == "image/jpeg"
    assert Image.open(io.BytesIO(raw)).size == (300, 150)


@pytest.mark.parametrize(
    "name, mime, ok",
    [
        ("selfie.JPG", None, True),
        ("selfie.webp", None, True),
        ("notes.txt", None, False),
        ("blob", "image/heic", True),
        ("photo.png", "application/pdf", False),
    ],
)
def test_is_image_upload(name, mime, ok):
    assert imaging.is_image_upload(name, mime) is ok


def test_padded_box_is_clamped():
    assert imaging.padded_box((10, 10, 100, 100), 120, 400, pad=0.2) == (0, 0, 120, 130)


def test_mean_skin_rgb_drops_outliers():
    pixels = np.array([[200, 150, 120]] * 98 + [[0, 0, 0], [255, 255, 255]], dtype=np.uint8)
    assert imaging.mean_skin_rgb(pixels) == (200, 150, 120)


def test_skin_tone_needs_opencv(monkeypatch):
    monkeypatch.setattr(imaging, "cv2", None)
    img = Image.new("RGB", (200, 200), (200, 150, 120))
    assert imaging.estimate_skin_tone_hex(img) is None
    assert imaging.crop_to_face(img) is img


def test_no_face_no_skin_tone():
    # flat colour has nothing for the cascade to find
    img = Image.new("RGB", (200, 200), (200, 150, 120))
    assert imaging.detect_face_box(img) is None
    assert imaging.estimate_skin_tone_hex(img) is None


def test_broken_opencv_build_degrades_to_no_face(monkeypatch):
    # builds without the Haar cascade API
    monkeypatch.setattr(imaging, "cv2", SimpleNamespace())
    img = Image.new("RGB", (200, 200), (200, 150, 120))
    assert imaging.detect_face_box(img) is None
    assert imaging.crop_to_face(img) is img
    assert imaging.estimate_skin_tone_hex(img) is None


def test_skin_sampling_failure_returns_none(monkeypatch):
    monkeypatch.setattr(imaging, "cv2", SimpleNamespace())
    monkeypatch.setattr(imaging, "detect_face_box", lambda img: (20, 20, 160, 160))
    img = Image.new("RGB", (200, 200), (200, 150, 120))
    assert imaging.estimate_skin_tone_hex(img) is None


def test_unreadable_upload_is_rejected():
    assert imaging.is_readable_image(_png((32, 32))) is True
    assert imaging.is_readable_image(b"not really a jpeg") is False
    assert imaging.is_readable_image(b"") is False
    with pytest.raises(UnidentifiedImageError):
        imaging.prepare_capture(b"not really a jpeg")
