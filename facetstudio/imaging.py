# facetstudio/imaging.py
# Selfie preparation: resize, mirror, face crop, skin tone sample, data URLs.

import base64
import io
import logging
import os
import re
from typing import Optional, Tuple

import numpy as np
from PIL import Image, ImageOps

# OpenCV optional (avoid hard-crash on Cloud if cv2/system libs fail)
try:
    import cv2
except Exception:
    cv2 = None

log = logging.getLogger(__name__)

MAX_SIZE = 1024
JPEG_QUALITY = 85
IMAGE_TYPES = ["jpg", "jpeg", "png", "webp"]

_DATA_URL = re.compile(r"^data:(image/[\w.+-]+);base64,(.*)$", re.DOTALL)


def load_image(data: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(data))
    img = ImageOps.exif_transpose(img)
    return img.convert("RGB")


def is_image_upload(name: str, mime: Optional[str] = None) -> bool:
    if mime:
        return mime.startswith("image/")
    ext = os.path.splitext(name or "")[1].lstrip(".").lower()
    return ext in IMAGE_TYPES


def is_readable_image(data: bytes) -> bool:
    if not data:
        return False
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
        return True
    except Exception:
        # UnidentifiedImageError, truncated or corrupt files
        return False


def bounded_size(width: int, height: int, max_size: int = MAX_SIZE) -> Tuple[int, int]:
    if width > height:
        if width > max_size:
            return max_size, round(height * (max_size / width))
    elif height > max_size:
        return round(width * (max_size / height)), max_size
    return width, height


def encode_jpeg(img: Image.Image, quality: int = JPEG_QUALITY) -> bytes:
    buf = io.BytesIO()
    img.convert("RGB").save(buf, format="JPEG", quality=quality)
    return buf.getvalue()


def prepare_capture(data: bytes, max_size: int = MAX_SIZE, mirror: bool = True, quality: int = JPEG_QUALITY) -> bytes:
    """Bound the long edge, mirror like a front camera preview, re-encode as JPEG."""
    img = load_image(data)
    size = bounded_size(img.width, img.height, max_size)
    if size != img.size:
        img = img.resize(size, Image.Resampling.LANCZOS)
    if mirror:
        img = ImageOps.mirror(img)
    return encode_jpeg(img, quality)


def to_data_url(data: bytes, mime: str = "image/jpeg") -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def from_data_url(src: str) -> Tuple[str, bytes]:
    """Return ``(mime, raw bytes)``; bare base64 is treated as JPEG."""
    m = _DATA_URL.match(src or "")
    if m:
        return m.group(1), base64.b64decode(m.group(2))
    return "image/jpeg", base64.b64decode(src or "")


def thumbnail_data_url(data: bytes, size: int = 320) -> str:
    img = load_image(data)
    img.thumbnail((size, size))
    return to_data_url(encode_jpeg(img, 80))


# -----------------------------
# FACE (optional OpenCV)
# -----------------------------
def detect_face_box(img: Image.Image) -> Optional[Tuple[int, int, int, int]]:
    if cv2 is None:
        return None
    try:
        gray = cv2.cvtColor(np.array(img.convert("RGB")), cv2.COLOR_RGB2GRAY)
        cascade_path = os.path.join(cv2.data.haarcascades, "haarcascade_frontalface_default.xml")
        face_cascade = cv2.CascadeClassifier(cascade_path)
        faces = face_cascade.detectMultiScale(gray, scaleFactor=1.1, minNeighbors=5, minSize=(60, 60))
        if faces is None or len(faces) == 0:
            return None
        x, y, w, h = max(faces, key=lambda b: b[2] * b[3])
        return int(x), int(y), int(w), int(h)
    except Exception as e:
        log.warning("Face detection unavailable: %s", e)
        return None


def padded_box(box: Tuple[int, int, int, int], width: int, height: int, pad: float = 0.35) -> Tuple[int, int, int, int]:
    """Grow a face box by ``pad`` on every side, clamped to the image. Returns (left, top, right, bottom)."""
    x, y, w, h = box
    dx, dy = int(w * pad), int(h * pad)
    return max(0, x - dx), max(0, y - dy), min(width, x + w + dx), min(height, y + h + dy)


def crop_to_face(img: Image.Image, pad: float = 0.35) -> Image.Image:
    box = detect_face_box(img)
    if not box:
        return img
    return img.crop(padded_box(box, img.width, img.height, pad))


def skin_mask(roi_rgb: np.ndarray) -> np.ndarray:
    ycrcb = cv2.cvtColor(roi_rgb, cv2.COLOR_RGB2YCrCb)
    Y = ycrcb[:, :, 0]
    Cr = ycrcb[:, :, 1]
    Cb = ycrcb[:, :, 2]
    return (Cr > 135) & (Cr < 180) & (Cb > 85) & (Cb < 135) & (Y > 40)


def mean_skin_rgb(pixels: np.ndarray) -> Tuple[int, int, int]:
    """Mean of skin pixels after dropping the darkest/brightest 5% by luminance."""
    lum = 0.2126 * pixels[:, 0] + 0.7152 * pixels[:, 1] + 0.0722 * pixels[:, 2]
    lo, hi = np.percentile(lum, [5, 95])
    keep = (lum >= lo) & (lum <= hi)
    kept = pixels[keep] if keep.any() else pixels
    return tuple(int(x) for x in kept.mean(axis=0))


def estimate_skin_tone_hex(img: Image.Image) -> Optional[str]:
    if cv2 is None:
        return None
    box = detect_face_box(img)
    if not box:
        return None

    x, y, w, h = box
    face = np.array(img.convert("RGB"))[y:y + h, x:x + w]
    if face.size == 0:
        return None
    fh, fw, _ = face.shape
    roi = np.ascontiguousarray(face[int(fh * 0.25):int(fh * 0.80), int(fw * 0.18):int(fw * 0.82)])
    if roi.size == 0:
        return None

    try:
        mask = skin_mask(roi)
        if mask.mean() < 0.02:
            return None
        r, g, b = mean_skin_rgb(roi[mask])
    except Exception as e:
        log.warning("Skin tone sampling failed: %s", e)
        return None
    return f"#{r:02x}{g:02x}{b:02x}"
