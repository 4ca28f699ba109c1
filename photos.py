"""
Photo capture, downscaling and the in-memory photo list.

Photos travel as ``data:image/jpeg;base64,...`` strings, the same form the
browser form uses, so a record snapshot is self-contained JSON.
"""

import base64
import binascii
import io
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from PIL import Image, ImageOps, UnidentifiedImageError

import settings

log = logging.getLogger(__name__)

DATA_URL_PREFIX = "data:"


@dataclass
class DecodeResult:
    """Outcome of decoding and downscaling one image."""
    ok: bool
    data_url: Optional[str] = None
    width: int = 0
    height: int = 0
    error: Optional[str] = None
    source: str = ""


def decode_data_url(data_url: str) -> bytes:
    """Return the raw bytes of a base64 ``data:`` URL."""
    if not data_url.startswith(DATA_URL_PREFIX) or "," not in data_url:
        raise ValueError("not a data URL")
    header, encoded = data_url.split(",", 1)
    if ";base64" not in header:
        raise ValueError("data URL is not base64-encoded")
    try:
        return base64.b64decode(encoded, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"invalid base64 payload: {exc}") from exc


def encode_data_url(raw: bytes, mime: str = "image/jpeg") -> str:
    return f"data:{mime};base64," + base64.b64encode(raw).decode("ascii")


def open_image(data: Union[bytes, str]) -> Image.Image:
    """Decode bytes or a data URL into a fully loaded RGB image."""
    raw = decode_data_url(data) if isinstance(data, str) else data
    img = Image.open(io.BytesIO(raw))
    img.load()
    img = ImageOps.exif_transpose(img)
    if img.mode != "RGB":
        img = img.convert("RGB")
    return img


def scaled_size(width: int, height: int, max_dim: int = settings.PHOTO_MAX_DIM) -> tuple[int, int]:
    """Uniform scale so the longer edge is at most ``max_dim``; never upscales."""
    scale = min(1.0, max_dim / max(width, height))
    return max(1, round(width * scale)), max(1, round(height * scale))


def downscale(
    data: Union[bytes, str],
    max_dim: int = settings.PHOTO_MAX_DIM,
    quality: int = settings.PHOTO_JPEG_QUALITY,
    source: str = "",
) -> DecodeResult:
    """Decode an image, bound its longer edge and re-encode it as JPEG.

    Undecodable input produces ``DecodeResult(ok=False)`` with the reason
    instead of raising, so a batch of selected files can report per-file
    failures.
    """
    try:
        img = open_image(data)
    except (ValueError, UnidentifiedImageError, OSError) as exc:
        log.warning("Could not decode image %s: %s", source or "<inline>", exc)
        return DecodeResult(ok=False, error=str(exc), source=source)

    w, h = scaled_size(img.width, img.height, max_dim)
    if (w, h) != img.size:
        img = img.resize((w, h), Image.LANCZOS)

    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=quality)
    log.debug("Downscaled %s to %dx%d (%d bytes)", source or "<inline>", w, h, buf.tell())
    return DecodeResult(ok=True, data_url=encode_data_url(buf.getvalue()),
                        width=w, height=h, source=source)


def capture(files: Iterable[Union[bytes, str]], max_dim: int = settings.PHOTO_MAX_DIM) -> list[DecodeResult]:
    """Downscale each selected file, preserving selection order."""
    return [downscale(f, max_dim=max_dim, source=f"#{i}") for i, f in enumerate(files)]


class PhotoList:
    """Insertion-ordered photos with one active entry.

    ``active`` is ``None`` exactly when the list is empty.
    """

    def __init__(self, photos: Optional[list[str]] = None, active: Optional[int] = None):
        self.photos = list(photos or [])
        if not self.photos:
            self.active = None
        elif active is None or not 0 <= active < len(self.photos):
            self.active = 0
        else:
            self.active = active

    def __len__(self):
        return len(self.photos)

    @property
    def active_photo(self) -> Optional[str]:
        return None if self.active is None else self.photos[self.active]

    def _check(self, index: int) -> None:
        if not 0 <= index < len(self.photos):
            raise IndexError(f"photo index {index} out of range (have {len(self.photos)})")

    def add(self, images: Iterable[str]) -> int:
        before = len(self.photos)
        self.photos.extend(images)
        if before == 0 and self.photos:
            self.active = 0
        return len(self.photos) - before

    def select(self, index: int) -> None:
        self._check(index)
        self.active = index

    def make_primary(self, index: int) -> None:
        """Move photo ``index`` to the front and make it active."""
        self._check(index)
        if index:
            self.photos.insert(0, self.photos.pop(index))
        self.active = 0

    def remove(self, index: int) -> str:
        self._check(index)
        removed = self.photos.pop(index)
        if not self.photos:
            self.active = None
        elif index <= self.active:
            self.active = max(0, self.active - 1)
        return removed

    def clear(self) -> None:
        self.photos = []
        self.active = None
