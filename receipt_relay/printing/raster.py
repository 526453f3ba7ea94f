"""
Raster conversion for ESC/POS images.

- to_raster(): Pillow image -> 1-bit packed raster (8 px per byte, MSB first)
- fit_width(): LANCZOS downscale of images wider than the printhead
- qr_image(): QR code rendered as a Pillow image
- ImageCache: URL images cached on disk, keyed by the md5 of the URL
"""

from __future__ import annotations

import hashlib
import io
import logging
from pathlib import Path
from typing import Optional, Tuple

import qrcode
import requests
from PIL import Image

logger = logging.getLogger(__name__)

THRESHOLD = 128
QR_SIZE = 256


def _flatten(img: Image.Image) -> Image.Image:
    """
    Composite transparent images onto white so transparent areas print as paper.
    """
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
        return Image.alpha_composite(background, rgba).convert("RGB")
    return img


def to_raster(img: Image.Image) -> Tuple[bytes, int, int]:
    """
    Convert an image into ESC/POS raster data.

    Pixels are converted to luminance (ITU-R 601-2); a luminance below 128
    is a printed dot (bit 1). Each row is ceil(width / 8) bytes and the
    padding bits of the last byte are zero.

    Returns:
        (data, width_bytes, height)
    """
    gray = _flatten(img).convert("L")
    width, height = gray.size
    width_bytes = (width + 7) // 8
    # Mode "1" packs MSB first and pads every row to a whole byte with zeros
    mono = gray.point(lambda v: 255 if v < THRESHOLD else 0, mode="1")
    data = mono.tobytes()
    return data, width_bytes, height


def fit_width(img: Image.Image, max_width: int) -> Image.Image:
    """
    Downscale to max_width preserving aspect ratio; narrower images are returned as-is.
    """
    if img.width <= max_width:
        return img
    ratio = max_width / float(img.width)
    new_h = max(1, int(round(img.height * ratio)))
    logger.debug("image resize: src=(%d,%d) -> (%d,%d)", img.width, img.height, max_width, new_h)
    return img.resize((max_width, new_h), Image.LANCZOS)


def qr_image(data: str, size: int = QR_SIZE) -> Image.Image:
    """
    Render a QR code (error correction M) as a grayscale image at most
    ``size`` pixels wide, using whole-pixel modules.
    """
    qr = qrcode.QRCode(error_correction=qrcode.constants.ERROR_CORRECT_M, border=4)
    qr.add_data(data)
    qr.make(fit=True)
    modules = qr.modules_count + 2 * qr.border
    qr.box_size = max(1, size // modules)
    img = qr.make_image(fill_color="black", back_color="white")
    return img.get_image().convert("L")


class ImageCache:
    """
    Disk cache for URL images.

    Entries never expire. A cache hit skips the network; an entry that fails
    to decode is treated as a miss and downloaded again.
    """

    def __init__(self, cache_dir: str, timeout: float = 10.0) -> None:
        self.cache_dir = Path(cache_dir)
        self.timeout = timeout

    def path_for(self, url: str) -> Path:
        return self.cache_dir / hashlib.md5(url.encode("utf-8")).hexdigest()

    def _read_cached(self, path: Path) -> Optional[Image.Image]:
        if not path.is_file():
            return None
        try:
            with Image.open(path) as img:
                img.load()
                return img.copy()
        except Exception as e:
            logger.info("Discarding unreadable cache entry %s: %s", path.name, e)
            return None

    def _download(self, url: str) -> bytes:
        resp = requests.get(url, timeout=self.timeout)
        if resp.status_code != 200:
            raise ValueError(f"bad status code: {resp.status_code}")
        return resp.content

    def get(self, url: str) -> Image.Image:
        """
        Return the decoded image for url.

        Raises:
            requests.RequestException on network failures,
            ValueError on non-200 responses,
            PIL.UnidentifiedImageError when the payload is not an image.
        """
        path = self.path_for(url)
        cached = self._read_cached(path)
        if cached is not None:
            return cached

        data = self._download(url)
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            logger.warning("Failed to write image cache %s: %s", path, e)

        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return img.copy()


__all__ = ["ImageCache", "QR_SIZE", "THRESHOLD", "fit_width", "qr_image", "to_raster"]
