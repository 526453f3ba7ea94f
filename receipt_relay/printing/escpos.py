"""
ESC/POS command encoder.

EscposEncoder appends protocol-defined byte sequences to a python-escpos
``Dummy`` printer, which is a pure in-memory sink, and hands the accumulated
buffer to a transport backend. Every style call is a stateless toggle: the
receipt layouts re-issue the "off" call themselves.

One encoder is owned by exactly one render call.
"""

from __future__ import annotations

import logging
from typing import Optional

from escpos.printer import Dummy
from PIL import Image

from receipt_relay.printing.raster import ImageCache, fit_width, qr_image, to_raster

logger = logging.getLogger(__name__)

ESC = b"\x1b"
GS = b"\x1d"

HW_INIT = ESC + b"@"
ALIGN = {"left": ESC + b"a\x00", "center": ESC + b"a\x01", "right": ESC + b"a\x02"}
FONT = {"A": ESC + b"M\x00", "B": ESC + b"M\x01"}
BOLD_ON, BOLD_OFF = ESC + b"E\x01", ESC + b"E\x00"
DOUBLE_STRIKE_ON, DOUBLE_STRIKE_OFF = ESC + b"G\x01", ESC + b"G\x00"
CHAR_SIZE = GS + b"!"
FEED_LINES = ESC + b"d"
PARTIAL_CUT = GS + b"V\x42\x00"
RASTER_HEADER = GS + b"v0\x00"

MAX_IMAGE_WIDTH = 384


class EscposEncoder:
    """
    Builds an ESC/POS byte stream.

    Args:
        image_cache: cache used by print_image(); without one, URL images are skipped.
        max_image_width: dot width that wider images are scaled down to.
        encoding: codec for write(); unencodable characters become '?'.
    """

    def __init__(
        self,
        image_cache: Optional[ImageCache] = None,
        max_image_width: int = MAX_IMAGE_WIDTH,
        encoding: str = "utf-8",
    ) -> None:
        self._sink = Dummy()
        self.image_cache = image_cache
        self.max_image_width = max_image_width
        self.encoding = encoding

    def _emit(self, data: bytes) -> None:
        self._sink._raw(data)

    def init(self) -> None:
        self._emit(HW_INIT)

    def set_align(self, align: str) -> None:
        self._emit(ALIGN.get(align, ALIGN["left"]))

    def set_font(self, font: str) -> None:
        self._emit(FONT["B"] if font == "B" else FONT["A"])

    def set_bold(self, bold: bool) -> None:
        self._emit(BOLD_ON if bold else BOLD_OFF)

    def set_double_strike(self, enabled: bool) -> None:
        self._emit(DOUBLE_STRIKE_ON if enabled else DOUBLE_STRIKE_OFF)

    def set_size(self, width: int, height: int) -> None:
        """
        Character magnification: 0 = normal, 1 = double, per axis.
        Height goes in the high nibble, width in the low nibble.
        """
        n = ((height & 0x0F) << 4) | (width & 0x0F)
        self._emit(CHAR_SIZE + bytes((n,)))

    def write(self, text: str) -> None:
        self._emit(text.encode(self.encoding, errors="replace"))

    def feed(self, lines: int) -> None:
        self._emit(FEED_LINES + bytes((max(0, min(int(lines), 255)),)))

    def cut(self) -> None:
        self._emit(PARTIAL_CUT)

    def print_raster(self, img: Image.Image) -> None:
        """
        GS v 0: raster bit image, normal density.
        """
        data, width_bytes, height = to_raster(img)
        self._emit(RASTER_HEADER)
        self._emit(bytes((width_bytes % 256, width_bytes // 256)))
        self._emit(bytes((height % 256, height // 256)))
        self._emit(data)

    def print_qr_code(self, data: str) -> None:
        """
        Print a QR code as a raster image; native QR commands are not
        supported by every printer model.
        """
        if not data:
            return
        try:
            img = qr_image(data)
        except Exception as e:
            logger.warning("Error creating QR code: %s", e)
            return
        self.print_raster(img)

    def print_image(self, url: str) -> None:
        """
        Print an image fetched from a URL (through the disk cache).
        A failing image is logged and skipped so the rest of the receipt prints.
        """
        if not url:
            return
        if self.image_cache is None:
            logger.warning("No image cache configured; skipping image %s", url)
            return
        try:
            img = self.image_cache.get(url)
            img = fit_width(img, self.max_image_width)
        except Exception as e:
            logger.warning("Error processing image from URL %s: %s", url, e)
            return
        self.print_raster(img)

    def get_bytes(self) -> bytes:
        return self._sink.output


__all__ = ["EscposEncoder", "MAX_IMAGE_WIDTH"]
