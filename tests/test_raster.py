import hashlib
import io

import pytest
from PIL import Image

import receipt_relay.printing.raster as raster
from receipt_relay.printing.raster import ImageCache, fit_width, qr_image, to_raster


def _png_bytes(size=(4, 4), color=0) -> bytes:
    buf = io.BytesIO()
    Image.new("L", size, color).save(buf, format="PNG")
    return buf.getvalue()


class _Resp:
    def __init__(self, status_code: int, content: bytes = b"") -> None:
        self.status_code = status_code
        self.content = content


def test_row_padding_and_msb_first():
    img = Image.new("L", (9, 1), 255)
    img.putpixel((0, 0), 0)
    img.putpixel((8, 0), 0)
    data, width_bytes, height = to_raster(img)
    assert (width_bytes, height) == (2, 1)
    # Pixel 8 lands in the MSB of the second byte; the padding bits stay zero
    assert data == bytes([0x80, 0x80])


def test_threshold_boundary():
    img = Image.new("L", (2, 1))
    img.putpixel((0, 0), 127)
    img.putpixel((1, 0), 128)
    data, _, _ = to_raster(img)
    assert data == bytes([0x80])


def test_transparent_pixels_print_as_paper():
    img = Image.new("RGBA", (8, 1), (0, 0, 0, 0))
    img.putpixel((3, 0), (0, 0, 0, 255))
    data, _, _ = to_raster(img)
    assert data == bytes([0b00010000])


def test_color_uses_luminance():
    img = Image.new("RGB", (2, 1))
    img.putpixel((0, 0), (0, 0, 255))  # L = 29
    img.putpixel((1, 0), (255, 255, 0))  # L = 226
    data, _, _ = to_raster(img)
    assert data == bytes([0x80])


def test_raster_is_deterministic():
    img = Image.effect_noise((37, 11), 64)
    assert to_raster(img) == to_raster(img.copy())


def test_fit_width_only_downscales():
    small = Image.new("L", (100, 50))
    assert fit_width(small, 384) is small

    big = Image.new("L", (768, 100))
    out = fit_width(big, 384)
    assert out.size == (384, 50)


def test_qr_image_is_square_and_bounded():
    img = qr_image("INV-1")
    assert img.mode == "L"
    assert img.width == img.height
    assert 0 < img.width <= 256


def test_cache_hit_skips_network(tmp_path, monkeypatch):
    cache = ImageCache(str(tmp_path))
    url = "http://example.invalid/logo.png"
    cache.path_for(url).write_bytes(_png_bytes())

    def _no_network(*a, **kw):
        raise AssertionError("network should not be used on a cache hit")

    monkeypatch.setattr(raster.requests, "get", _no_network)
    img = cache.get(url)
    assert img.size == (4, 4)


def test_cache_miss_downloads_and_stores(tmp_path, monkeypatch):
    calls = []

    def _get(url, timeout=None):
        calls.append((url, timeout))
        return _Resp(200, _png_bytes((6, 2)))

    monkeypatch.setattr(raster.requests, "get", _get)
    cache = ImageCache(str(tmp_path / "cache"), timeout=3.0)
    url = "http://example.invalid/a.png"

    assert cache.get(url).size == (6, 2)
    assert cache.get(url).size == (6, 2)
    assert calls == [(url, 3.0)]
    assert cache.path_for(url).is_file()
    assert cache.path_for(url).name == hashlib.md5(url.encode("utf-8")).hexdigest()


def test_corrupt_cache_entry_is_refetched(tmp_path, monkeypatch):
    cache = ImageCache(str(tmp_path))
    url = "http://example.invalid/b.png"
    cache.path_for(url).write_bytes(b"not an image")

    monkeypatch.setattr(raster.requests, "get", lambda url, timeout=None: _Resp(200, _png_bytes((3, 3))))
    assert cache.get(url).size == (3, 3)
    assert cache.path_for(url).read_bytes() == _png_bytes((3, 3))


def test_non_200_raises(tmp_path, monkeypatch):
    monkeypatch.setattr(raster.requests, "get", lambda url, timeout=None: _Resp(404))
    cache = ImageCache(str(tmp_path))
    with pytest.raises(ValueError):
        cache.get("http://example.invalid/missing.png")
    assert not cache.path_for("http://example.invalid/missing.png").exists()
