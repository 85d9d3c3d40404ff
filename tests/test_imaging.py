from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
import requests
from PIL import Image, UnidentifiedImageError

import dhash
import idhash
import imaging
from imaging import ResizeFilter


def test_is_url() -> None:
    assert imaging.is_url("https://example.test/a.png")
    assert imaging.is_url("HTTP://example.test/a.png")
    assert not imaging.is_url("/tmp/a.png")
    assert not imaging.is_url(Path("http://not-a-url"))


def test_filters_map_to_pillow() -> None:
    assert ResizeFilter.NEAREST.resampling == Image.Resampling.NEAREST
    assert ResizeFilter("lanczos").resampling == Image.Resampling.LANCZOS


def test_flatten_alpha_onto_black() -> None:
    im = Image.new("RGBA", (2, 1), (200, 200, 200, 0))
    im.putpixel((1, 0), (200, 200, 200, 255))
    flat = imaging.flatten_alpha(im)
    assert flat.mode == "RGB"
    assert flat.getpixel((0, 0)) == (0, 0, 0)
    assert flat.getpixel((1, 0)) == (200, 200, 200)


def test_flatten_alpha_passthrough() -> None:
    im = Image.new("L", (2, 2), 9)
    assert imaging.flatten_alpha(im) is im


def test_grayscale_keeps_alpha_band() -> None:
    assert imaging.to_grayscale(Image.new("RGBA", (2, 2))).mode == "LA"
    assert imaging.to_grayscale(Image.new("RGB", (2, 2))).mode == "L"


def test_to_pixel_grid_is_row_major() -> None:
    im = Image.fromarray(np.array([[1, 2, 3], [4, 5, 6]], dtype=np.uint8))
    grid = imaging.to_pixel_grid(im)
    assert grid.shape == (2, 3)
    assert grid.tolist() == [[1, 2, 3], [4, 5, 6]]
    la = Image.new("LA", (3, 2), (7, 128))
    assert imaging.to_pixel_grid(la).tolist() == [[7, 7, 7], [7, 7, 7]]


def test_resize_uses_configured_default(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    calls: list = []
    im = Image.new("L", (10, 10))
    original = Image.Image.resize

    def spy(self: Image.Image, size: tuple, resample: object = None, *a: object, **kw: object) -> Image.Image:
        calls.append(resample)
        return original(self, size, resample)

    monkeypatch.setattr(Image.Image, "resize", spy)
    assert imaging.resize(im, 3, 2).size == (3, 2)
    assert imaging.resize(im, 3, 2, ResizeFilter.CUBIC).size == (3, 2)
    assert calls == [Image.Resampling.LANCZOS, Image.Resampling.BICUBIC]


def test_load_errors_propagate(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        imaging.load(tmp_path / "missing.png")
    junk = tmp_path / "junk.png"
    junk.write_bytes(b"not an image")
    with pytest.raises(UnidentifiedImageError):
        imaging.load(junk)


def test_http_errors_propagate(monkeypatch: pytest.MonkeyPatch) -> None:
    class _Resp:
        content = b""

        def raise_for_status(self) -> None:
            raise requests.HTTPError("404 Client Error")

    monkeypatch.setattr(imaging.requests, "get", lambda url, **kw: _Resp())
    with pytest.raises(requests.HTTPError):
        imaging.load("https://example.test/missing.png")


def test_load_returns_detached_image(tmp_path: Path) -> None:
    p = tmp_path / "a.png"
    Image.new("RGB", (4, 3), (1, 2, 3)).save(p)
    im = imaging.load(str(p))
    p.unlink()
    assert im.size == (4, 3)
    assert im.getpixel((0, 0)) == (1, 2, 3)


def _noise_rgb(seed: int, size: int = 64) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return (rng.random((size, size, 3)) * 255).astype(np.uint8)


def test_palette_and_rgb_copies_fingerprint_alike(tmp_path: Path) -> None:
    pal = Image.fromarray(_noise_rgb(31)).quantize(64)
    p_path = tmp_path / "pal.png"
    rgb_path = tmp_path / "rgb.png"
    pal.save(p_path)
    pal.convert("RGB").save(rgb_path)
    assert Image.open(p_path).mode == "P"

    assert dhash.calculate(p_path) == dhash.calculate(rgb_path)
    assert dhash.calculate(p_path, filter=ResizeFilter.CUBIC) == dhash.calculate(
        rgb_path, filter=ResizeFilter.CUBIC
    )
    assert idhash.fingerprint(p_path) == idhash.fingerprint(rgb_path)


def test_sixteen_bit_gray_is_scaled_not_clamped(tmp_path: Path) -> None:
    arr8 = _noise_rgb(32)[:, :, 0]
    p8 = tmp_path / "g8.png"
    p16 = tmp_path / "g16.png"
    Image.fromarray(arr8).save(p8)
    Image.fromarray(arr8.astype(np.uint16) * 257).save(p16)

    assert imaging.load(p16).mode == "L"
    assert dhash.pixelate(p16, 4).tolist() == dhash.pixelate(p8, 4).tolist()
    assert dhash.calculate(p16) == dhash.calculate(p8)
    assert idhash.fingerprint(p16) == idhash.fingerprint(p8)


@pytest.mark.parametrize(
    "mode, expected",
    [
        ("L", "L"),
        ("RGBA", "RGBA"),
        ("1", "L"),
        ("F", "L"),
        ("CMYK", "RGB"),
        ("P", "RGB"),
        ("I;16", "L"),
        ("I", "L"),
    ],
)
def test_normalize_mode(mode: str, expected: str) -> None:
    assert imaging.normalize_mode(Image.new(mode, (3, 2))).mode == expected


def test_palette_with_transparency_keeps_alpha() -> None:
    im = Image.new("P", (2, 2), 0)
    im.info["transparency"] = 0
    assert imaging.normalize_mode(im).mode == "RGBA"
