"""
Image collaborator: acquisition, resize, grayscale, alpha flattening.

Thin adapter over Pillow (and requests for http/https sources). The engines
only ever see the numeric grid returned by `to_pixel_grid`. Errors from
Pillow and requests propagate unchanged; nothing here retries.
"""

from __future__ import annotations

from enum import Enum
from io import BytesIO
from pathlib import Path
from typing import Optional, Union

import numpy as np
import requests
from numpy.typing import NDArray
from PIL import Image

from config import get_config
from logs import get_logger

log = get_logger(__name__)

ImageSource = Union[str, Path]
PixelGrid = NDArray[np.int64]


class ResizeFilter(str, Enum):
    NEAREST = "nearest"
    LINEAR = "linear"
    CUBIC = "cubic"
    LANCZOS = "lanczos"

    @property
    def resampling(self) -> Image.Resampling:
        return _RESAMPLING[self]


_RESAMPLING = {
    ResizeFilter.NEAREST: Image.Resampling.NEAREST,
    ResizeFilter.LINEAR: Image.Resampling.BILINEAR,
    ResizeFilter.CUBIC: Image.Resampling.BICUBIC,
    ResizeFilter.LANCZOS: Image.Resampling.LANCZOS,
}


def is_url(source: ImageSource) -> bool:
    return isinstance(source, str) and source.lower().startswith(
        ("http://", "https://")
    )


def load(source: ImageSource) -> Image.Image:
    """
    Decode `source` (local path or http/https URL) into a fully loaded image.

    Raises:
        FileNotFoundError / PIL.UnidentifiedImageError: for local failures.
        requests.RequestException: for network or HTTP status failures.
    """
    if is_url(source):
        return load_url(str(source))
    with Image.open(Path(source)) as im:
        im.load()
        return normalize_mode(im.copy())


def load_url(url: str) -> Image.Image:
    """Fetch `url` and decode the response body."""
    cfg = get_config().fingerprint
    log.debug(f"fetching {url}")
    resp = requests.get(
        url, timeout=cfg.url_timeout, headers={"User-Agent": cfg.user_agent}
    )
    resp.raise_for_status()
    with Image.open(BytesIO(resp.content)) as im:
        im.load()
        return normalize_mode(im.copy())


_WORKING_MODES = ("L", "LA", "RGB", "RGBA")
_WIDE_GRAY_MODES = ("I;16", "I;16L", "I;16B", "I;16N", "I")
_PREMULTIPLIED = {"La": "LA", "RGBa": "RGBA"}


def normalize_mode(image: Image.Image) -> Image.Image:
    """
    Bring a decoded image to L, LA, RGB or RGBA with 8-bit samples.

    Resampling only honours the requested filter in these modes: Pillow
    resizes palette and bilevel images with NEAREST over raw indices.
    16-bit grayscale is scaled down (v >> 8) rather than clamped at 255.
    """
    mode = image.mode
    if mode in _WORKING_MODES:
        return image
    if mode in _WIDE_GRAY_MODES:
        arr = np.clip(np.asarray(image, dtype=np.int64), 0, 65535) >> 8
        return Image.fromarray(arr.astype(np.uint8))
    if mode in _PREMULTIPLIED:
        return image.convert(_PREMULTIPLIED[mode])
    if mode in ("1", "F"):
        return image.convert("L")
    return image.convert("RGBA" if has_alpha(image) else "RGB")


def resize(
    image: Image.Image,
    width: int,
    height: int,
    filter: Optional[ResizeFilter] = None,
) -> Image.Image:
    """Resize to exactly width x height (aspect ratio is not preserved)."""
    image = normalize_mode(image)
    if filter is None:
        filter = ResizeFilter(get_config().fingerprint.default_filter)
    return image.resize((width, height), ResizeFilter(filter).resampling)


def has_alpha(image: Image.Image) -> bool:
    return image.mode in ("RGBA", "LA", "PA", "La", "RGBa") or (
        "transparency" in image.info
    )


def flatten_alpha(image: Image.Image) -> Image.Image:
    """Composite onto a black background; images without alpha pass through."""
    if not has_alpha(image):
        return image
    rgba = image.convert("RGBA")
    background = Image.new("RGB", rgba.size, (0, 0, 0))
    background.paste(rgba, mask=rgba.getchannel("A"))
    return background


def to_grayscale(image: Image.Image) -> Image.Image:
    """Single-band luminance. An alpha band, if any, is kept as "LA"."""
    if has_alpha(image):
        return image.convert("RGBA").convert("LA")
    return image.convert("L")


def to_pixel_grid(image: Image.Image) -> PixelGrid:
    """Row-major (height, width) int64 samples, one scalar per pixel."""
    arr = np.asarray(image, dtype=np.int64)
    if arr.ndim == 3:
        # first band is luminance for "L*" modes
        arr = arr[:, :, 0]
    return np.ascontiguousarray(arr)
