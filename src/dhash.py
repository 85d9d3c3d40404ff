"""
DHash (difference hash).

- (hash_size+1) x hash_size grayscale grid
- one bit per horizontal neighbour pair: 1 where the left pixel is brighter
- bits row-major, first bit most significant -> hash_size*hash_size-bit int
"""

from __future__ import annotations

from typing import Optional

import numpy as np
from numpy.typing import NDArray

import imaging
from config import checked_size, get_config
from errors import InvalidGridError
from imaging import ImageSource, PixelGrid, ResizeFilter
from logs import get_logger
from popcount import popcount

log = get_logger(__name__)


def _check_hash_size(hash_size: int) -> int:
    return checked_size(
        "hash_size", hash_size, get_config().fingerprint.max_hash_size
    )


def pixelate(
    source: ImageSource, hash_size: int, filter: Optional[ResizeFilter] = None
) -> PixelGrid:
    """Load `source` and reduce it to a (hash_size+1) x hash_size gray grid."""
    hash_size = _check_hash_size(hash_size)
    image = imaging.load(source)
    image = imaging.resize(image, hash_size + 1, hash_size, filter)
    return imaging.to_pixel_grid(imaging.to_grayscale(image))


def pixelate_by_url(
    url: str, hash_size: int, filter: Optional[ResizeFilter] = None
) -> PixelGrid:
    """Like `pixelate` for a remote image; any alpha channel is flattened."""
    hash_size = _check_hash_size(hash_size)
    image = imaging.load_url(url)
    image = imaging.resize(image, hash_size + 1, hash_size, filter)
    image = imaging.flatten_alpha(imaging.to_grayscale(image))
    return imaging.to_pixel_grid(image)


def calculate_from_grid(grid: PixelGrid) -> int:
    """
    DHash of an already pixelated grid of shape (hash_size, hash_size+1).

    Raises:
        InvalidGridError: if the grid is not 2-D with exactly one more column
        than rows.
    """
    arr = np.asarray(grid)
    if arr.ndim != 2 or arr.shape[0] < 1 or arr.shape[1] != arr.shape[0] + 1:
        raise InvalidGridError(
            f"DHash needs a (h, h+1) grid, got shape {arr.shape}"
        )
    arr = arr.astype(np.int64)
    diff: NDArray[np.bool_] = (arr[:, :-1] - arr[:, 1:]) > 0
    acc = 0
    for b in diff.ravel():
        acc = (acc << 1) | int(b)
    return acc


def calculate(
    source: ImageSource,
    hash_size: int = 8,
    filter: Optional[ResizeFilter] = None,
) -> int:
    """DHash of a local image file (or URL) as a hash_size**2-bit int."""
    fp = calculate_from_grid(pixelate(source, hash_size, filter))
    log.debug(f"dhash {source}: {fp:#x}")
    return fp


def calculate_by_url(
    url: str, hash_size: int = 8, filter: Optional[ResizeFilter] = None
) -> int:
    fp = calculate_from_grid(pixelate_by_url(url, hash_size, filter))
    log.debug(f"dhash {url}: {fp:#x}")
    return fp


def hamming(a: int, b: int) -> int:
    """Differing bits of a and b. Widths are not checked."""
    return popcount(a ^ b)
