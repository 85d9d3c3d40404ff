"""
IDHash: gradient fingerprint with a "which bits matter" mask.

For a size x size grayscale grid (size = 2**power), and for both the grid and
its transpose:
  - cyclic difference of each row with the next row (last wraps to first)
  - sign bit:       difference < 0
  - magnitude bit:  |difference| >= median(|differences|)

Layout, most significant band first, each band size*size bits:

    rows magnitude | columns magnitude | rows sign | columns sign

`distance` counts sign bits that differ where at least one of the two
fingerprints flags the pixel as significant (magnitude bit set).
"""

from __future__ import annotations

import sys
from typing import List, Optional, Tuple

import numpy as np
from numpy.typing import NDArray
from PIL import Image

import imaging
from config import checked_size, get_config
from errors import InvalidGridError, SizeMismatchError
from imaging import ImageSource, PixelGrid
from logs import get_logger
from median import median
from popcount import NATIVE_AVAILABLE, popcount, popcount_native, popcount_portable

log = get_logger(__name__)

# Size inference: fingerprints of at most 32 bytes (power=3, 256 bits) are
# size 8, anything wider is size 16 (power=4). The threshold counts bytes of
# the integer, not bits: read as 32 bits, every power=3 fingerprint would
# fall in class 16 and compare as distance 0.
_SMALL_FINGERPRINT_BYTES = 32
_NATIVE_MIN = sys.maxsize


def _size_for(power: int) -> int:
    power = checked_size("power", power, get_config().fingerprint.max_power)
    return 2**power


def _bits_to_int(bits: NDArray[np.bool_]) -> int:
    acc = 0
    for b in bits:
        acc = (acc << 1) | int(b)
    return acc


def _orientation_bits(a: NDArray[np.int64]) -> Tuple[int, int]:
    """(sign, magnitude) bitstrings for one orientation of the grid."""
    d = (a - np.roll(a, -1, axis=0)).ravel()
    m = median(sorted(int(v) for v in np.abs(d)))
    return _bits_to_int(d < 0), _bits_to_int(np.abs(d) >= m)


def fingerprint_from_grid(grid: PixelGrid) -> int:
    """
    IDHash of a square grayscale grid whose side is a power of two (>= 2).

    Raises:
        InvalidGridError: for non-2-D, non-square or wrongly sized grids.
    """
    arr = np.asarray(grid)
    if arr.ndim != 2 or arr.shape[0] != arr.shape[1]:
        raise InvalidGridError(f"IDHash needs a square grid, got shape {arr.shape}")
    size = arr.shape[0]
    if size < 2 or size & (size - 1):
        raise InvalidGridError(f"grid side must be a power of two >= 2, got {size}")

    arr = arr.astype(np.int64)
    sign_rows, mag_rows = _orientation_bits(arr)
    sign_cols, mag_cols = _orientation_bits(arr.T)

    n = size * size
    return (((((mag_rows << n) + mag_cols) << n) + sign_rows) << n) + sign_cols


def _fingerprint_from_image(image: Image.Image, size: int) -> int:
    image = imaging.resize(image, size, size)
    image = imaging.flatten_alpha(imaging.to_grayscale(image))
    return fingerprint_from_grid(imaging.to_pixel_grid(image))


def fingerprint(source: ImageSource, power: int = 3) -> int:
    """IDHash of a local image (or URL); 4 * 4**power bits wide."""
    size = _size_for(power)
    fp = _fingerprint_from_image(imaging.load(source), size)
    log.debug(f"idhash {source} (power={power}): {fp:#x}")
    return fp


def fingerprint_by_url(url: str, power: int = 3) -> int:
    size = _size_for(power)
    fp = _fingerprint_from_image(imaging.load_url(url), size)
    log.debug(f"idhash {url} (power={power}): {fp:#x}")
    return fp


# ------------------------------ distance --------------------------------------


def distance3_portable(a: int, b: int) -> int:
    return popcount_portable((a ^ b) & ((a | b) >> 128))


def distance3_native(a: int, b: int) -> int:
    return popcount_native((a ^ b) & ((a | b) >> 128))


# Chosen once by the popcount feature probe.
_distance3_fast = distance3_native if NATIVE_AVAILABLE else distance3_portable


def distance3(a: int, b: int) -> int:
    """Distance between two power=3 fingerprints."""
    if a > _NATIVE_MIN and b > _NATIVE_MIN:
        return _distance3_fast(a, b)
    return distance3_portable(a, b)


def size_class(fp: int) -> int:
    """Inferred grid side (8 or 16) of a fingerprint."""
    nbytes = (fp.bit_length() + 7) // 8
    return 8 if nbytes <= _SMALL_FINGERPRINT_BYTES else 16


def distance(a: int, b: int, power: Optional[int] = None) -> int:
    """
    Number of significant differing sign bits between two IDHash fingerprints.

    Without `power` the size of each fingerprint is inferred from its
    magnitude, which only tells power=3 and power=4 apart. Pass `power` for
    other sizes.

    Raises:
        SizeMismatchError: if the fingerprints were taken with different sizes
        (or one is wider than `power` allows).
    """
    if power is not None:
        size = _size_for(power)
        width = 4 * size * size
        sizes: List[int] = [
            size if x.bit_length() <= width else _side_for_width(x) for x in (a, b)
        ]
        if sizes != [size, size]:
            raise SizeMismatchError(sizes[0], sizes[1])
    else:
        size_a, size_b = size_class(a), size_class(b)
        if (size_a, size_b) == (8, 8):
            return distance3(a, b)
        if size_a != size_b:
            raise SizeMismatchError(size_a, size_b)
        size = size_a

    return popcount((a ^ b) & ((a | b) >> (2 * size * size)))


def _side_for_width(fp: int) -> int:
    """Smallest power-of-two side whose 4*side*side bits hold `fp`."""
    side = 2
    while 4 * side * side < fp.bit_length():
        side *= 2
    return side
