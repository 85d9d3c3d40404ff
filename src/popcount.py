"""
Population count over arbitrary-precision ints.

Two interchangeable strategies:
- native:   int.bit_count() (C implementation, CPython 3.10+)
- portable: bin(x).count("1"), always available

The native one is probed once at import. Both must give identical results;
the test-suite runs the same vectors through each.
"""

from __future__ import annotations

from typing import Callable


def popcount_portable(x: int) -> int:
    return bin(x).count("1")


def popcount_native(x: int) -> int:
    return x.bit_count()


def _probe_native() -> bool:
    try:
        return (0b1011 << 70).bit_count() == 3
    except AttributeError:
        return False


NATIVE_AVAILABLE: bool = _probe_native()

popcount: Callable[[int], int] = (
    popcount_native if NATIVE_AVAILABLE else popcount_portable
)
