"""
Centralized, typed exceptions for the fingerprint library.

Acquisition failures (missing file, undecodable image, HTTP errors) are not
wrapped: they surface as the Pillow / requests exceptions that caused them.
"""

from __future__ import annotations


class PfpError(Exception):
    """Base class for all custom errors in perceptual-fingerprints."""


class ConfigLoadError(PfpError):
    """Raised when a configuration file is missing, unreadable, or invalid."""


class ParameterError(PfpError):
    """Raised when hash_size / power is outside the supported range."""


class InvalidGridError(PfpError):
    """Raised when a pixel grid does not have the shape an engine requires."""


class SizeMismatchError(PfpError):
    """Raised when two IDHash fingerprints were taken with different sizes."""

    def __init__(self, size_a: int, size_b: int) -> None:
        super().__init__(
            f"fingerprints were taken with different `power` param: {size_a} and {size_b}"
        )
        self.size_a = size_a
        self.size_b = size_b
