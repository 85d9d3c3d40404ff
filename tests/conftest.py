from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterator

import numpy as np
import pytest
from PIL import Image

from config import get_config


@pytest.fixture(autouse=True)
def _fresh_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    # No stray fingerprint.toml or PFP_* env from the host machine.
    monkeypatch.chdir(tmp_path)
    for var in ("PFP_URL_TIMEOUT", "PFP_DEFAULT_FILTER"):
        monkeypatch.delenv(var, raising=False)
    get_config.cache_clear()
    yield
    get_config.cache_clear()


@pytest.fixture
def make_noise(tmp_path: Path) -> Callable[..., Path]:
    """Writes a random grayscale PNG (converted to `mode`) and returns its path."""

    def _make(name: str, seed: int, size: int = 64, mode: str = "L") -> Path:
        rng = np.random.default_rng(seed)
        arr = (rng.random((size, size)) * 255).astype("uint8")
        p = tmp_path / name
        Image.fromarray(arr).convert(mode).save(p)
        return p

    return _make
