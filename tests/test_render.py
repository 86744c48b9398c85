"""Tests for PNG rendering in geomosaic.services.render."""

from __future__ import annotations

import numpy as np
import pytest
from rasterio import io as rasterio_io

from geomosaic.services import render


def test_render_png_keeps_alpha() -> None:
    """Transparent pixels stay transparent in the encoded PNG."""
    rgba = np.zeros((2, 3, 4), dtype=np.uint8)
    rgba[..., 0] = 200
    rgba[..., 3] = 255
    rgba[0, 0, 3] = 0

    content = render.render_png(rgba)

    assert content.startswith(b"\x89PNG")
    with rasterio_io.MemoryFile(content) as memfile, memfile.open() as image:
        assert (image.width, image.height) == (3, 2)
        assert image.count == 4
        red = image.read(1)
        alpha = image.read(4)
    assert red[1, 1] == 200
    assert alpha[0, 0] == 0
    assert alpha[1, 2] == 255


@pytest.mark.parametrize("shape", [(2, 2), (2, 2, 3)])
def test_render_png_rejects_non_rgba(shape: tuple[int, ...]) -> None:
    """Only (height, width, 4) arrays are accepted."""
    with pytest.raises(ValueError, match="RGBA"):
        render.render_png(np.zeros(shape, dtype=np.uint8))
