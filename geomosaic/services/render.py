"""PNG encoding of RGBA windows using rio-tiler."""

from __future__ import annotations

import numpy as np
from rio_tiler import models as rio_tiler_models


def render_png(rgba: np.ndarray) -> bytes:
    """Encode an RGBA window as PNG.

    Args:
        rgba: uint8 array of shape ``(height, width, 4)``.

    Returns:
        PNG bytes. Pixels with alpha 0 are transparent.
    """
    if rgba.ndim != 3 or rgba.shape[2] != 4:
        raise ValueError(f"Expected (height, width, 4) RGBA, got {rgba.shape}")

    bands = np.ascontiguousarray(np.moveaxis(rgba[..., :3], -1, 0))
    transparent = np.broadcast_to(rgba[..., 3] == 0, bands.shape).copy()
    image = rio_tiler_models.ImageData(np.ma.MaskedArray(bands, mask=transparent))
    return image.render(img_format="PNG")
