"""Conversion of raw float band samples to gamma-corrected 8-bit RGBA.

Each channel sample is normalized against the band's ``[min, max]`` range,
gamma corrected with exponent ``1 / 2.2`` and scaled to ``[0, 255]``.
A NaN sample, or a sample outside the band range, cannot be converted.
``band_merger`` maps such channels to 0 and marks a pixel transparent only
when all three of its channels are NaN.

Example:
    Convert a single sample:
        >>> f32_to_u8(0.2, 0.1, 0.3)
        186

    Merge three channels:
        >>> rgba = band_merger([red, green, blue], min_max)
        >>> rgba.shape
        (3, 4)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from geomosaic.core import errors

if TYPE_CHECKING:
    from collections.abc import Sequence

    import numpy.typing as npt

    from geomosaic.services.statistics import BandsMinMax

GAMMA_VALUE = np.float32(1.0 / 2.2)
U8_MAX = np.float32(255.0)
OPAQUE = 255
TRANSPARENT = 0
FAILED_CHANNEL_VALUE = 0


def gamma_correction(value: float) -> np.float32:
    """Apply gamma correction to a normalized sample.

    Args:
        value: Sample in ``[0, 1]``.

    Returns:
        ``value ** (1 / 2.2)`` as float32.

    Raises:
        GammaOutOfRangeError: If ``value`` is outside ``[0, 1]`` or NaN.
    """
    if not 0.0 <= value <= 1.0:
        raise errors.GammaOutOfRangeError(f"{value} is outside [0, 1]")
    return np.float32(value) ** GAMMA_VALUE


def f32_to_u8(value: float, minimum: float, maximum: float) -> int:
    """Convert one band sample to an 8-bit channel value.

    Raises:
        NotANumberError: If ``value`` is NaN.
        GammaOutOfRangeError: If ``value`` lies outside ``[minimum, maximum]``.
    """
    sample = np.float32(value)
    if np.isnan(sample):
        raise errors.NotANumberError("sample is NaN")

    with np.errstate(divide="ignore", invalid="ignore"):
        normalized = (sample - np.float32(minimum)) / (
            np.float32(maximum) - np.float32(minimum)
        )
    corrected = gamma_correction(normalized)
    return int(np.floor(corrected * U8_MAX + np.float32(0.5)))


def channel_to_u8(
    samples: npt.ArrayLike,
    minimum: float,
    maximum: float,
) -> np.ma.MaskedArray:
    """Vectorized ``f32_to_u8`` over a whole channel.

    Returns:
        uint8 masked array, masked where the conversion failed (NaN sample
        or sample outside ``[minimum, maximum]``).
    """
    values = np.asarray(samples, dtype=np.float32)
    with np.errstate(divide="ignore", invalid="ignore"):
        normalized = (values - np.float32(minimum)) / (
            np.float32(maximum) - np.float32(minimum)
        )
        # NaN compares false on both sides.
        convertible = (normalized >= 0.0) & (normalized <= 1.0)
        corrected = np.where(convertible, normalized, np.float32(0.0)) ** GAMMA_VALUE
    converted = np.floor(corrected * U8_MAX + np.float32(0.5)).astype(np.uint8)
    return np.ma.MaskedArray(converted, mask=~convertible)


def alpha_channel(
    red: np.ndarray,
    green: np.ndarray,
    blue: np.ndarray,
) -> np.ndarray:
    """Return 0 where all three channels are NaN, 255 elsewhere."""
    nodata = np.isnan(red) & np.isnan(green) & np.isnan(blue)
    return np.where(nodata, TRANSPARENT, OPAQUE).astype(np.uint8)


def band_merger(
    bands: Sequence[npt.ArrayLike],
    min_max: BandsMinMax,
) -> np.ndarray:
    """Merge red, green and blue samples into RGBA pixels.

    Args:
        bands: Red, green and blue samples of equal length, in that order.
            Multi-dimensional inputs are flattened row-major.
        min_max: Value ranges of the three bands.

    Returns:
        uint8 array of shape ``(n, 4)``.

    Channels that fail conversion become ``FAILED_CHANNEL_VALUE`` instead
    of aborting the pixel or the window.
    """
    red, green, blue = (np.asarray(band, dtype=np.float32).ravel() for band in bands)
    if not red.size == green.size == blue.size:
        raise ValueError("Bands must have the same number of samples")

    channels = [
        channel_to_u8(red, min_max.red_min, min_max.red_max),
        channel_to_u8(green, min_max.green_min, min_max.green_max),
        channel_to_u8(blue, min_max.blue_min, min_max.blue_max),
    ]
    return np.stack(
        [
            *(channel.filled(FAILED_CHANNEL_VALUE) for channel in channels),
            alpha_channel(red, green, blue),
        ],
        axis=-1,
    )
