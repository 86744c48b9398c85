"""Per-band minimum and maximum of a mosaic's color bands."""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING

from geomosaic.utils import raster_helpers

if TYPE_CHECKING:
    from rasterio.io import DatasetReader

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class BandsMinMax:
    """Value range of the red, green and blue bands over the full raster."""

    red_min: float
    red_max: float
    green_min: float
    green_max: float
    blue_min: float
    blue_max: float


def compute_bands_min_max(
    dataset: DatasetReader,
    band_indexes: tuple[int, int, int],
) -> BandsMinMax:
    """Scan the three color bands and collect their ranges.

    Args:
        dataset: Open raster.
        band_indexes: 1-based ``(red, green, blue)`` band indexes.

    Returns:
        The ranges of all three bands.

    Raises:
        BackendError: If any band cannot be scanned. Nothing is returned
            for the bands that succeeded.
    """
    ranges = [raster_helpers.band_min_max(dataset, index) for index in band_indexes]
    (red_min, red_max), (green_min, green_max), (blue_min, blue_max) = ranges
    logger.info("Computed band statistics", extra={"mosaic": dataset.name})
    return BandsMinMax(
        red_min=red_min,
        red_max=red_max,
        green_min=green_min,
        green_max=green_max,
        blue_min=blue_min,
        blue_max=blue_max,
    )
