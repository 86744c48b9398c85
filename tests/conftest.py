"""Shared fixtures: small synthetic GeoTIFFs written with rasterio."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import numpy as np
import pytest
import rasterio
from rasterio import transform as rio_transform

if TYPE_CHECKING:
    import pathlib

    import affine


class RasterWriter(Protocol):
    def __call__(
        self,
        path: pathlib.Path,
        data: Any,
        *,
        transform: affine.Affine | None = None,
        bounds: tuple[float, float, float, float] | None = None,
        crs: str = "EPSG:4326",
        nodata: float | None = None,
    ) -> pathlib.Path: ...


def _write_raster(
    path: pathlib.Path,
    data: Any,
    *,
    transform: affine.Affine | None = None,
    bounds: tuple[float, float, float, float] | None = None,
    crs: str = "EPSG:4326",
    nodata: float | None = None,
) -> pathlib.Path:
    """Write ``data`` (2-D or bands-first 3-D) as a GeoTIFF."""
    array = np.asarray(data)
    if array.ndim == 2:
        array = array[np.newaxis, ...]
    count, height, width = array.shape
    if transform is None:
        left, bottom, right, top = bounds or (0.0, 0.0, float(width), float(height))
        transform = rio_transform.from_bounds(
            left, bottom, right, top, width=width, height=height
        )
    path.parent.mkdir(parents=True, exist_ok=True)
    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        height=height,
        width=width,
        count=count,
        dtype=array.dtype,
        crs=crs,
        transform=transform,
        nodata=nodata,
    ) as dataset:
        dataset.write(array)
    return path


@pytest.fixture
def write_raster() -> RasterWriter:
    """Return a helper writing synthetic rasters."""
    return _write_raster


@pytest.fixture
def rgb_raster(tmp_path: pathlib.Path) -> pathlib.Path:
    """A 4x4 three band float32 raster with a NaN pixel at (0, 0).

    Band values run from 0.0 to 1.5 in steps of 0.1; band 2 is band 1
    plus 1.0 and band 3 is band 1 times 2.
    """
    base = np.arange(16, dtype=np.float32).reshape(4, 4) / np.float32(10.0)
    data = np.stack([base, base + np.float32(1.0), base * np.float32(2.0)])
    data[:, 0, 0] = np.nan
    return _write_raster(
        tmp_path / "rgb.tif",
        data,
        bounds=(0.0, 0.0, 4.0, 4.0),
        nodata=float("nan"),
    )
