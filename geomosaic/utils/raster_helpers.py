"""Thin rasterio adapter used by the mosaic services.

Every rasterio or filesystem failure is re-raised as ``BackendError`` so
callers only handle one exception type for raster I/O. Reads return
float32 arrays with nodata samples replaced by NaN.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

import numpy as np
import rasterio
import rasterio.errors
from rasterio import enums, windows

from geomosaic.core import errors

if TYPE_CHECKING:
    import pathlib

    from rasterio.io import DatasetReader

logger = logging.getLogger(__name__)

Size = tuple[int, int]
Origin = tuple[int, int]


def list_raster_paths(directory: pathlib.Path) -> list[pathlib.Path]:
    """Return the regular files directly under ``directory``, sorted by name.

    Raises:
        BackendError: If the directory cannot be listed.
    """
    try:
        entries = list(directory.iterdir())
    except OSError as exc:
        raise errors.BackendError(
            f"Could not list directory {directory}: {exc}"
        ) from exc
    return sorted(entry for entry in entries if entry.is_file())


def open_raster(path: pathlib.Path | str) -> DatasetReader:
    """Open a raster for reading.

    Raises:
        BackendError: If the file is missing or not a raster.
    """
    try:
        return rasterio.open(path)
    except (rasterio.errors.RasterioError, OSError) as exc:
        raise errors.BackendError(f"Could not open raster {path}: {exc}") from exc


def open_rasters(directory: pathlib.Path) -> list[DatasetReader]:
    """Open every raster directly under ``directory``.

    Handles already opened are closed again if a later file fails.

    Raises:
        BackendError: If the directory cannot be listed or any file
            cannot be opened as a raster.
    """
    datasets: list[DatasetReader] = []
    try:
        for path in list_raster_paths(directory):
            datasets.append(open_raster(path))
    except errors.BackendError:
        for dataset in datasets:
            dataset.close()
        raise
    logger.debug("Opened %d rasters from %s", len(datasets), directory)
    return datasets


def check_band(dataset: DatasetReader, index: int) -> None:
    """Raise ``BackendError`` unless ``index`` is a valid 1-based band."""
    if not 1 <= index <= dataset.count:
        raise errors.BackendError(
            f"Band {index} out of range for {dataset.name} "
            f"({dataset.count} bands)"
        )


def read_band(
    dataset: DatasetReader,
    index: int,
    window_origin: Origin,
    window_size: Size,
    output_size: Size,
) -> np.ndarray:
    """Read a window of one band resampled with the Lanczos kernel.

    Args:
        dataset: Open raster.
        index: 1-based band index.
        window_origin: ``(column, row)`` of the window's top-left pixel.
        window_size: ``(width, height)`` of the window in source pixels.
        output_size: ``(width, height)`` of the returned array.

    Returns:
        float32 array of shape ``(height, width)`` of ``output_size`` with
        nodata samples set to NaN.

    Raises:
        BackendError: If the band or window is invalid or the read fails.
    """
    check_band(dataset, index)
    col_off, row_off = window_origin
    width, height = window_size
    out_width, out_height = output_size
    if width <= 0 or height <= 0 or out_width <= 0 or out_height <= 0:
        raise errors.BackendError("Window and output sizes must be positive")
    if (
        col_off < 0
        or row_off < 0
        or col_off + width > dataset.width
        or row_off + height > dataset.height
    ):
        raise errors.BackendError(
            f"Window {window_origin}+{window_size} outside raster "
            f"{dataset.width}x{dataset.height}"
        )

    try:
        data = dataset.read(
            index,
            window=windows.Window(col_off, row_off, width, height),
            out_shape=(out_height, out_width),
            resampling=enums.Resampling.lanczos,
            out_dtype="float32",
            masked=True,
        )
    except rasterio.errors.RasterioError as exc:
        raise errors.BackendError(f"Could not read band {index}: {exc}") from exc
    return data.filled(np.nan)


def band_min_max(dataset: DatasetReader, index: int) -> tuple[float, float]:
    """Compute the minimum and maximum valid sample of a band.

    The band is scanned block by block; nodata and NaN samples are ignored.
    A band without valid samples yields ``(nan, nan)``.

    Raises:
        BackendError: If the band is invalid or a block read fails.
    """
    check_band(dataset, index)
    minimum = math.inf
    maximum = -math.inf
    try:
        for _, window in dataset.block_windows(index):
            block = dataset.read(index, window=window, masked=True)
            values = block.compressed().astype("float64")
            values = values[~np.isnan(values)]
            if values.size == 0:
                continue
            minimum = min(minimum, float(values.min()))
            maximum = max(maximum, float(values.max()))
    except rasterio.errors.RasterioError as exc:
        raise errors.BackendError(
            f"Could not compute statistics for band {index}: {exc}"
        ) from exc

    if minimum > maximum:
        return math.nan, math.nan
    return minimum, maximum


def read_pixel(dataset: DatasetReader, col: int, row: int, index: int = 1) -> float:
    """Read a single sample.

    Raises:
        BackendError: If the pixel lies outside the raster or the read fails.
    """
    check_band(dataset, index)
    if not (0 <= col < dataset.width and 0 <= row < dataset.height):
        raise errors.BackendError(
            f"Pixel ({col}, {row}) outside raster "
            f"{dataset.width}x{dataset.height}"
        )
    try:
        data = dataset.read(
            index,
            window=windows.Window(col, row, 1, 1),
            out_dtype="float64",
        )
    except rasterio.errors.RasterioError as exc:
        raise errors.BackendError(f"Could not read pixel: {exc}") from exc
    return float(data[0, 0])


def read_full_band(dataset: DatasetReader, index: int = 1) -> np.ndarray:
    """Read a whole band at native resolution as float64."""
    check_band(dataset, index)
    try:
        return dataset.read(index, out_dtype="float64")
    except rasterio.errors.RasterioError as exc:
        raise errors.BackendError(f"Could not read band {index}: {exc}") from exc
