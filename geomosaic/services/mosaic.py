"""Mosaic model: composite raster, configuration, statistics and elevation.

Rasters are imported from a directory into a ``RawDataset``, composed into
a virtual mosaic and optionally materialized as a Cloud Optimized GeoTIFF.
The resulting ``MosaicedDataset`` renders windows to RGBA and maps pixels to
world coordinates and elevation.

Example:
    Build a COG mosaic from a directory of tiles and render a preview:
        >>> from pathlib import Path
        >>> from geomosaic.services import mosaic

        >>> with mosaic.import_datasets(Path("tiles")) as raw:
        ...     dataset = raw.to_mosaic_dataset(Path("out"))
        >>> # out/dataset.vrt and out/dataset.tif now exist
        >>> width, height = dataset.get_dimensions()
        >>> rgba = dataset.to_rgb((0, 0), (width, height), (256, 256))
        >>> rgba.shape
        (256, 256, 4)

    Attach elevation and look up a pixel:
        >>> dataset.set_elevation_dataset(Path("dem"), Path("out"))
        >>> dataset.get_world_coordinates(8220.6, 10737.972)
        WorldCoordinate(x=9.68505, y=56.105169, elevation=147.0)
"""

from __future__ import annotations

import logging
import pathlib
from typing import TYPE_CHECKING

import rasterio.errors
from rasterio import io as rasterio_io

from geomosaic.core import errors
from geomosaic.services import geotransform, pixels, statistics, vrt
from geomosaic.services.options import DatasetOptions
from geomosaic.utils import gdal_helpers, raster_helpers

if TYPE_CHECKING:
    import types

    import affine
    import numpy as np
    from rasterio.io import DatasetReader

logger = logging.getLogger(__name__)

VRT_FILENAME = "dataset.vrt"
COG_FILENAME = "dataset.tif"
ELEVATION_VRT_FILENAME = "elevation.vrt"

BBox = tuple[float, float, float, float]


class MosaicedDataset:
    """A composite raster with its configuration and derived state.

    The instance owns its raster handles. ``min_max`` is filled on the
    first successful ``datasets_min_max`` call and never recomputed;
    ``elevation`` is set by ``set_elevation_dataset`` and never cleared.
    Instances are not safe to share between threads.

    Attributes:
        dataset: Base raster handle.
        options: Scaling and color band configuration.
        min_max: Cached band statistics, None until computed.
        elevation: Elevation raster handle, None until attached.
    """

    def __init__(
        self,
        dataset: DatasetReader,
        options: DatasetOptions | None = None,
        *,
        elevation: DatasetReader | None = None,
        memfile: rasterio_io.MemoryFile | None = None,
    ) -> None:
        self.dataset = dataset
        self.options = options or DatasetOptions.builder().build()
        self.min_max: statistics.BandsMinMax | None = None
        self.elevation = elevation
        self._memfile = memfile

    def __enter__(self) -> MosaicedDataset:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: types.TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        """Release the raster handles and any in-memory VRT."""
        self.dataset.close()
        if self.elevation is not None:
            self.elevation.close()
        if self._memfile is not None:
            self._memfile.close()

    def get_dimensions(self) -> tuple[int, int]:
        """Return ``(width, height)`` in pixels."""
        return self.dataset.width, self.dataset.height

    def bounds(self) -> BBox:
        """Return ``(minx, miny, maxx, maxy)`` in the mosaic CRS."""
        bounds = self.dataset.bounds
        return (bounds.left, bounds.bottom, bounds.right, bounds.top)

    def datasets_min_max(self) -> statistics.BandsMinMax:
        """Return the color band ranges, computing them on first use.

        Raises:
            BackendError: If the statistics pass fails. The cache stays
                empty and a later call retries.
        """
        if self.min_max is not None:
            return self.min_max

        self.min_max = statistics.compute_bands_min_max(
            self.dataset,
            self.options.band_indexes,
        )
        return self.min_max

    def to_rgb(
        self,
        window: tuple[int, int],
        window_size: tuple[int, int],
        size: tuple[int, int] | None = None,
    ) -> np.ndarray:
        """Render a window of the mosaic to RGBA.

        Args:
            window: ``(column, row)`` of the window's top-left pixel.
            window_size: ``(width, height)`` of the window in mosaic pixels.
            size: ``(width, height)`` of the output; defaults to
                ``options.scaling``.

        Returns:
            uint8 array of shape ``(height, width, 4)``.

        Raises:
            BackendError: If a band read or the statistics pass fails.
                Per-pixel conversion problems never raise.
        """
        size = size or self.options.scaling
        bands = [
            raster_helpers.read_band(self.dataset, index, window, window_size, size)
            for index in self.options.band_indexes
        ]
        min_max = self.datasets_min_max()
        rgba = pixels.band_merger(bands, min_max)
        width, height = size
        return rgba.reshape(height, width, 4)

    def set_elevation_dataset(
        self,
        path: pathlib.Path,
        output_path: pathlib.Path,
    ) -> None:
        """Attach the rasters under ``path`` as the elevation source.

        The rasters are composed into ``output_path/elevation.vrt``.

        Raises:
            BackendError: If an elevation raster is already attached, or the
                rasters cannot be opened or composed.
        """
        if self.elevation is not None:
            raise errors.BackendError("Elevation raster already attached")

        sources = raster_helpers.open_rasters(path)
        try:
            vrt_path = vrt.write_vrt(sources, output_path / ELEVATION_VRT_FILENAME)
        finally:
            for source in sources:
                source.close()

        self.elevation = raster_helpers.open_raster(vrt_path)
        logger.info(
            "Attached elevation %s",
            vrt_path,
            extra={"mosaic": self.dataset.name},
        )

    def get_world_coordinates(self, x: float, y: float) -> geotransform.WorldCoordinate:
        """Return the world coordinates and elevation of a mosaic pixel.

        Elevation is ``0.0`` when no elevation raster is attached.

        Raises:
            BackendError: If the elevation transform is singular or the
                elevation pixel cannot be read.
        """
        return geotransform.world_coordinates(RasterTransformSource(self), x, y)


class RasterTransformSource:
    """Transform source backed by a mosaic's open raster handles."""

    def __init__(self, mosaic: MosaicedDataset) -> None:
        self.mosaic = mosaic

    def dataset_transform(self) -> affine.Affine:
        return self.mosaic.dataset.transform

    def elevation_transform(self) -> affine.Affine | None:
        if self.mosaic.elevation is None:
            return None
        return self.mosaic.elevation.transform

    def sample_elevation(self, col: int, row: int) -> float:
        if self.mosaic.elevation is None:
            raise errors.BackendError("No elevation raster attached")
        return raster_helpers.read_pixel(self.mosaic.elevation, col, row)


class RawDataset:
    """Rasters loaded from a directory, waiting to be composed."""

    def __init__(self, datasets: list[DatasetReader]) -> None:
        self.datasets = datasets

    def __enter__(self) -> RawDataset:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: types.TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        for dataset in self.datasets:
            dataset.close()

    def to_mosaic_dataset(self, output_path: pathlib.Path) -> MosaicedDataset:
        """Compose the rasters and materialize them as a COG.

        Writes ``output_path/dataset.vrt`` and ``output_path/dataset.tif``.

        Raises:
            BackendError: If composition fails or gdal_translate fails.
        """
        output_path.mkdir(parents=True, exist_ok=True)
        vrt_path = vrt.write_vrt(self.datasets, output_path / VRT_FILENAME)
        cog_path = gdal_helpers.translate_to_cog(
            vrt_path,
            output_path / COG_FILENAME,
        )
        return MosaicedDataset(raster_helpers.open_raster(cog_path))

    def to_vrt_dataset(self) -> MosaicedDataset:
        """Compose the rasters into an in-memory VRT, writing no files.

        Raises:
            BackendError: If composition fails.
        """
        xml = vrt.build_vrt_xml(self.datasets)
        memfile = rasterio_io.MemoryFile(xml.encode("utf-8"), filename=VRT_FILENAME)
        try:
            dataset = memfile.open()
        except rasterio.errors.RasterioError as exc:
            memfile.close()
            raise errors.BackendError(f"Could not open VRT mosaic: {exc}") from exc
        return MosaicedDataset(dataset, memfile=memfile)


def import_datasets(path: pathlib.Path) -> RawDataset:
    """Open every raster directly under ``path``, sorted by file name.

    Raises:
        BackendError: If the directory cannot be listed or a file is not
            a raster.
    """
    return RawDataset(raster_helpers.open_rasters(pathlib.Path(path)))


def import_mosaic_dataset(
    path: pathlib.Path,
    options: DatasetOptions | None = None,
) -> MosaicedDataset:
    """Open a pre-built raster as a mosaic without composing anything.

    Raises:
        BackendError: If the file cannot be opened.
    """
    return MosaicedDataset(raster_helpers.open_raster(path), options)
