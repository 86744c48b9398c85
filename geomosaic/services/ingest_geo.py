"""Geo-reference ingestion into the persistence store.

Stores the mosaic's geotransform under ``"dataset"`` and, when an elevation
raster is attached, its geotransform under ``"elevation"`` together with
every elevation pixel. After ingestion, coordinate lookups can run against
the store alone through ``RepositoryTransformSource``.

Example:
    >>> from geomosaic.db import database
    >>> from geomosaic.services import ingest_geo, mosaic
    >>> repo = database.get_geo_repository(settings)
    >>> with mosaic.import_mosaic_dataset(Path("out/dataset.tif")) as dataset:
    ...     dataset.set_elevation_dataset(Path("dem"), Path("out"))
    ...     ingest_geo.ingest_geo_reference(dataset, repo)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from geomosaic.core import errors
from geomosaic.services import geotransform
from geomosaic.utils import raster_helpers

if TYPE_CHECKING:
    from rasterio.io import DatasetReader

    from geomosaic.db import database
    from geomosaic.services import mosaic


logger = logging.getLogger(__name__)


def ingest_elevation(
    elevation: DatasetReader,
    repo: database.GeoRepositoryProtocol,
) -> None:
    """Store an elevation raster's transform, pixels and size.

    Raises:
        BackendError: If the elevation band cannot be read.
        AlreadyStoredError: If elevation is already stored.
        PersistenceError: If the store rejects a write.
    """
    heights = raster_helpers.read_full_band(elevation, 1)
    repo.add_elevation(heights.ravel().tolist(), elevation.width, elevation.height)
    repo.create_geotransform(
        geotransform.ELEVATION_TRANSFORM,
        elevation.transform.to_gdal(),
    )


def ingest_geo_reference(
    dataset: mosaic.MosaicedDataset,
    repo: database.GeoRepositoryProtocol,
) -> None:
    """Persist everything the coordinate chain needs for ``dataset``.

    Args:
        dataset: Mosaic whose transforms and elevation are stored.
        repo: Destination store.

    Raises:
        BackendError: If the elevation band cannot be read.
        AlreadyStoredError: If a geo-reference is already stored.
        PersistenceError: If the store rejects a write.
    """
    try:
        repo.read_geotransform(geotransform.DATASET_TRANSFORM)
    except errors.NotFoundError:
        pass
    else:
        raise errors.AlreadyStoredError("Geo-reference already stored")
    if dataset.elevation is not None:
        ingest_elevation(dataset.elevation, repo)
    # Written last: its presence marks a completed ingestion.
    repo.create_geotransform(
        geotransform.DATASET_TRANSFORM,
        dataset.dataset.transform.to_gdal(),
    )
    logger.info(
        "Stored geo-reference (elevation: %s)",
        dataset.elevation is not None,
        extra={"mosaic": dataset.dataset.name},
    )
