"""Tests for geo-reference ingestion in geomosaic.services.ingest_geo.

After ingestion, lookups through the repository must agree with lookups
through the raster handles for the same mosaic.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import pytest
from rasterio import transform as rio_transform

from geomosaic.core import errors
from geomosaic.db import database
from geomosaic.services import geotransform, ingest_geo, mosaic

if TYPE_CHECKING:
    import pathlib

    from conftest import RasterWriter


@pytest.fixture
def elevated_mosaic(
    tmp_path: pathlib.Path,
    write_raster: RasterWriter,
) -> mosaic.MosaicedDataset:
    base = write_raster(
        tmp_path / "base.tif",
        np.zeros((3, 10, 10), dtype=np.float32),
        transform=rio_transform.from_origin(100.0, 200.0, 1.0, 1.0),
    )
    rows, cols = np.indices((20, 20))
    write_raster(
        tmp_path / "dem" / "dem.tif",
        (rows * 100 + cols).astype(np.float32),
        transform=rio_transform.from_origin(95.0, 205.0, 2.0, 2.0),
    )
    dataset = mosaic.import_mosaic_dataset(base)
    dataset.set_elevation_dataset(tmp_path / "dem", tmp_path / "out")
    return dataset


def test_ingest_stores_transforms_and_heights(
    elevated_mosaic: mosaic.MosaicedDataset,
) -> None:
    """Both transforms, every pixel and the raster size are stored."""
    repo = database.InMemoryGeoRepository()

    with elevated_mosaic:
        ingest_geo.ingest_geo_reference(elevated_mosaic, repo)

    assert repo.read_geotransform("dataset") == (100.0, 1.0, 0.0, 200.0, 0.0, -1.0)
    assert repo.read_geotransform("elevation") == (95.0, 2.0, 0.0, 205.0, 0.0, -2.0)
    properties = repo.read_elevation_properties()
    assert (properties.x_size, properties.y_size) == (20, 20)
    assert repo.get_elevation(19, 19) == 1919.0


def test_ingest_without_elevation(
    tmp_path: pathlib.Path,
    write_raster: RasterWriter,
) -> None:
    """Only the dataset transform is stored when no elevation is attached."""
    base = write_raster(tmp_path / "base.tif", np.zeros((3, 2, 2), dtype=np.float32))
    repo = database.InMemoryGeoRepository()

    with mosaic.import_mosaic_dataset(base) as dataset:
        ingest_geo.ingest_geo_reference(dataset, repo)

    assert repo.read_geotransform("dataset")
    source = geotransform.RepositoryTransformSource(repo)
    assert source.elevation_transform() is None


@pytest.mark.parametrize(
    ("x", "y"),
    [(0.0, 0.0), (3.0, 4.0), (0.5, 0.25), (9.9, 9.9), (5.5, 2.5)],
)
def test_repository_chain_matches_raster_chain(
    elevated_mosaic: mosaic.MosaicedDataset,
    x: float,
    y: float,
) -> None:
    """Stored lookups agree with lookups on the open rasters."""
    repo = database.InMemoryGeoRepository()

    with elevated_mosaic:
        ingest_geo.ingest_geo_reference(elevated_mosaic, repo)
        expected = elevated_mosaic.get_world_coordinates(x, y)

    stored = geotransform.world_coordinates(
        geotransform.RepositoryTransformSource(repo), x, y
    )
    assert stored == pytest.approx(expected)


def test_second_ingest_is_rejected(
    elevated_mosaic: mosaic.MosaicedDataset,
) -> None:
    """Ingesting again fails without touching what is stored."""
    repo = database.InMemoryGeoRepository()

    with elevated_mosaic:
        ingest_geo.ingest_geo_reference(elevated_mosaic, repo)
        with pytest.raises(errors.AlreadyStoredError):
            ingest_geo.ingest_geo_reference(elevated_mosaic, repo)

    assert len(repo._transforms) == 2
    assert repo.read_elevation_properties().x_size == 20
    assert repo.get_elevation(4, 5) == 504.0


def test_ingest_with_stored_elevation_writes_nothing(
    elevated_mosaic: mosaic.MosaicedDataset,
) -> None:
    """Elevation left by an earlier run rejects ingestion before any write."""
    repo = database.InMemoryGeoRepository()
    repo.add_elevation([1.0, 2.0, 3.0, 4.0], 2, 2)

    with elevated_mosaic, pytest.raises(errors.AlreadyStoredError):
        ingest_geo.ingest_geo_reference(elevated_mosaic, repo)

    with pytest.raises(errors.NotFoundError):
        repo.read_geotransform("dataset")
    with pytest.raises(errors.NotFoundError):
        repo.read_geotransform("elevation")
    assert repo.get_elevation(1, 1) == 4.0
