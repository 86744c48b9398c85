"""Pixel to world to elevation coordinate chain.

A query pixel of the base raster is mapped to world coordinates with the
base geotransform. When an elevation raster is known, the world point is
mapped into the elevation raster's pixel grid with the inverse of its own
geotransform, rounded to the nearest pixel and sampled.

The algorithm lives in ``world_coordinates`` and reads its inputs through
the ``TransformSource`` protocol. ``RepositoryTransformSource`` serves the
transforms and elevation samples from the geo-persistence store; the
raster-backed source lives with the mosaic model.

Example:
    Look up a pixel through the persisted transforms:
        >>> from geomosaic.db import database
        >>> repo = database.get_geo_repository(settings)
        >>> source = RepositoryTransformSource(repo)
        >>> world_coordinates(source, 8220.6, 10737.972)
        WorldCoordinate(x=9.68505, y=56.105169, elevation=147.0)
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, NamedTuple, Protocol

import affine

from geomosaic.core import errors

if TYPE_CHECKING:
    from collections.abc import Sequence

    from geomosaic.db import database

DATASET_TRANSFORM = "dataset"
ELEVATION_TRANSFORM = "elevation"


class WorldCoordinate(NamedTuple):
    x: float
    y: float
    elevation: float


class TransformSource(Protocol):
    """Capability needed by ``world_coordinates``."""

    def dataset_transform(self) -> affine.Affine: ...

    def elevation_transform(self) -> affine.Affine | None: ...

    def sample_elevation(self, col: int, row: int) -> float: ...


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def from_gdal(coefficients: Sequence[float]) -> affine.Affine:
    """Build an Affine from GDAL ordered ``(c, a, b, f, d, e)``."""
    return affine.Affine.from_gdal(*coefficients)


def invert(transform: affine.Affine) -> affine.Affine:
    """Invert a geotransform.

    Raises:
        NonInvertibleTransformError: If the linear part is singular. A
            geo-referenced raster never has one, so this indicates corrupt
            input rather than a condition to recover from.
    """
    try:
        return ~transform
    except affine.TransformNotInvertibleError as exc:
        raise errors.NonInvertibleTransformError(
            f"Geotransform {transform.to_gdal()} is not invertible"
        ) from exc


def world_coordinates(source: TransformSource, x: float, y: float) -> WorldCoordinate:
    """Map a base raster pixel to world coordinates and elevation.

    Args:
        source: Provider of the transforms and elevation samples.
        x: Column in base raster pixel space.
        y: Row in base raster pixel space.

    Returns:
        World ``x`` and ``y`` and the elevation sampled there, or
        ``0.0`` when no elevation transform is available.

    Raises:
        NonInvertibleTransformError: If the elevation transform is singular.
        BackendError, PersistenceError: Propagated from ``source``.
    """
    world_x, world_y = source.dataset_transform() * (x, y)

    elevation_transform = source.elevation_transform()
    if elevation_transform is None:
        return WorldCoordinate(world_x, world_y, 0.0)

    col, row = invert(elevation_transform) * (world_x, world_y)
    height = source.sample_elevation(round_half_away(col), round_half_away(row))
    return WorldCoordinate(world_x, world_y, float(height))


class RepositoryTransformSource:
    """Transform source reading persisted transforms and elevation rows."""

    def __init__(self, repo: database.GeoRepositoryProtocol) -> None:
        self.repo = repo

    def dataset_transform(self) -> affine.Affine:
        return from_gdal(self.repo.read_geotransform(DATASET_TRANSFORM))

    def elevation_transform(self) -> affine.Affine | None:
        # A missing elevation transform means no elevation was ingested.
        try:
            coefficients = self.repo.read_geotransform(ELEVATION_TRANSFORM)
        except errors.NotFoundError:
            return None
        return from_gdal(coefficients)

    def sample_elevation(self, col: int, row: int) -> float:
        return self.repo.get_elevation(col, row)
