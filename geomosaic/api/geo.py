"""Coordinate lookup against the geo-persistence store.

Example:
    Store the served mosaic's geo-reference, then query it:
        >>> client.post("/api/geo/ingest").json()
        {'status': 'stored'}
        >>> client.get("/api/geo/coordinates", params={"x": 10, "y": 20}).json()
        {'x': 9.68505, 'y': 56.105169, 'elevation': 147.0}
"""

from __future__ import annotations

import fastapi

from geomosaic.api import mosaic as api_mosaic
from geomosaic.core import config, errors
from geomosaic.db import database
from geomosaic.services import geotransform, ingest_geo, mosaic

router = fastapi.APIRouter(prefix="/api/geo", tags=["geo"])


def _get_repo(
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
) -> database.GeoRepositoryProtocol:
    """Resolve the geo repository dependency.

    Raises:
        HTTPException: 503 if the database is unreachable.
    """
    try:
        return database.get_geo_repository(settings)
    except errors.PersistenceError as exc:
        raise fastapi.HTTPException(status_code=503, detail=str(exc)) from exc


def _http_error(exc: Exception) -> fastapi.HTTPException:
    if isinstance(exc, errors.NotFoundError):
        return fastapi.HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, errors.AlreadyStoredError):
        return fastapi.HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, errors.PersistenceError):
        return fastapi.HTTPException(status_code=503, detail=str(exc))
    return fastapi.HTTPException(status_code=422, detail=str(exc))


@router.get("/coordinates")
async def coordinates(
    x: float,
    y: float,
    repo: database.GeoRepositoryProtocol = fastapi.Depends(_get_repo),  # noqa: B008
) -> dict[str, float]:
    """Return world coordinates and elevation from the stored transforms.

    Raises:
        HTTPException: 404 if the dataset transform or the elevation pixel
            is missing, 422 for a singular elevation transform, 503 for
            other storage failures.
    """
    source = geotransform.RepositoryTransformSource(repo)
    try:
        coordinate = geotransform.world_coordinates(source, x, y)
    except (errors.BackendError, errors.PersistenceError) as exc:
        raise _http_error(exc) from exc
    return api_mosaic.coordinate_response(coordinate)


@router.post("/ingest")
async def ingest(
    dataset: mosaic.MosaicedDataset = fastapi.Depends(api_mosaic.get_mosaic),  # noqa: B008
    repo: database.GeoRepositoryProtocol = fastapi.Depends(_get_repo),  # noqa: B008
) -> dict[str, str]:
    """Store the served mosaic's transforms and elevation pixels.

    Raises:
        HTTPException: 409 if a geo-reference is already stored, 422 if
            the elevation band cannot be read, 503 for storage failures.
    """
    try:
        ingest_geo.ingest_geo_reference(dataset, repo)
    except (errors.BackendError, errors.PersistenceError) as exc:
        raise _http_error(exc) from exc
    return {"status": "stored"}
