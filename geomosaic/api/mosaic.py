"""Mosaic rendering and coordinate lookup endpoints.

The served mosaic is the raster at ``settings.resolved_mosaic_path``, with
the rasters under ``settings.elevation_dir`` attached as elevation when
configured. It is opened once per path and kept for the process lifetime,
so band statistics are computed only once.

Example:
    Render the top-left 512x512 pixels as a 256x256 PNG:
        >>> response = client.get(
        ...     "/api/mosaic/render.png",
        ...     params={"x": 0, "y": 0, "width": 512, "height": 512,
        ...             "out_width": 256, "out_height": 256},
        ... )
        >>> response.headers["content-type"]
        'image/png'

    Look up world coordinates and elevation of a pixel:
        >>> client.get("/api/mosaic/coordinates", params={"x": 10, "y": 20}).json()
        {'x': 9.68505, 'y': 56.105169, 'elevation': 147.0}
"""

from __future__ import annotations

import dataclasses
from typing import Any

import fastapi
from fastapi import responses

from geomosaic.core import config, errors
from geomosaic.services import mosaic, render

router = fastapi.APIRouter(prefix="/api/mosaic", tags=["mosaic"])

_mosaic_cache: dict[str, mosaic.MosaicedDataset] = {}


def _load_mosaic(settings: config.Settings) -> mosaic.MosaicedDataset:
    dataset = mosaic.import_mosaic_dataset(settings.resolved_mosaic_path)
    if settings.elevation_dir is not None:
        try:
            dataset.set_elevation_dataset(
                settings.elevation_dir,
                settings.workspace_dir,
            )
        except errors.BackendError:
            dataset.close()
            raise
    return dataset


def get_mosaic(
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
) -> mosaic.MosaicedDataset:
    """Resolve the served mosaic, opening it on first use.

    Raises:
        HTTPException: 503 if the mosaic or its elevation cannot be opened.
    """
    key = str(settings.resolved_mosaic_path)
    dataset = _mosaic_cache.get(key)
    if dataset is None:
        try:
            dataset = _load_mosaic(settings)
        except errors.BackendError as exc:
            raise fastapi.HTTPException(status_code=503, detail=str(exc)) from exc
        _mosaic_cache[key] = dataset
    return dataset


def coordinate_response(coordinate: tuple[float, float, float]) -> dict[str, float]:
    x, y, elevation = coordinate
    return {"x": x, "y": y, "elevation": elevation}


# Handlers are coroutines so the shared mosaic is only touched from the
# event loop thread.


@router.get("/dimensions")
async def dimensions(
    dataset: mosaic.MosaicedDataset = fastapi.Depends(get_mosaic),  # noqa: B008
) -> dict[str, int]:
    """Return the mosaic size in pixels."""
    width, height = dataset.get_dimensions()
    return {"width": width, "height": height}


@router.get("/statistics")
async def band_statistics(
    dataset: mosaic.MosaicedDataset = fastapi.Depends(get_mosaic),  # noqa: B008
) -> dict[str, Any]:
    """Return the red, green and blue band ranges.

    Raises:
        HTTPException: 422 if the statistics pass fails.
    """
    try:
        min_max = dataset.datasets_min_max()
    except errors.BackendError as exc:
        raise fastapi.HTTPException(status_code=422, detail=str(exc)) from exc
    return dataclasses.asdict(min_max)


@router.get("/render.png")
async def render_window(
    x: int,
    y: int,
    width: int,
    height: int,
    out_width: int | None = None,
    out_height: int | None = None,
    dataset: mosaic.MosaicedDataset = fastapi.Depends(get_mosaic),  # noqa: B008
) -> responses.Response:
    """Render a window of the mosaic as a PNG.

    Args:
        x: Column of the window's top-left pixel.
        y: Row of the window's top-left pixel.
        width: Window width in mosaic pixels.
        height: Window height in mosaic pixels.
        out_width: Output width; both output sizes default to the
            mosaic's configured scaling.
        out_height: Output height.
        dataset: Served mosaic (injected via FastAPI Depends).

    Returns:
        PNG image response, transparent where the mosaic has no data.

    Raises:
        HTTPException: 422 if the window is invalid, only one output size
            is given, or a read fails.
    """
    if (out_width is None) != (out_height is None):
        raise fastapi.HTTPException(
            status_code=422,
            detail="out_width and out_height must be given together",
        )
    size = None
    if out_width is not None and out_height is not None:
        size = (out_width, out_height)
    try:
        rgba = dataset.to_rgb((x, y), (width, height), size)
    except errors.BackendError as exc:
        raise fastapi.HTTPException(status_code=422, detail=str(exc)) from exc
    return responses.Response(content=render.render_png(rgba), media_type="image/png")


@router.get("/coordinates")
async def coordinates(
    x: float,
    y: float,
    dataset: mosaic.MosaicedDataset = fastapi.Depends(get_mosaic),  # noqa: B008
) -> dict[str, float]:
    """Return world coordinates and elevation of a mosaic pixel.

    Raises:
        HTTPException: 422 if the elevation lookup fails.
    """
    try:
        coordinate = dataset.get_world_coordinates(x, y)
    except errors.BackendError as exc:
        raise fastapi.HTTPException(status_code=422, detail=str(exc)) from exc
    return coordinate_response(coordinate)
