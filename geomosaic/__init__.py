"""Geomosaic: raster mosaics rendered to RGBA with elevation lookup.

Tiled GeoTIFF imagery is composed into a virtual mosaic (optionally
materialized as a Cloud Optimized GeoTIFF), arbitrary windows are rendered
to gamma-corrected 8-bit RGBA, and pixels are mapped to world coordinates
and elevation through a separately geo-referenced elevation raster or the
transforms persisted in PostgreSQL.

- services: mosaic model, pixel conversion, statistics, coordinate chain
- utils: rasterio and GDAL command-line adapters
- db: geotransform and elevation persistence
- api: FastAPI routers for rendering and coordinate lookup
"""
