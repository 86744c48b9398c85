"""API router subpackage for the geomosaic service.

Submodules:
    - mosaic: Rendering windows of the served mosaic and raster-backed
      coordinate lookup.
    - geo: Coordinate lookup against the geo-persistence store and
      ingestion of the served mosaic's geo-reference.
"""
