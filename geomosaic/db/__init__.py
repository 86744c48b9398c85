"""Geo-persistence store for geotransforms and elevation pixels.

The repository protocol and its constructors live in
``geomosaic.db.database``; row models live in ``geomosaic.db.models``.

Example:
    Use in a service or FastAPI dependency:
        >>> from geomosaic.db import database
        >>> repo = database.get_geo_repository(settings)
        >>> repo.read_geotransform("dataset")
"""
