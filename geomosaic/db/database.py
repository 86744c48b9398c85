"""Repositories for geotransforms and elevation pixels."""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Protocol

import psycopg2
import psycopg2.extensions

from geomosaic.core import errors
from geomosaic.db import models as db_models

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from geomosaic.core import config

logger = logging.getLogger(__name__)

ELEVATION_PARAMETERS_PER_ROW = 2


def rows_per_statement(max_bind_parameters: int, parameters_per_row: int) -> int:
    """Return how many rows fit in one statement under the parameter ceiling."""
    return max(1, max_bind_parameters // parameters_per_row)


def chunk_count(total: int, chunk_size: int) -> int:
    return math.ceil(total / chunk_size)


def chunked(
    values: Sequence[float],
    chunk_size: int,
) -> Iterator[tuple[int, Sequence[float]]]:
    """Yield ``(offset, chunk)`` pairs covering ``values`` in order."""
    for offset in range(0, len(values), chunk_size):
        yield offset, values[offset : offset + chunk_size]


class GeoRepositoryProtocol(Protocol):
    """Protocol interface for storing and reading geo-reference data.

    Implementations persist named geotransforms and one elevation raster,
    supporting both in-memory (testing) and PostgreSQL (production)
    backends.
    """

    def create_geotransform(
        self,
        name: str,
        transform: Sequence[float | None],
    ) -> None: ...

    def read_geotransform(self, name: str) -> db_models.Coefficients: ...

    def add_elevation(
        self,
        heights: Sequence[float],
        x_size: int,
        y_size: int,
    ) -> None: ...

    def read_elevation_properties(self) -> db_models.ElevationProperties: ...

    def get_elevation(self, col: int, row: int) -> float: ...


def _check_pixel(
    properties: db_models.ElevationProperties,
    col: int,
    row: int,
) -> None:
    if not (0 <= col < properties.x_size and 0 <= row < properties.y_size):
        raise errors.NotFoundError(
            f"Elevation pixel ({col}, {row}) outside "
            f"{properties.x_size}x{properties.y_size} raster"
        )


class InMemoryGeoRepository(GeoRepositoryProtocol):
    """Simple in-memory store for tests and local development.

    Data is lost when the process exits.
    """

    def __init__(self) -> None:
        self._transforms: list[db_models.GeoTransformRecord] = []
        self._heights: dict[int, float] = {}
        self._properties: list[db_models.ElevationProperties] = []

    def create_geotransform(
        self,
        name: str,
        transform: Sequence[float | None],
    ) -> None:
        self._transforms.append(
            db_models.GeoTransformRecord(name=name, transform=tuple(transform))
        )

    def read_geotransform(self, name: str) -> db_models.Coefficients:
        for record in self._transforms:
            if record.name == name:
                return record.coefficients()
        raise errors.NotFoundError(f"No geotransform named {name!r}")

    def add_elevation(
        self,
        heights: Sequence[float],
        x_size: int,
        y_size: int,
    ) -> None:
        if self._heights or self._properties:
            raise errors.AlreadyStoredError("Elevation already stored")
        for position, height in enumerate(heights, start=1):
            self._heights[position] = float(height)
        self._properties.append(db_models.ElevationProperties(x_size, y_size))

    def read_elevation_properties(self) -> db_models.ElevationProperties:
        if not self._properties:
            raise errors.NotFoundError("No elevation properties stored")
        return self._properties[0]

    def get_elevation(self, col: int, row: int) -> float:
        properties = self.read_elevation_properties()
        _check_pixel(properties, col, row)
        position = properties.position(col, row)
        try:
            return self._heights[position]
        except KeyError:
            raise errors.NotFoundError(f"No elevation at position {position}") from None


class PostgresGeoRepository(GeoRepositoryProtocol):
    """PostgreSQL-backed repository for geotransforms and elevation.

    Creates its tables on initialization. Every psycopg2 failure is
    re-raised as ``PersistenceError``.
    """

    CREATE_TABLES_SQL = """
    CREATE TABLE IF NOT EXISTS geotransform (
      id SERIAL PRIMARY KEY,
      dataset_name TEXT NOT NULL,
      transform DOUBLE PRECISION[6]
    );
    CREATE TABLE IF NOT EXISTS elevation (
      id INTEGER PRIMARY KEY,
      height DOUBLE PRECISION NOT NULL
    );
    CREATE TABLE IF NOT EXISTS elevation_properties (
      id SERIAL PRIMARY KEY,
      x_size INTEGER NOT NULL,
      y_size INTEGER NOT NULL
    );
    """

    def __init__(self, settings: config.Settings) -> None:
        """Initialize repository with database settings.

        Args:
            settings: Application settings containing the database URL
                and the bind parameter ceiling.
        """
        self.settings = settings
        self.max_bind_parameters = settings.max_bind_parameters
        self._ensure_schema()

    def _connection(self) -> psycopg2.extensions.connection:
        try:
            return psycopg2.connect(self.settings.database_url)
        except psycopg2.Error as exc:
            raise errors.PersistenceError(f"Could not connect: {exc}") from exc

    def _ensure_schema(self) -> None:
        try:
            with self._connection() as conn, conn.cursor() as cur:
                cur.execute(self.CREATE_TABLES_SQL)
                conn.commit()
        except psycopg2.Error as exc:
            raise errors.PersistenceError(f"Could not create tables: {exc}") from exc

    def create_geotransform(
        self,
        name: str,
        transform: Sequence[float | None],
    ) -> None:
        try:
            with self._connection() as conn, conn.cursor() as cur:
                cur.execute(
                    "INSERT INTO geotransform (dataset_name, transform) "
                    "VALUES (%s, %s)",
                    (name, list(transform)),
                )
                conn.commit()
        except psycopg2.Error as exc:
            raise errors.PersistenceError(
                f"Could not store geotransform {name!r}: {exc}"
            ) from exc

    def read_geotransform(self, name: str) -> db_models.Coefficients:
        try:
            with self._connection() as conn, conn.cursor() as cur:
                cur.execute(
                    "SELECT dataset_name, transform FROM geotransform "
                    "WHERE dataset_name = %s ORDER BY id LIMIT 1",
                    (name,),
                )
                row = cur.fetchone()
        except psycopg2.Error as exc:
            raise errors.PersistenceError(
                f"Could not read geotransform {name!r}: {exc}"
            ) from exc
        if row is None:
            raise errors.NotFoundError(f"No geotransform named {name!r}")
        record = db_models.GeoTransformRecord(
            name=str(row[0]),
            transform=tuple(row[1] or ()),
        )
        return record.coefficients()

    def add_elevation(
        self,
        heights: Sequence[float],
        x_size: int,
        y_size: int,
    ) -> None:
        """Store elevation pixels in chunks, then the raster size.

        Each chunk is one INSERT statement within the bind parameter
        ceiling and is committed on its own. A failure leaves the chunks
        committed before it in place. Elevation can be stored once; a
        second call is rejected before anything is written.

        Raises:
            AlreadyStoredError: If elevation rows already exist.
            PersistenceError: On the first failing statement.
        """
        chunk_size = rows_per_statement(
            self.max_bind_parameters,
            ELEVATION_PARAMETERS_PER_ROW,
        )
        logger.info(
            "Storing %d elevation pixels in %d statements",
            len(heights),
            chunk_count(len(heights), chunk_size),
        )
        try:
            with self._connection() as conn, conn.cursor() as cur:
                cur.execute("SELECT 1 FROM elevation LIMIT 1")
                if cur.fetchone() is not None:
                    raise errors.AlreadyStoredError("Elevation already stored")
                for offset, chunk in chunked(heights, chunk_size):
                    placeholders = ", ".join(["(%s, %s)"] * len(chunk))
                    parameters: list[float] = []
                    for position, height in enumerate(chunk, start=offset + 1):
                        parameters.extend((position, float(height)))
                    cur.execute(
                        f"INSERT INTO elevation (id, height) VALUES {placeholders}",
                        parameters,
                    )
                    conn.commit()
                cur.execute(
                    "INSERT INTO elevation_properties (x_size, y_size) "
                    "VALUES (%s, %s)",
                    (x_size, y_size),
                )
                conn.commit()
        except psycopg2.Error as exc:
            raise errors.PersistenceError(f"Could not store elevation: {exc}") from exc

    def read_elevation_properties(self) -> db_models.ElevationProperties:
        try:
            with self._connection() as conn, conn.cursor() as cur:
                cur.execute(
                    "SELECT x_size, y_size FROM elevation_properties "
                    "ORDER BY id LIMIT 1"
                )
                row = cur.fetchone()
        except psycopg2.Error as exc:
            raise errors.PersistenceError(
                f"Could not read elevation properties: {exc}"
            ) from exc
        if row is None:
            raise errors.NotFoundError("No elevation properties stored")
        return db_models.ElevationProperties(x_size=int(row[0]), y_size=int(row[1]))

    def get_elevation(self, col: int, row: int) -> float:
        properties = self.read_elevation_properties()
        _check_pixel(properties, col, row)
        position = properties.position(col, row)
        try:
            with self._connection() as conn, conn.cursor() as cur:
                cur.execute("SELECT height FROM elevation WHERE id = %s", (position,))
                result = cur.fetchone()
        except psycopg2.Error as exc:
            raise errors.PersistenceError(f"Could not read elevation: {exc}") from exc
        if result is None:
            raise errors.NotFoundError(f"No elevation at position {position}")
        return float(result[0])


def get_geo_repository(settings: config.Settings) -> GeoRepositoryProtocol:
    """Factory function to create a geo repository.

    Args:
        settings: Application settings for database connection.

    Returns:
        PostgresGeoRepository instance for production use.
    """
    return PostgresGeoRepository(settings)

