"""Row models of the geo-persistence store.

A geotransform is stored by name (``"dataset"`` or ``"elevation"``) as six
GDAL-ordered coefficients, each nullable in the table. Elevation pixels are
stored one row per pixel at positions ``1..width*height`` in row-major
order, with the raster size kept in a separate properties row.

Example:
    Convert a stored transform back to coefficients:
        >>> record = GeoTransformRecord(
        ...     name="dataset",
        ...     transform=(9.0, 0.0001, 0.0, 57.0, 0.0, -0.0001),
        ... )
        >>> record.coefficients()
        (9.0, 0.0001, 0.0, 57.0, 0.0, -0.0001)
"""

from __future__ import annotations

import dataclasses

from geomosaic.core import errors

Coefficients = tuple[float, float, float, float, float, float]


@dataclasses.dataclass(frozen=True)
class GeoTransformRecord:
    """A named geotransform row.

    Attributes:
        name: Transform name, ``"dataset"`` or ``"elevation"``.
        transform: Six GDAL-ordered coefficients, any of which may be NULL.
    """

    name: str
    transform: tuple[float | None, ...]

    def coefficients(self) -> Coefficients:
        """Return the six coefficients.

        Raises:
            PersistenceError: If the row does not hold six non-NULL values.
        """
        if len(self.transform) != 6 or any(v is None for v in self.transform):
            raise errors.PersistenceError(
                f"Geotransform {self.name!r} is incomplete: {self.transform}"
            )
        return tuple(float(v) for v in self.transform)  # type: ignore[arg-type, return-value]


@dataclasses.dataclass(frozen=True)
class ElevationProperties:
    """Size of the ingested elevation raster in pixels."""

    x_size: int
    y_size: int

    def position(self, col: int, row: int) -> int:
        """Return the 1-based row-major position of a pixel."""
        return row * self.x_size + col + 1
