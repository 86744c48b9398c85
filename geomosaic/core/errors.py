"""Exception hierarchy shared by the raster and persistence layers.

Raster failures (missing files, unreadable bands, invalid windows, failed
GDAL tools, degenerate geotransforms) surface as ``BackendError``. Failures
of the geo-persistence store surface as ``PersistenceError``. Conversion
errors are raised by the scalar pixel helpers only and never leave
``band_merger``.

Example:
    Distinguish a missing elevation transform from other storage failures:
        >>> from geomosaic.core import errors
        >>> try:
        ...     repo.read_geotransform("elevation")
        ... except errors.NotFoundError:
        ...     transform = None
"""


class BackendError(RuntimeError):
    """Raised when opening, reading or composing rasters fails."""


class NonInvertibleTransformError(BackendError):
    """Raised when a geotransform's linear part is singular."""


class ConversionError(ValueError):
    """Base class for per-channel pixel conversion failures."""


class NotANumberError(ConversionError):
    """Raised when a channel sample is NaN."""


class GammaOutOfRangeError(ConversionError):
    """Raised when a normalized sample falls outside ``[0, 1]``."""


class PersistenceError(RuntimeError):
    """Raised when the geo-persistence store fails."""


class NotFoundError(PersistenceError):
    """Raised when a requested row does not exist."""


class AlreadyStoredError(PersistenceError):
    """Raised when data that may only be stored once already exists."""
