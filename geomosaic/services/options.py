"""Mosaic configuration: output scaling and color band selection.

Example:
    Build options reading bands 4, 3, 2 as red, green, blue:
        >>> from geomosaic.services.options import DatasetOptions
        >>> options = (
        ...     DatasetOptions.builder()
        ...     .set_scaling(2048, 1024)
        ...     .set_band_indexes(4, 3, 2)
        ...     .build()
        ... )
        >>> options.band_indexes
        (4, 3, 2)
"""

from __future__ import annotations

import dataclasses

DEFAULT_SCALING: tuple[int, int] = (1024, 1024)
DEFAULT_RED_BAND = 1
DEFAULT_GREEN_BAND = 2
DEFAULT_BLUE_BAND = 3


@dataclasses.dataclass(frozen=True)
class DatasetOptions:
    """Immutable configuration of a mosaic.

    Attributes:
        scaling: Default ``(width, height)`` of rendered windows.
        red_band_index: 1-based band read as red.
        green_band_index: 1-based band read as green.
        blue_band_index: 1-based band read as blue.
    """

    scaling: tuple[int, int] = DEFAULT_SCALING
    red_band_index: int = DEFAULT_RED_BAND
    green_band_index: int = DEFAULT_GREEN_BAND
    blue_band_index: int = DEFAULT_BLUE_BAND

    @staticmethod
    def builder() -> DatasetOptionsBuilder:
        """Return a builder with every field unset."""
        return DatasetOptionsBuilder()

    @property
    def band_indexes(self) -> tuple[int, int, int]:
        return (self.red_band_index, self.green_band_index, self.blue_band_index)


@dataclasses.dataclass(frozen=True)
class DatasetOptionsBuilder:
    """Builder for DatasetOptions.

    Setters never mutate the builder they are called on; each returns a new
    builder. Unset fields fall back to the module defaults in ``build``.
    Band indexes are not validated here; an invalid index surfaces as a
    ``BackendError`` when a read uses it.
    """

    scaling: tuple[int, int] | None = None
    red_band_index: int | None = None
    green_band_index: int | None = None
    blue_band_index: int | None = None

    def set_scaling(self, width: int, height: int) -> DatasetOptionsBuilder:
        return dataclasses.replace(self, scaling=(width, height))

    def set_band_indexes(
        self,
        red: int,
        green: int,
        blue: int,
    ) -> DatasetOptionsBuilder:
        return dataclasses.replace(
            self,
            red_band_index=red,
            green_band_index=green,
            blue_band_index=blue,
        )

    def build(self) -> DatasetOptions:
        return DatasetOptions(
            scaling=self.scaling or DEFAULT_SCALING,
            red_band_index=_or_default(self.red_band_index, DEFAULT_RED_BAND),
            green_band_index=_or_default(self.green_band_index, DEFAULT_GREEN_BAND),
            blue_band_index=_or_default(self.blue_band_index, DEFAULT_BLUE_BAND),
        )


def _or_default(value: int | None, default: int) -> int:
    return default if value is None else value
