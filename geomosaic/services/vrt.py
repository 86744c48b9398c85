"""Virtual mosaic (VRT) builder.

The VRT covers the union of the source bounds at the first source's
resolution. Sources are referenced by absolute path so the descriptor can
live on disk or in GDAL's in-memory filesystem. Sources later in the list
are drawn over earlier ones except where they hold nodata.
"""

from __future__ import annotations

import logging
import math
import pathlib
import xml.etree.ElementTree as ET
from typing import TYPE_CHECKING

from rasterio.dtypes import _gdal_typename
from rasterio.transform import from_origin

from geomosaic.core import errors

if TYPE_CHECKING:
    from collections.abc import Sequence

    from rasterio.io import DatasetReader

logger = logging.getLogger(__name__)


def _check_compatible(sources: Sequence[DatasetReader]) -> None:
    base = sources[0]
    if base.crs is None:
        raise errors.BackendError("Source raster CRS is required for mosaics.")
    for src in sources[1:]:
        if src.crs != base.crs:
            raise errors.BackendError("All mosaic sources must share the same CRS.")
        if src.count != base.count:
            raise errors.BackendError(
                "All mosaic sources must share the same band count."
            )
        if src.dtypes[0] != base.dtypes[0]:
            raise errors.BackendError("All mosaic sources must share the same dtype.")


def build_vrt_element(sources: Sequence[DatasetReader]) -> ET.Element:
    """Compose the VRT XML tree for a list of open rasters.

    Raises:
        BackendError: If no sources are given or they are incompatible.
    """
    if not sources:
        raise errors.BackendError("At least one raster is required for a mosaic.")
    _check_compatible(sources)

    base = sources[0]
    res_x, res_y = abs(base.res[0]), abs(base.res[1])
    min_x = min(src.bounds.left for src in sources)
    min_y = min(src.bounds.bottom for src in sources)
    max_x = max(src.bounds.right for src in sources)
    max_y = max(src.bounds.top for src in sources)
    width = max(1, int(math.ceil((max_x - min_x) / res_x)))
    height = max(1, int(math.ceil((max_y - min_y) / res_y)))
    transform = from_origin(min_x, max_y, res_x, res_y)

    root = ET.Element(
        "VRTDataset",
        rasterXSize=str(width),
        rasterYSize=str(height),
    )
    srs = " ".join(base.crs.to_wkt().split())
    ET.SubElement(root, "SRS").text = srs
    ET.SubElement(root, "GeoTransform").text = ", ".join(
        f"{value:.10f}" for value in transform.to_gdal()
    )

    dtype_name = _gdal_typename(base.dtypes[0])
    for band_index in range(1, base.count + 1):
        band_node = ET.SubElement(
            root,
            "VRTRasterBand",
            dataType=dtype_name,
            band=str(band_index),
        )
        if base.nodata is not None:
            ET.SubElement(band_node, "NoDataValue").text = repr(base.nodata)
        for src in sources:
            bounds = src.bounds
            # Nodata pixels of a source leave earlier sources visible.
            source_tag = "SimpleSource" if src.nodata is None else "ComplexSource"
            source_node = ET.SubElement(band_node, source_tag)
            ET.SubElement(
                source_node,
                "SourceFilename",
                relativeToVRT="0",
            ).text = pathlib.Path(src.name).resolve().as_posix()
            ET.SubElement(source_node, "SourceBand").text = str(band_index)
            ET.SubElement(
                source_node,
                "SrcRect",
                xOff="0",
                yOff="0",
                xSize=str(src.width),
                ySize=str(src.height),
            )
            ET.SubElement(
                source_node,
                "DstRect",
                xOff=str(int(round((bounds.left - min_x) / res_x))),
                yOff=str(int(round((max_y - bounds.top) / res_y))),
                xSize=str(max(1, int(round((bounds.right - bounds.left) / res_x)))),
                ySize=str(max(1, int(round((bounds.top - bounds.bottom) / res_y)))),
            )
            if src.nodata is not None:
                ET.SubElement(source_node, "NODATA").text = repr(src.nodata)

    logger.debug(
        "Composed VRT of %d sources, %dx%d pixels", len(sources), width, height
    )
    return root


def build_vrt_xml(sources: Sequence[DatasetReader]) -> str:
    """Return the VRT descriptor for ``sources`` as an XML string."""
    return ET.tostring(build_vrt_element(sources), encoding="unicode")


def write_vrt(
    sources: Sequence[DatasetReader],
    output_path: pathlib.Path,
) -> pathlib.Path:
    """Write the VRT descriptor for ``sources`` to ``output_path``."""
    root = build_vrt_element(sources)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    ET.ElementTree(root).write(output_path, encoding="utf-8", xml_declaration=True)
    logger.info("Wrote VRT %s", output_path)
    return output_path
