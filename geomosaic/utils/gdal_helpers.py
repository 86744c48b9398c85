"""Safe execution wrapper for GDAL command-line utilities.

This module runs GDAL tools (gdal_translate) as subprocesses for the steps
rasterio does not expose, chiefly writing a Cloud Optimized GeoTIFF from a
virtual mosaic. Non-zero exit codes raise CommandError carrying the tool's
stderr output.

Example:
    Convert a VRT mosaic into a COG:
        >>> from geomosaic.utils.gdal_helpers import translate_to_cog
        >>> translate_to_cog(Path("out/dataset.vrt"), Path("out/dataset.tif"))
"""

from __future__ import annotations

import logging
import subprocess
from typing import TYPE_CHECKING

from geomosaic.core import errors

if TYPE_CHECKING:
    import pathlib
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

COG_CREATION_OPTIONS: dict[str, str] = {
    "COMPRESS": "ZSTD",
    "PREDICTOR": "YES",
    "BIGTIFF": "YES",
    "NUM_THREADS": "ALL_CPUS",
}


class CommandError(errors.BackendError):
    """Exception raised when a GDAL subprocess command fails.

    Contains the error message from the failed command's stderr output.

    Example:
        Handle command failures:
            >>> try:
            ...     run_command(["gdal_translate", "-of", "COG", ...])
            ... except CommandError as e:
            ...     print(f"GDAL command failed: {e}")
    """


def run_command(
    command: Iterable[str | pathlib.Path],
    workdir: pathlib.Path | None = None,
) -> None:
    """Execute a command and raise on non-zero exit.

    Args:
        command: Iterable arguments to execute (e.g., ["gdal_translate", ...]).
        workdir: Optional working directory for the command execution.

    Raises:
        CommandError: if the command cannot be started or exits with a
            non-zero status code. The message carries the stderr output.
    """
    arguments = [str(part) for part in command]
    logger.debug("Running %s", " ".join(arguments))
    try:
        result = subprocess.run(
            arguments,
            cwd=workdir,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise CommandError(f"Could not run {arguments[0]}: {exc}") from exc
    if result.returncode != 0:
        raise CommandError(result.stderr.strip() or "Unknown command failure")


def cog_command(
    source_path: pathlib.Path,
    cog_path: pathlib.Path,
) -> list[str]:
    """Return the gdal_translate invocation writing a COG.

    Args:
        source_path: Raster (typically a VRT) to translate.
        cog_path: Destination GeoTIFF path.

    Returns:
        Argument list using the fixed COG creation profile.
    """
    command = ["gdal_translate", "-of", "COG"]
    for key, value in COG_CREATION_OPTIONS.items():
        command.extend(["-co", f"{key}={value}"])
    command.extend([str(source_path), str(cog_path)])
    return command


def translate_to_cog(
    source_path: pathlib.Path,
    cog_path: pathlib.Path,
) -> pathlib.Path:
    """Write a Cloud Optimized GeoTIFF from a source raster.

    Uses ZSTD compression with horizontal differencing, BigTIFF offsets and
    all available CPUs.

    Args:
        source_path: Raster (typically a VRT) to translate.
        cog_path: Destination GeoTIFF path.

    Returns:
        The ``cog_path`` that was written.

    Raises:
        CommandError: If gdal_translate fails.
    """
    run_command(cog_command(source_path, cog_path))
    logger.info("Wrote COG %s", cog_path)
    return cog_path
