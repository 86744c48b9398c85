"""Unit tests for utilities in geomosaic.utils.gdal_helpers.

This module tests the GDAL command execution helpers:
    - Successful command execution (zero exit code)
    - Failure handling and error message propagation (nonzero exit code)
    - A missing executable
    - The gdal_translate COG invocation

Monkeypatching is used to avoid actual subprocess execution, ensuring tests
are isolated, fast, and reliable.

See Also:
    - geomosaic/utils/gdal_helpers.py for implementation details.
"""

import pathlib
import subprocess
from typing import Any

import pytest

from geomosaic.core import errors
from geomosaic.utils import gdal_helpers


def test_run_command_success(monkeypatch: pytest.MonkeyPatch) -> None:
    """Command with zero return code should pass."""

    def fake_run(
        *args: Any,
        **kwargs: Any,
    ) -> subprocess.CompletedProcess[str]:
        """Mock subprocess.run to return a successful CompletedProcess."""
        return subprocess.CompletedProcess(
            args=[],
            returncode=0,
            stdout="ok",
            stderr="",
        )

    monkeypatch.setattr(gdal_helpers.subprocess, "run", fake_run)
    gdal_helpers.run_command(["echo", "ok"])


def test_run_command_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    """Command errors raise CommandError with message."""

    def fake_run(
        *args: Any,
        **kwargs: Any,
    ) -> subprocess.CompletedProcess[str]:
        return subprocess.CompletedProcess(
            args=[],
            returncode=1,
            stdout="",
            stderr="fail\n",
        )

    monkeypatch.setattr(gdal_helpers.subprocess, "run", fake_run)
    with pytest.raises(gdal_helpers.CommandError, match="^fail$"):
        gdal_helpers.run_command(["false"])


def test_run_command_missing_executable(monkeypatch: pytest.MonkeyPatch) -> None:
    """An executable that cannot be started raises CommandError."""

    def fake_run(*args: Any, **kwargs: Any) -> None:
        raise FileNotFoundError("gdal_translate")

    monkeypatch.setattr(gdal_helpers.subprocess, "run", fake_run)
    with pytest.raises(gdal_helpers.CommandError, match="Could not run"):
        gdal_helpers.run_command(["gdal_translate"])


def test_command_error_is_backend_error() -> None:
    """Command failures surface as raster backend errors."""
    assert issubclass(gdal_helpers.CommandError, errors.BackendError)


def test_cog_command() -> None:
    """The COG profile uses ZSTD, predictor, BigTIFF and all CPUs."""
    command = gdal_helpers.cog_command(
        pathlib.Path("out/dataset.vrt"),
        pathlib.Path("out/dataset.tif"),
    )
    assert command[:3] == ["gdal_translate", "-of", "COG"]
    assert command[-2:] == ["out/dataset.vrt", "out/dataset.tif"]
    options = [command[i + 1] for i, part in enumerate(command) if part == "-co"]
    assert options == [
        "COMPRESS=ZSTD",
        "PREDICTOR=YES",
        "BIGTIFF=YES",
        "NUM_THREADS=ALL_CPUS",
    ]


def test_translate_to_cog(monkeypatch: pytest.MonkeyPatch) -> None:
    """translate_to_cog runs gdal_translate and returns the COG path."""
    captured: list[list[str]] = []

    def fake_run_command(command: list[str], workdir: Any = None) -> None:
        captured.append(command)

    monkeypatch.setattr(gdal_helpers, "run_command", fake_run_command)
    cog = pathlib.Path("out/dataset.tif")
    result = gdal_helpers.translate_to_cog(pathlib.Path("out/dataset.vrt"), cog)

    assert result == cog
    assert captured == [
        gdal_helpers.cog_command(pathlib.Path("out/dataset.vrt"), cog)
    ]
