"""Tests for the logging helpers in geomosaic.core.logging_utils."""

from __future__ import annotations

import json
import logging

from geomosaic.core import logging_utils


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="geomosaic.services.mosaic",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Wrote VRT %s",
        args=("out/dataset.vrt",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_payload() -> None:
    """JSON lines carry level, logger, message and extra fields."""
    payload = json.loads(logging_utils.JsonFormatter().format(_record(mosaic="m.tif")))
    assert payload["level"] == "info"
    assert payload["logger"] == "geomosaic.services.mosaic"
    assert payload["message"] == "Wrote VRT out/dataset.vrt"
    assert payload["extra"] == {"mosaic": "m.tif"}
    assert payload["timestamp"].endswith("Z")


def test_json_formatter_without_extra() -> None:
    """Records without extra fields have no extra key."""
    payload = json.loads(logging_utils.JsonFormatter().format(_record()))
    assert "extra" not in payload


def test_human_formatter_prefixes_mosaic() -> None:
    """The mosaic name prefixes human readable lines."""
    formatter = logging_utils.HumanFormatter("%(message)s")
    assert formatter.format(_record(mosaic="m.tif")) == "[m.tif] Wrote VRT out/dataset.vrt"
    assert formatter.format(_record()) == "Wrote VRT out/dataset.vrt"


def test_configure_logging_single_handler() -> None:
    """Repeated configuration keeps exactly one handler."""
    logging_utils.configure_logging("debug")
    logger = logging_utils.configure_logging("warning", json_console=True)

    assert logger.name == "geomosaic"
    assert len(logger.handlers) == 1
    assert logger.level == logging.WARNING
    assert isinstance(logger.handlers[0].formatter, logging_utils.JsonFormatter)
    logger.handlers.clear()
