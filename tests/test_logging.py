import logging

import pytest

import torchring
from torchring.errors import ConfigError
from torchring.logging import log_errors, log_performance, logger, set_log_level


def test_set_log_level_roundtrip() -> None:
    previous = logger.level
    try:
        set_log_level("debug")
        assert logger.level == logging.DEBUG
        set_log_level("WARNING")
        assert logger.level == logging.WARNING
        set_log_level("not-a-level")
        assert logger.level == logging.INFO
    finally:
        logger.setLevel(previous)


def test_log_errors_logs_and_reraises(caplog) -> None:
    @log_errors
    def broken():
        raise ConfigError("bad ring count")

    with caplog.at_level(logging.ERROR, logger="torchring"):
        with pytest.raises(ConfigError):
            broken()
    assert any("Error in broken: bad ring count" in rec.getMessage() for rec in caplog.records)


def test_log_performance_reports_timing(caplog) -> None:
    @log_performance
    def quick():
        return 42

    with caplog.at_level(logging.DEBUG, logger="torchring"):
        assert quick() == 42
    assert any("quick completed in" in rec.getMessage() for rec in caplog.records)


def test_builder_failure_is_logged(caplog) -> None:
    with caplog.at_level(logging.ERROR, logger="torchring"):
        with pytest.raises(ConfigError):
            torchring.make_ecp_geometry(3, 8)
    assert any("make_ecp_geometry failed" in rec.getMessage() for rec in caplog.records)


def test_builders_log_geometry_summary(caplog) -> None:
    with caplog.at_level(logging.DEBUG, logger="torchring"):
        torchring.make_healpix_geometry(2)
    assert any("Built healpix geometry: nrings=7, npix=48" in rec.getMessage() for rec in caplog.records)
