"""
Tests for fractal_discovery/utils/logging.py.

What we test
------------
configure_logging():
  - Writes to the configured log file, creating its directory.
  - JSON format emits one object per line with extra= fields at top level.
  - Quiets the lightgbm logger to WARNING.
"""

from __future__ import annotations

import json
import logging

import pytest

from fractal_discovery.config import LoggingConfig
from fractal_discovery.utils.logging import configure_logging


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


def test_text_log_file(tmp_path):
    log_file = tmp_path / "logs" / "engine.log"
    configure_logging(LoggingConfig(level="debug", log_file=str(log_file)))
    logging.getLogger("fractal_discovery.test").debug("retrain needed")

    text = log_file.read_text(encoding="utf-8")
    assert "[DEBUG] fractal_discovery.test: retrain needed" in text


def test_json_lines_carry_extra_fields(tmp_path):
    log_file = tmp_path / "engine.jsonl"
    configure_logging(LoggingConfig(log_file=str(log_file), json_format=True))
    logging.getLogger("fractal_discovery.test").info(
        "Training new scorer", extra={"favorite_count": 5}
    )

    line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
    payload = json.loads(line)
    assert payload["level"] == "INFO"
    assert payload["logger"] == "fractal_discovery.test"
    assert payload["msg"] == "Training new scorer"
    assert payload["favorite_count"] == 5


def test_lightgbm_logger_quieted(tmp_path):
    configure_logging(LoggingConfig(level="DEBUG", log_file=str(tmp_path / "x.log")))
    assert logging.getLogger("lightgbm").level == logging.WARNING
