from __future__ import annotations

import logging

import pytest

from espscan.utils.logging import setup_logging, suppress_logger


def test_setup_logging_quiets_bleak(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("LOGLEVEL", "debug")

    setup_logging()

    assert logging.getLogger("bleak").level == logging.WARNING


def test_suppress_logger():
    suppress_logger("espscan.test.noisy", "ERROR")
    assert logging.getLogger("espscan.test.noisy").level == logging.ERROR
