"""Pytest configuration and fixtures."""

# std imports
import logging

# 3rd party
import pytest


@pytest.fixture(autouse=True)
def debug_logging(caplog):
    """Capture telnetmux protocol trace in test reports."""
    caplog.set_level(logging.DEBUG, logger="telnetmux")
    return caplog
