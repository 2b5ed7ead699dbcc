"""Shared fixtures."""

import logging

import pytest


@pytest.fixture(autouse=True)
def reset_vaultclip_logger():
    """Undo setup_logging() so caplog sees records in every test."""
    yield
    logger = logging.getLogger("vaultclip")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
