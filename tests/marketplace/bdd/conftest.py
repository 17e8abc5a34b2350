"""Shared BDD fixtures for the marketplace checkout."""

import pytest


@pytest.fixture()
def world():
    """Named records created by Given steps, plus the latest order and payment result."""
    return {"vendors": {}, "items": {}, "vendor": None, "student": None, "placed": None}


@pytest.fixture()
def error():
    """Container for the failure raised by the latest When step."""
    return {"exc": None}
