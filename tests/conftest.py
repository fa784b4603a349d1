"""Shared fixtures for refbook tests."""

import pytest

from refbook.config import (
    INITIAL_DEFAULT_LANG,
    INITIAL_NOT_FOUND_NAME,
    set_default_lang,
    set_not_found_name,
)


@pytest.fixture(autouse=True)
def reset_global_config():
    """Every test starts and ends with the process-wide defaults."""
    set_default_lang(INITIAL_DEFAULT_LANG)
    set_not_found_name(INITIAL_NOT_FOUND_NAME)
    yield
    set_default_lang(INITIAL_DEFAULT_LANG)
    set_not_found_name(INITIAL_NOT_FOUND_NAME)
