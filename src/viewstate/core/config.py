"""
Defaults and environment configuration for the viewstate engine.

Module constants hold the wire-level vocabulary (address parameter names,
separators, storage keys) and the numeric defaults. ``EngineSettings``
carries the values a host may override through environment variables.

Environment variables:
    - VIEWSTATE_ENV: development (default), test, production
    - VIEWSTATE_SEARCH_DEBOUNCE_MS: search debounce window (default 300)
    - VIEWSTATE_DEFAULT_PAGE_SIZE: table page size default (default 10)
    - VIEWSTATE_PREFERENCES_DIR: directory for file-backed column preferences

Usage:
    from viewstate.core.config import get_settings

    settings = get_settings()
    settings.search_debounce_ms  # 300
"""

from __future__ import annotations

import logging
import os
from enum import StrEnum
from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

# =============================================================================
# Pagination
# =============================================================================

DEFAULT_PAGE_SIZE = 10
DEFAULT_PAGE_SIZE_OPTIONS = [10, 25, 50, 100]

DEFAULT_GRID_PAGE_SIZE = 12
DEFAULT_GRID_PAGE_SIZE_OPTIONS = [12, 24, 48, 96]

MAX_VISIBLE_PAGES = 5

# =============================================================================
# Search
# =============================================================================

SEARCH_DEBOUNCE_DELAY_MS = 300

# =============================================================================
# Columns
# =============================================================================

DEFAULT_COLUMN_WIDTH = 150
MIN_COLUMN_WIDTH = 50
MAX_COLUMN_WIDTH = 1000

# =============================================================================
# Selection
# =============================================================================

DEFAULT_MULTI_ROW_SELECTION = True
DEFAULT_MAX_SELECTIONS = 0  # 0 = unlimited

# =============================================================================
# Query cache
# =============================================================================

DEFAULT_QUERY_CACHE_SIZE = 100

# =============================================================================
# Storage
# =============================================================================

STORAGE_KEY_PREFIX = "datatable"
COLUMN_PREFERENCES_VERSION = 1


def column_preferences_key(view_id: str) -> str:
    """Durable storage key for a view's column preferences."""
    return f"{STORAGE_KEY_PREFIX}.{view_id}.columns"


# =============================================================================
# Address bar vocabulary
# =============================================================================


class UrlParam(StrEnum):
    """Base names of the address-bar parameters owned by the channels."""

    SORT = "sort"
    PAGE = "page"
    PAGE_SIZE = "pageSize"
    SEARCH = "search"
    FILTERS = "filters"


def param_name(prefix: str, name: str) -> str:
    """Namespace an address parameter (``orders`` + ``page`` -> ``orders_page``)."""
    return f"{prefix}_{name}" if prefix else str(name)


SORT_SEPARATOR = ","
SORT_DIRECTION_SEPARATOR = ":"
SORT_ASC = "asc"
SORT_DESC = "desc"

FILTER_SEPARATOR = "|"
FILTER_PARTS_SEPARATOR = ":"
FILTER_ARRAY_SEPARATOR = ","

# =============================================================================
# Environment
# =============================================================================


class ViewStateEnv(StrEnum):
    """Runtime environment values."""

    DEVELOPMENT = "development"
    TEST = "test"
    PRODUCTION = "production"


VIEWSTATE_ENV_VAR = "VIEWSTATE_ENV"


def get_viewstate_env() -> ViewStateEnv:
    """Get the current environment from VIEWSTATE_ENV.

    Unknown values fall back to development with a warning.
    """
    env_value = os.environ.get(VIEWSTATE_ENV_VAR, "").lower().strip()

    if env_value in ("production", "prod"):
        return ViewStateEnv.PRODUCTION
    elif env_value in ("test", "testing"):
        return ViewStateEnv.TEST
    elif env_value in ("development", "dev", ""):
        return ViewStateEnv.DEVELOPMENT
    else:
        logger.warning(
            "Unknown VIEWSTATE_ENV value '%s'. "
            "Valid values: development, test, production. Defaulting to development.",
            env_value,
        )
        return ViewStateEnv.DEVELOPMENT


class EngineSettings(BaseModel):
    """Host-overridable engine settings."""

    model_config = ConfigDict(frozen=True)

    env: ViewStateEnv = ViewStateEnv.DEVELOPMENT
    search_debounce_ms: int = Field(default=SEARCH_DEBOUNCE_DELAY_MS, ge=0)
    default_page_size: int = Field(default=DEFAULT_PAGE_SIZE, gt=0)
    preferences_dir: str | None = None


def _int_from_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %d", name, raw, default)
        return default


def load_settings() -> EngineSettings:
    """Build settings from the environment (uncached)."""
    return EngineSettings(
        env=get_viewstate_env(),
        search_debounce_ms=_int_from_env("VIEWSTATE_SEARCH_DEBOUNCE_MS", SEARCH_DEBOUNCE_DELAY_MS),
        default_page_size=_int_from_env("VIEWSTATE_DEFAULT_PAGE_SIZE", DEFAULT_PAGE_SIZE),
        preferences_dir=os.environ.get("VIEWSTATE_PREFERENCES_DIR") or None,
    )


@lru_cache(maxsize=1)
def get_settings() -> EngineSettings:
    """Process-wide settings, read once."""
    return load_settings()
