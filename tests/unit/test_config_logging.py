"""Tests for environment settings, error formatting and logging setup."""

import json
import logging
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

from viewstate.core.config import (
    ViewStateEnv,
    column_preferences_key,
    get_viewstate_env,
    load_settings,
    param_name,
)
from viewstate.core.errors import DataSourceError, ErrorContext, make_configuration_error
from viewstate.core.logging import (
    ROOT_LOGGER_NAME,
    JSONLFormatter,
    get_logger,
    log_with_context,
    setup_logging,
)


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in (
            "VIEWSTATE_ENV",
            "VIEWSTATE_SEARCH_DEBOUNCE_MS",
            "VIEWSTATE_DEFAULT_PAGE_SIZE",
            "VIEWSTATE_PREFERENCES_DIR",
        ):
            monkeypatch.delenv(name, raising=False)

        settings = load_settings()

        assert settings.env is ViewStateEnv.DEVELOPMENT
        assert settings.search_debounce_ms == 300
        assert settings.default_page_size == 10
        assert settings.preferences_dir is None

    def test_overrides(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("VIEWSTATE_ENV", "prod")
        monkeypatch.setenv("VIEWSTATE_SEARCH_DEBOUNCE_MS", "150")
        monkeypatch.setenv("VIEWSTATE_DEFAULT_PAGE_SIZE", "25")
        monkeypatch.setenv("VIEWSTATE_PREFERENCES_DIR", str(tmp_path))

        settings = load_settings()

        assert settings.env is ViewStateEnv.PRODUCTION
        assert settings.search_debounce_ms == 150
        assert settings.default_page_size == 25
        assert settings.preferences_dir == str(tmp_path)

    def test_bad_integer_falls_back(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VIEWSTATE_SEARCH_DEBOUNCE_MS", "soon")
        assert load_settings().search_debounce_ms == 300

    def test_unknown_env_defaults_to_development(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VIEWSTATE_ENV", "staging")
        assert get_viewstate_env() is ViewStateEnv.DEVELOPMENT

    def test_names(self) -> None:
        assert param_name("", "page") == "page"
        assert param_name("orders", "pageSize") == "orders_pageSize"
        assert column_preferences_key("orders") == "datatable.orders.columns"


class TestErrors:
    """Tests for error formatting."""

    def test_context_prefixes_message(self) -> None:
        err = DataSourceError(
            "timeout",
            context=ErrorContext(view_id="orders", endpoint="/orders", params={"page": 2}),
        )
        assert str(err) == "orders GET /orders page=2: timeout"
        assert err.is_network_error

    def test_configuration_error_helper(self) -> None:
        assert str(make_configuration_error("bad")) == "bad"
        assert str(make_configuration_error("bad", "orders")) == "orders: bad"


class TestLogging:
    """Tests for logging setup and structured context."""

    @pytest.fixture(autouse=True)
    def _restore_root_logger(self) -> Iterator[None]:
        root = logging.getLogger(ROOT_LOGGER_NAME)
        yield
        for handler in list(root.handlers):
            handler.close()
        root.handlers.clear()
        root.setLevel(logging.NOTSET)

    def test_jsonl_file_output(self, tmp_path: Path) -> None:
        setup_logging(log_dir=tmp_path, level=logging.INFO)
        logger = get_logger("orchestrator")

        log_with_context(logger, logging.WARNING, "Fetch failed", view_id="orders", page=2)
        for handler in logging.getLogger(ROOT_LOGGER_NAME).handlers:
            handler.flush()

        lines = (tmp_path / "viewstate.log").read_text().strip().splitlines()
        entry = json.loads(lines[-1])
        assert entry["level"] == "WARNING"
        assert entry["component"] == "orchestrator"
        assert entry["message"] == "Fetch failed"
        assert entry["context"] == {"view_id": "orders", "page": 2}

    def test_get_logger_is_cached(self) -> None:
        assert get_logger("columns") is get_logger("columns")
        assert get_logger("columns").name == "viewstate.columns"

    def test_jsonl_formatter_includes_exception(self) -> None:
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.getLogger("x").makeRecord(
                "x", logging.ERROR, __file__, 1, "failed", None, exc_info=sys.exc_info()
            )
        entry = json.loads(JSONLFormatter().format(record))
        assert entry["exception"] == {"type": "ValueError", "message": "boom"}


class TestVersion:
    """Tests for the package version."""

    def test_version_is_a_string(self) -> None:
        import viewstate

        assert isinstance(viewstate.__version__, str)
        assert viewstate.__version__
