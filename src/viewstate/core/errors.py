"""
Error types for the viewstate engine.

Most of the engine never raises: malformed address segments are skipped,
preference load failures fall back to defaults and capacity limits reject
mutations silently. The types below cover the remaining cases: invalid
construction arguments and transport failures surfaced by a data source.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class ViewStateError(Exception):
    """Base exception for all viewstate errors."""

    def __init__(self, message: str, context: ErrorContext | None = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}: {self.message}"
        return self.message


class ConfigurationError(ViewStateError):
    """
    Raised when a store, channel or orchestrator is built with invalid options.

    Examples:
    - Empty view identity
    - Non-positive default page size
    - Negative max_selections
    """

    pass


class DataSourceError(ViewStateError):
    """
    Raised by a data source when a fetch fails.

    The orchestrator captures this verbatim in its query state; it is
    never retried by the engine.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        payload: Any = None,
        context: ErrorContext | None = None,
    ):
        self.status_code = status_code
        self.payload = payload
        super().__init__(message, context)

    @property
    def is_client_error(self) -> bool:
        return self.status_code is not None and 400 <= self.status_code < 500

    @property
    def is_server_error(self) -> bool:
        return self.status_code is not None and self.status_code >= 500

    @property
    def is_network_error(self) -> bool:
        """True when the request never produced an HTTP response."""
        return self.status_code is None


@dataclass
class ErrorContext:
    """
    Where an error happened, in engine terms.

    Attributes:
        view_id: View identity the error belongs to
        endpoint: Backend endpoint, for fetch errors
        params: Resolved query parameters, for fetch errors
    """

    view_id: str | None = None
    endpoint: str | None = None
    params: dict[str, Any] | None = None

    def format(self) -> str:
        """
        Format error context as a short location string.

        Returns:
            Formatted string like: "orders GET /orders page=2"
        """
        parts: list[str] = []
        if self.view_id:
            parts.append(self.view_id)
        if self.endpoint:
            parts.append(f"GET {self.endpoint}")
        if self.params:
            parts.append(" ".join(f"{k}={v}" for k, v in self.params.items()))
        return " ".join(parts) or "viewstate"


def make_configuration_error(message: str, view_id: str | None = None) -> ConfigurationError:
    """
    Helper to create a ConfigurationError with optional view context.

    Args:
        message: Error description
        view_id: Optional view identity

    Returns:
        ConfigurationError with context if a view id was provided
    """
    if view_id:
        return ConfigurationError(message, ErrorContext(view_id=view_id))
    return ConfigurationError(message)
