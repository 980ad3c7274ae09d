"""Shared plumbing for address-state channels."""

from __future__ import annotations

from collections.abc import Mapping

from viewstate.core.config import param_name
from viewstate.runtime.address_bar import AddressBar


class AddressChannel:
    """
    A state slice whose source of truth is one or more address parameters.

    Channels hold no copy of the address values: every read goes back to the
    address bar, so external navigation is visible immediately.
    """

    def __init__(self, address_bar: AddressBar, prefix: str = "") -> None:
        self.address_bar = address_bar
        self.prefix = prefix

    def param(self, name: str) -> str:
        """Namespaced parameter name for this channel's view."""
        return param_name(self.prefix, name)

    def _read(self, name: str) -> str | None:
        return self.address_bar.get(self.param(name))

    def _write(self, name: str, value: str | None) -> None:
        self.address_bar.set(self.param(name), value)

    def _write_many(self, values: Mapping[str, str | None]) -> None:
        self.address_bar.update({self.param(name): value for name, value in values.items()})
