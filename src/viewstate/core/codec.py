"""
Address-bar codec for sort and filter specs.

Sort format (comma-separated, ``:`` before the direction)::

    name:asc,createdAt:desc

Filter format (pipe-separated ``id:operator:value`` triples, list values
joined with commas)::

    status:eq:active|role:in:admin,user

Parsing never raises. A malformed segment (empty id, unknown direction or
operator, missing parts) is skipped and the rest of the string is kept,
so one bad edit of the address bar never blanks the whole view.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from viewstate.core.config import (
    FILTER_ARRAY_SEPARATOR,
    FILTER_PARTS_SEPARATOR,
    FILTER_SEPARATOR,
    SORT_ASC,
    SORT_DESC,
    SORT_DIRECTION_SEPARATOR,
    SORT_SEPARATOR,
)
from viewstate.specs.state import FilterOperator, FilterState, SortState

logger = logging.getLogger(__name__)

# Percent-encoding for characters that would split a value apart.
# "%" goes first so already-escaped text is not double-decoded.
_VALUE_ESCAPES = (("%", "%25"), ("|", "%7C"), (",", "%2C"))


def _escape_value(text: str) -> str:
    for raw, escaped in _VALUE_ESCAPES:
        text = text.replace(raw, escaped)
    return text


def _unescape_value(text: str) -> str:
    for raw, escaped in reversed(_VALUE_ESCAPES):
        text = text.replace(escaped, raw)
    return text


def _format_scalar(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# =============================================================================
# Sorting
# =============================================================================


def serialize_sorting(sorting: list[SortState]) -> str:
    """
    Serialize a sort spec for the address bar.

    Examples:
        [SortState(id="name")] -> "name:asc"
        [] -> ""
    """
    return SORT_SEPARATOR.join(
        f"{sort.id}{SORT_DIRECTION_SEPARATOR}{SORT_DESC if sort.desc else SORT_ASC}"
        for sort in sorting
    )


def deserialize_sorting(sort_str: str | None) -> list[SortState]:
    """
    Parse an address-bar sort string.

    A segment without a direction sorts ascending. Repeated column ids keep
    their first occurrence.
    """
    if not sort_str or not sort_str.strip():
        return []

    result: list[SortState] = []
    seen: set[str] = set()

    for segment in sort_str.split(SORT_SEPARATOR):
        segment = segment.strip()
        if not segment:
            continue

        column_id, _, direction = segment.partition(SORT_DIRECTION_SEPARATOR)
        column_id = column_id.strip()
        direction = direction.strip().lower() or SORT_ASC

        if not column_id or direction not in (SORT_ASC, SORT_DESC):
            logger.debug("Skipping malformed sort segment %r", segment)
            continue
        if column_id in seen:
            continue

        seen.add(column_id)
        result.append(SortState(id=column_id, desc=direction == SORT_DESC))

    return result


# =============================================================================
# Filters
# =============================================================================


def serialize_filters(filters: list[FilterState]) -> str:
    """
    Serialize a filter spec for the address bar.

    Examples:
        [FilterState(id="status", value="active")] -> "status:eq:active"
        [FilterState(id="role", operator="in", value=["a", "b"])] -> "role:in:a,b"
    """
    segments: list[str] = []
    for f in filters:
        if isinstance(f.value, (list, tuple)):
            value = FILTER_ARRAY_SEPARATOR.join(
                _escape_value(_format_scalar(v)) for v in f.value
            )
        else:
            value = _escape_value(_format_scalar(f.value))
        segments.append(
            f"{f.id}{FILTER_PARTS_SEPARATOR}{f.operator.value}{FILTER_PARTS_SEPARATOR}{value}"
        )
    return FILTER_SEPARATOR.join(segments)


def deserialize_filters(filters_str: str | None) -> list[FilterState]:
    """
    Parse an address-bar filter string.

    The value is everything after the second ``:``, so values may contain
    colons. ``in``/``notIn`` values come back as lists, everything else as
    strings. Repeated column ids keep their last occurrence.
    """
    if not filters_str or not filters_str.strip():
        return []

    parsed: dict[str, FilterState] = {}

    for segment in filters_str.split(FILTER_SEPARATOR):
        if not segment.strip():
            continue

        parts = segment.split(FILTER_PARTS_SEPARATOR, 2)
        if len(parts) != 3:
            logger.debug("Skipping malformed filter segment %r", segment)
            continue

        column_id, operator_str, raw_value = parts
        column_id = column_id.strip()
        try:
            operator = FilterOperator(operator_str.strip())
        except ValueError:
            logger.debug("Skipping filter segment with unknown operator %r", segment)
            continue
        if not column_id:
            logger.debug("Skipping filter segment without column id %r", segment)
            continue

        value: Any
        if operator.takes_list:
            value = (
                [_unescape_value(v) for v in raw_value.split(FILTER_ARRAY_SEPARATOR)]
                if raw_value
                else []
            )
        else:
            value = _unescape_value(raw_value)

        # Re-inserting moves the column to the position of its last occurrence
        parsed.pop(column_id, None)
        parsed[column_id] = FilterState(id=column_id, operator=operator, value=value)

    return list(parsed.values())


# =============================================================================
# Cache keys
# =============================================================================


def safe_parse(value: str | None, default: Any) -> Any:
    """JSON-decode ``value``, returning ``default`` on any failure."""
    if value is None:
        return default
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return default


def serialize_table_state(
    sorting: list[SortState] | None = None,
    page_index: int | None = None,
    page_size: int | None = None,
    search: str | None = None,
    filters: list[FilterState] | None = None,
) -> str:
    """Canonical JSON for a view's resolved state (stable key order)."""
    normalized = {
        "sorting": [s.model_dump() for s in sorting] if sorting else None,
        "pagination": (
            {"pageIndex": page_index, "pageSize": page_size} if page_index is not None else None
        ),
        "search": (search or "").strip() or None,
        "filters": [f.model_dump(mode="json") for f in filters] if filters else None,
    }
    return json.dumps(normalized, sort_keys=True, default=str, separators=(",", ":"))


def generate_cache_key(view_id: str, params: dict[str, Any]) -> tuple[str, str]:
    """
    Cache key for a view and its resolved backend query parameters.

    Example:
        generate_cache_key("orders", {"page": 2, "limit": 25})
        -> ("orders", '{"limit":25,"page":2}')
    """
    return (view_id, json.dumps(params, sort_keys=True, default=str, separators=(",", ":")))
