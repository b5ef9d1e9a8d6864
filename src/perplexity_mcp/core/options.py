"""Option extraction — turn an untyped tool-argument map into ``CommonOptions``.

Each recognized key has an extractor that either returns the normalized value
or the ``MISSING`` tag. ``build_common_options`` runs every extractor once and
keeps what came back present. Nothing here raises: a wrong type or an unknown
enum member simply leaves the option out.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Collection, Mapping
from typing import Any, Final

from perplexity_mcp.models.options import CommonOptions, DateFilters


class _Missing:
    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Final = _Missing()

REASONING_EFFORTS = ("low", "medium", "high")
SEARCH_MODES = ("web", "academic", "sec")
RECENCY_FILTERS = ("day", "week", "month", "year")
SEARCH_CONTEXT_SIZES = ("minimal", "low", "medium", "high")
OUTPUT_LEVELS = ("full", "concise")
SEARCH_TYPES = ("fast", "pro")

_DATE_RE = re.compile(r"^\d{2}/\d{2}/\d{4}$")

Extractor = Callable[[Any], Any]


# ── Primitive extractors ──


def _number(value: Any) -> Any:
    # bool is an int subclass; True is not a temperature
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return MISSING
    return value


def _integer(value: Any) -> Any:
    if isinstance(value, bool):
        return MISSING
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return MISSING


def _string(value: Any) -> Any:
    return value if isinstance(value, str) else MISSING


def _date(value: Any) -> Any:
    return value if isinstance(value, str) and _DATE_RE.match(value) else MISSING


def _string_list(value: Any) -> Any:
    if not isinstance(value, list):
        return MISSING
    kept = [item for item in value if isinstance(item, str)]
    return kept or MISSING


def _only_true(value: Any) -> Any:
    return True if value is True else MISSING


def _boolean(value: Any) -> Any:
    return value if isinstance(value, bool) else MISSING


def _mapping(value: Any) -> Any:
    return dict(value) if isinstance(value, Mapping) else MISSING


def one_of(choices: Collection[str]) -> Extractor:
    """Build an extractor accepting only exact members of *choices*."""

    def _extract(value: Any) -> Any:
        return value if isinstance(value, str) and value in choices else MISSING

    return _extract


# Order follows the request body layout; it does not affect the outcome.
_COMMON_EXTRACTORS: dict[str, Extractor] = {
    "reasoning_effort": one_of(REASONING_EFFORTS),
    "search_domain_filter": _string_list,
    "temperature": _number,
    "max_tokens": _integer,
    "top_p": _number,
    "top_k": _integer,
    "search_mode": one_of(SEARCH_MODES),
    "search_recency_filter": one_of(RECENCY_FILTERS),
    "search_after_date": _date,
    "search_before_date": _date,
    "last_updated_after": _date,
    "last_updated_before": _date,
    "return_images": _only_true,
    "return_related_questions": _only_true,
    "search_context_size": one_of(SEARCH_CONTEXT_SIZES),
    "output_level": one_of(OUTPUT_LEVELS),
    "search_language_filter": _string_list,
    "enable_search_classifier": _boolean,
    "disable_search": _only_true,
    "search_type": one_of(SEARCH_TYPES),
    "response_format": _mapping,
}

_DATE_FILTER_KEYS = (
    "search_recency_filter",
    "search_after_date",
    "search_before_date",
    "last_updated_after",
    "last_updated_before",
)


def extract(args: Mapping[str, Any], key: str, extractor: Extractor) -> Any:
    """Return the normalized value of ``args[key]`` or ``MISSING``."""
    if key not in args or args[key] is None:
        return MISSING
    return extractor(args[key])


def _collect(args: Mapping[str, Any], extractors: Mapping[str, Extractor]) -> dict[str, Any]:
    present: dict[str, Any] = {}
    for key, extractor in extractors.items():
        value = extract(args, key, extractor)
        if value is not MISSING:
            present[key] = value
    return present


def build_common_options(args: Mapping[str, Any]) -> CommonOptions:
    """Extract the shared chat options from raw tool arguments.

    Args:
        args: Untyped tool arguments.

    Returns:
        A ``CommonOptions`` holding only the present, well-typed fields.
    """
    return CommonOptions(**_collect(args, _COMMON_EXTRACTORS))


def build_date_filters(args: Mapping[str, Any]) -> DateFilters:
    """Extract the recency and date filters understood by ``/search``."""
    return DateFilters(**_collect(args, {key: _COMMON_EXTRACTORS[key] for key in _DATE_FILTER_KEYS}))


def optional_string(args: Mapping[str, Any], key: str) -> str | None:
    value = extract(args, key, _string)
    return None if value is MISSING else value


def optional_number(args: Mapping[str, Any], key: str) -> float | int | None:
    value = extract(args, key, _number)
    return None if value is MISSING else value


def optional_integer(args: Mapping[str, Any], key: str) -> int | None:
    value = extract(args, key, _integer)
    return None if value is MISSING else value


def optional_string_list(args: Mapping[str, Any], key: str) -> list[str] | None:
    value = extract(args, key, _string_list)
    return None if value is MISSING else value


def optional_mapping(args: Mapping[str, Any], key: str) -> dict[str, Any] | None:
    value = extract(args, key, _mapping)
    return None if value is MISSING else value


def validate_messages(messages: list[Any]) -> bool:
    """Check that every message has string ``role`` and ``content`` fields."""
    return all(
        isinstance(msg, Mapping) and isinstance(msg.get("role"), str) and isinstance(msg.get("content"), str)
        for msg in messages
    )
