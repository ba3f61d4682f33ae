"""Evaluate document-store style filters and sorts against ContentItem models in process."""

from enum import Enum
from typing import Any, Callable, Iterable, List

from feedrank.models.content import FILTERABLE_FIELDS, ContentItem
from feedrank.store import DESCENDING, Filter, SortSpec

_COLLECTION_TYPES = (set, frozenset, list, tuple)


def field_value(item: ContentItem, field: str) -> Any:
    """Resolve a filter/sort field on an item; enums compare by their value."""
    if field not in FILTERABLE_FIELDS:
        raise ValueError(f"Unsupported filter field: {field}")
    value = getattr(item, field)
    if isinstance(value, Enum):
        return value.value
    return value


def _compare(op: str, actual: Any, expected: Any) -> bool:
    if isinstance(actual, _COLLECTION_TYPES):
        # Array fields match when any element satisfies the operator.
        if op == "$nin":
            return not any(v in expected for v in actual)
        if op == "$ne":
            return expected not in actual
        return any(_compare(op, v, expected) for v in actual)
    if op == "$eq":
        return actual == expected
    if op == "$ne":
        return actual != expected
    if op == "$in":
        return actual in expected
    if op == "$nin":
        return actual not in expected
    if actual is None:
        return False
    if op == "$gte":
        return actual >= expected
    if op == "$gt":
        return actual > expected
    if op == "$lte":
        return actual <= expected
    if op == "$lt":
        return actual < expected
    raise ValueError(f"Unsupported filter operator: {op}")


def matches(item: ContentItem, filter: Filter) -> bool:
    """True if item satisfies filter ($and, $or, and per-field operator dicts)."""
    for key, cond in filter.items():
        if key == "$and":
            if not all(matches(item, sub) for sub in cond):
                return False
        elif key == "$or":
            if not cond:
                raise ValueError("Empty $or clause list")
            if not any(matches(item, sub) for sub in cond):
                return False
        elif isinstance(cond, dict):
            actual = field_value(item, key)
            if not all(_compare(op, actual, expected) for op, expected in cond.items()):
                return False
        elif not _compare("$eq", field_value(item, key), cond):
            return False
    return True


def _sort_key(field: str) -> Callable[[ContentItem], Any]:
    def key(item: ContentItem):
        value = field_value(item, field)
        return (value is not None, value if value is not None else 0)
    return key


def apply_sort(items: Iterable[ContentItem], sort: SortSpec) -> List[ContentItem]:
    """Multi-key sort: stable sorts applied from the last key to the first."""
    ordered = list(items)
    for field, direction in reversed(sort):
        ordered.sort(key=_sort_key(field), reverse=direction == DESCENDING)
    return ordered


def query(items: Iterable[ContentItem], filter: Filter, sort: SortSpec, skip: int, limit: int) -> List[ContentItem]:
    """Filter, sort, and paginate."""
    matched = [item for item in items if matches(item, filter)]
    return apply_sort(matched, sort)[skip:skip + limit]


__all__ = ["apply_sort", "field_value", "matches", "query"]
