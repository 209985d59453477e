# catalog_api/services/attributes.py
"""
Attribute set normalization.

Variant attributes arrive in two shapes:

    [{"name": "Size", "value": "8 inches"}, {"name": "Color", "value": "Red"}]
    {"Size": "8 inches", "Color": "Red"}

Both are turned into one ordered, duplicate-free list of AttributePair before
anything is written. Duplicates are detected by exact (case-sensitive) match
on the (name, value) pair; the first occurrence wins.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from catalog_api.schemas.product import AttributePair

PAIR_SEPARATOR = ":::"


def _clean(raw: Any) -> str:
    if raw is None:
        return ""
    return str(raw).strip()


def _pair_from_item(item: Any) -> tuple[str, str]:
    if isinstance(item, Mapping):
        return _clean(item.get("name")), _clean(item.get("value"))
    return _clean(getattr(item, "name", None)), _clean(getattr(item, "value", None))


def _iter_raw_pairs(attributes: Any) -> Iterable[tuple[str, str]]:
    if isinstance(attributes, Mapping):
        for name, value in attributes.items():
            yield _clean(name), _clean(value)
    elif isinstance(attributes, (list, tuple)):
        for item in attributes:
            if item is None:
                continue
            yield _pair_from_item(item)


def normalize_attributes(attributes: Any) -> list[AttributePair]:
    """
    Return the unique, non-empty (name, value) pairs in first-seen order.

    Anything that is neither a list of pairs nor a mapping yields [].
    """
    seen: set[str] = set()
    pairs: list[AttributePair] = []

    for name, value in _iter_raw_pairs(attributes):
        if not name or not value:
            continue
        key = f"{name}{PAIR_SEPARATOR}{value}"
        if key in seen:
            continue
        seen.add(key)
        pairs.append(AttributePair(name=name, value=value))

    return pairs


def attributes_as_mapping(pairs: Iterable[AttributePair]) -> dict[str, str]:
    """
    name -> value view of a pair list (a later pair with the same name wins).
    """
    return {pair.name: pair.value for pair in pairs}
