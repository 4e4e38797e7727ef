import math

from .sorter import Sorter, define_sorter


def _value(item):
    return item.value


def lexical(attr_getter=None, reverse=False) -> Sorter:
    """Stable string ordering on `attr_getter(item)` (default: `item.value`)."""
    key = attr_getter or _value

    def sort(ctx, params, *, signal=None):
        params.items.sort(key=key, reverse=reverse)

    return define_sorter(sort, name="lexical")


def numerical(attr_getter=None, reverse=False) -> Sorter:
    """Stable numeric ordering; values that are not numbers go last in input order."""
    getter = attr_getter or _value

    def key(item):
        n = _number(getter(item))
        if math.isnan(n):
            return (1, 0.0)
        return (0, -n if reverse else n)

    def sort(ctx, params, *, signal=None):
        params.items.sort(key=key)

    return define_sorter(sort, name="numerical")


def noop_sorter() -> Sorter:
    def sort(ctx, params, *, signal=None):
        return None

    return define_sorter(sort, name="noop")


def _number(value) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan
