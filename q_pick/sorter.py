from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from .core import SortParams, check
from .utils import derive_all, maybe_await, stage_name

SortFn = Callable[..., Any]


@runtime_checkable
class Sorter(Protocol):
    """Reorders `params.items` in place; returns nothing."""

    name: str

    async def sort(self, ctx: Any, params: SortParams, *, signal=None) -> None: ...


@dataclass(frozen=True)
class _Sorter:
    fn: SortFn
    name: str = "Sorter"

    async def sort(self, ctx, params: SortParams, *, signal=None) -> None:
        await maybe_await(self.fn(ctx, params, signal=signal))


def define_sorter(sort: SortFn, *, name=None) -> Sorter:
    """`sort` may be a plain function or a coroutine function."""
    return _Sorter(sort, name or getattr(sort, "__name__", "Sorter"))


def compose_sorters(*sorters) -> Sorter:
    """Apply sorters in order.

    Each sorter re-sorts the whole list, so the last one decides the final
    order; earlier sorters only matter as tie-break pre-passes for stable
    comparators.
    """
    if not sorters:
        raise ValueError("compose_sorters() requires at least one sorter")
    resolved = derive_all(sorters)

    async def sort(ctx, params, *, signal=None):
        for sorter in resolved:
            check(signal)
            await sorter.sort(ctx, params, signal=signal)

    return define_sorter(sort, name=">".join(stage_name(s) for s in resolved))
