from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from .core import CurateParams, Item
from .source import common_fields, renumber
from .utils import derive_all, stage_name

CurateFn = Callable[..., AsyncIterator[Item]]


@runtime_checkable
class Curator(Protocol):
    """Produces items from args and the live query.

    Used when filtering has to happen inside the producing process itself,
    e.g. an external search tool that cannot be re-run cheaply per keystroke.
    """

    name: str

    def curate(
        self, ctx: Any, params: CurateParams, *, signal=None
    ) -> AsyncIterator[Item]: ...


@dataclass(frozen=True)
class _Curator:
    fn: CurateFn
    name: str = "Curator"
    fields: frozenset[str] | None = None

    def curate(self, ctx, params: CurateParams, *, signal=None) -> AsyncIterator[Item]:
        return self.fn(ctx, params, signal=signal)


def define_curator(curate: CurateFn, *, name=None, fields=None) -> Curator:
    return _Curator(
        curate,
        name or getattr(curate, "__name__", "Curator"),
        frozenset(fields) if fields is not None else None,
    )


def compose_curators(*curators) -> Curator:
    """Concatenate curators in order, renumbering ids densely from 0."""
    if not curators:
        raise ValueError("compose_curators() requires at least one curator")
    resolved = derive_all(curators)

    async def curate(ctx, params, *, signal=None):
        async for item in renumber(
            (c.curate(ctx, params, signal=signal) for c in resolved), signal
        ):
            yield item

    return define_curator(
        curate,
        name="+".join(stage_name(c) for c in resolved),
        fields=common_fields(resolved),
    )
