from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from .core import CollectParams, Item, check
from .utils import derive_all, stage_name

CollectFn = Callable[..., AsyncIterator[Item]]


@runtime_checkable
class Source(Protocol):
    """Produces items from positional args."""

    name: str

    def collect(
        self, ctx: Any, params: CollectParams, *, signal=None
    ) -> AsyncIterator[Item]: ...


@dataclass(frozen=True)
class _Source:
    fn: CollectFn
    name: str = "Source"
    fields: frozenset[str] | None = None

    def collect(self, ctx, params: CollectParams, *, signal=None) -> AsyncIterator[Item]:
        return self.fn(ctx, params, signal=signal)


def define_source(collect: CollectFn, *, name=None, fields=None) -> Source:
    """Wrap `collect(ctx, params, *, signal)` (an async generator function) as a Source.

    `fields` declares the detail keys carried by every produced item; detail
    transforms use it to check their requirements up front.
    """
    return _Source(
        collect,
        name or getattr(collect, "__name__", "Source"),
        frozenset(fields) if fields is not None else None,
    )


def compose_sources(*sources) -> Source:
    """Concatenate sources in order, renumbering ids densely from 0."""
    if not sources:
        raise ValueError("compose_sources() requires at least one source")
    resolved = derive_all(sources)

    async def collect(ctx, params, *, signal=None):
        async for item in renumber(
            (s.collect(ctx, params, signal=signal) for s in resolved), signal
        ):
            yield item

    return define_source(
        collect,
        name="+".join(stage_name(s) for s in resolved),
        fields=common_fields(resolved),
    )


# ---------- shared by producers ----------
async def renumber(streams, signal=None):
    n = 0
    for stream in streams:
        check(signal)
        async for item in stream:
            yield item.evolve(id=n)
            n += 1


def common_fields(producers) -> frozenset[str] | None:
    declared = [getattr(p, "fields", None) for p in producers]
    if any(f is None for f in declared):
        return None
    return frozenset.intersection(*declared)
