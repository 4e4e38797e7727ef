from collections.abc import AsyncIterable, AsyncIterator, Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from .core import Item, ProjectParams, check
from .curator import define_curator
from .source import define_source
from .utils import derive, derive_all, stage_name

ProjectFn = Callable[..., AsyncIterator[Item]]


@runtime_checkable
class Projector(Protocol):
    """Maps an item stream to a new one; the output detail may be unrelated to the input."""

    name: str

    def project(
        self, ctx: Any, params: ProjectParams, *, signal=None
    ) -> AsyncIterator[Item]: ...


@dataclass(frozen=True)
class _Projector:
    fn: ProjectFn
    name: str = "Projector"

    def project(self, ctx, params: ProjectParams, *, signal=None) -> AsyncIterator[Item]:
        return self.fn(ctx, params, signal=signal)


def define_projector(project: ProjectFn, *, name=None) -> Projector:
    return _Projector(project, name or getattr(project, "__name__", "Projector"))


def compose_projectors(*projectors) -> Projector:
    if not projectors:
        raise ValueError("compose_projectors() requires at least one projector")
    resolved = derive_all(projectors)

    async def project(ctx, params, *, signal=None):
        check(signal)
        items: AsyncIterable[Item] = params.items
        for p in resolved:
            items = p.project(ctx, ProjectParams(items), signal=signal)
        async for item in items:
            yield item

    return define_projector(project, name=">".join(stage_name(p) for p in resolved))


def pipe_projectors(producer, *projectors):
    """Apply projectors to a Source or a Curator; returns the same kind of producer."""
    src = derive(producer)
    projector = compose_projectors(*projectors)
    name = f"{stage_name(src)}>{projector.name}"

    if hasattr(src, "collect"):

        def collect(ctx, params, *, signal=None):
            items = src.collect(ctx, params, signal=signal)
            return projector.project(ctx, ProjectParams(items), signal=signal)

        return define_source(collect, name=name)

    if hasattr(src, "curate"):

        def curate(ctx, params, *, signal=None):
            items = src.curate(ctx, params, signal=signal)
            return projector.project(ctx, ProjectParams(items), signal=signal)

        return define_curator(curate, name=name)

    raise TypeError(f"Expected a Source or Curator, got {type(src).__name__}")
