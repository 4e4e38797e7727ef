from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from .core import RenderParams, check
from .utils import derive_all, maybe_await, stage_name

RenderFn = Callable[..., Any]


@runtime_checkable
class Renderer(Protocol):
    """Rewrites `label`/`decorations` of a realized list for display.

    Never touches `id`, `value` or `detail`, never adds or drops items.
    """

    name: str

    async def render(self, ctx: Any, params: RenderParams, *, signal=None) -> None: ...


@dataclass(frozen=True)
class _Renderer:
    fn: RenderFn
    name: str = "Renderer"

    async def render(self, ctx, params: RenderParams, *, signal=None) -> None:
        await maybe_await(self.fn(ctx, params, signal=signal))


def define_renderer(render: RenderFn, *, name=None) -> Renderer:
    return _Renderer(render, name or getattr(render, "__name__", "Renderer"))


def compose_renderers(*renderers) -> Renderer:
    """Apply renderers in order; later ones see the labels earlier ones left."""
    if not renderers:
        raise ValueError("compose_renderers() requires at least one renderer")
    resolved = derive_all(renderers)

    async def render(ctx, params, *, signal=None):
        for renderer in resolved:
            check(signal)
            await renderer.render(ctx, params, signal=signal)

    return define_renderer(render, name=">".join(stage_name(r) for r in resolved))
