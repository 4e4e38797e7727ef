from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from .core import PreviewItem, PreviewParams, check
from .utils import derive_all, maybe_await, stage_name

PreviewFn = Callable[..., Any]


@runtime_checkable
class Previewer(Protocol):
    """Builds a preview for one item, or returns None when it cannot."""

    name: str

    async def preview(
        self, ctx: Any, params: PreviewParams, *, signal=None
    ) -> PreviewItem | None: ...


@dataclass(frozen=True)
class _Previewer:
    fn: PreviewFn
    name: str = "Previewer"

    async def preview(self, ctx, params: PreviewParams, *, signal=None):
        return await maybe_await(self.fn(ctx, params, signal=signal))


def define_previewer(preview: PreviewFn, *, name=None) -> Previewer:
    return _Previewer(preview, name or getattr(preview, "__name__", "Previewer"))


def compose_previewers(*previewers) -> Previewer:
    """Fallback chain: the first previewer returning a payload wins."""
    if not previewers:
        raise ValueError("compose_previewers() requires at least one previewer")
    resolved = derive_all(previewers)

    async def preview(ctx, params, *, signal=None):
        for previewer in resolved:
            check(signal)
            result = await previewer.preview(ctx, params, signal=signal)
            if result:
                return result
        return None

    return define_previewer(preview, name="|".join(stage_name(p) for p in resolved))
