from dataclasses import replace

from .curator import Curator, define_curator
from .source import Source, define_source
from .utils import derive, maybe_await, stage_name


async def _bound_args(ctx, args) -> tuple[str, ...]:
    if callable(args):
        return tuple(await maybe_await(args(ctx)))
    return tuple(args)


def bind_source_args(base, args) -> Source:
    """Prepend `args` to the caller's args on every collect.

    `args` is a list of strings, or a callable `(ctx) -> list[str]` (sync or
    async) evaluated anew on each invocation so the source sees current state.
    """
    source = derive(base)

    async def collect(ctx, params, *, signal=None):
        bound = await _bound_args(ctx, args)
        params = replace(params, args=(*bound, *params.args))
        async for item in source.collect(ctx, params, signal=signal):
            yield item

    return define_source(
        collect,
        name=f"bind({stage_name(source)})",
        fields=getattr(source, "fields", None),
    )


def bind_curator_args(base, args) -> Curator:
    """Curator counterpart of `bind_source_args`."""
    curator = derive(base)

    async def curate(ctx, params, *, signal=None):
        bound = await _bound_args(ctx, args)
        params = replace(params, args=(*bound, *params.args))
        async for item in curator.curate(ctx, params, signal=signal):
            yield item

    return define_curator(
        curate,
        name=f"bind({stage_name(curator)})",
        fields=getattr(curator, "fields", None),
    )
