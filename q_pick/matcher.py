from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from .core import Item, MatchParams, check
from .utils import derive_all, stage_name, to_list

MatchFn = Callable[..., AsyncIterator[Item]]


@runtime_checkable
class Matcher(Protocol):
    """Filters a realized item list against the query and decorates the hits.

    An empty or whitespace-only query passes every item through unchanged.
    Matched spans are appended to the decorations an item already carries.
    """

    name: str

    def match(
        self, ctx: Any, params: MatchParams, *, signal=None
    ) -> AsyncIterator[Item]: ...


@dataclass(frozen=True)
class _Matcher:
    fn: MatchFn
    name: str = "Matcher"

    def match(self, ctx, params: MatchParams, *, signal=None) -> AsyncIterator[Item]:
        return self.fn(ctx, params, signal=signal)


def define_matcher(match: MatchFn, *, name=None) -> Matcher:
    return _Matcher(match, name or getattr(match, "__name__", "Matcher"))


def compose_matchers(*matchers) -> Matcher:
    """Narrow sequentially: matcher k+1 sees exactly what matcher k yielded."""
    if not matchers:
        raise ValueError("compose_matchers() requires at least one matcher")
    resolved = derive_all(matchers)

    async def match(ctx, params, *, signal=None):
        items = list(params.items)
        query = params.query
        for matcher in resolved:
            check(signal)
            items = await to_list(
                matcher.match(ctx, MatchParams(items, query), signal=signal)
            )
            if not items:
                return
        for item in items:
            yield item

    return define_matcher(match, name=">".join(stage_name(m) for m in resolved))
