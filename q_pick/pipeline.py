from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from typing import Any

from rich.console import Console
from rich.table import Table

from .action import CHAIN, compose_actions
from .core import (
    CollectParams,
    CurateParams,
    InvokeParams,
    Item,
    MatchParams,
    PreviewItem,
    PreviewParams,
    RenderParams,
    SortParams,
    TraceEvent,
    check,
)
from .matcher import compose_matchers
from .ops_action import noop_action
from .previewer import compose_previewers
from .renderer import compose_renderers
from .sorter import compose_sorters
from .utils import derive, stage_name, timer, to_list


@dataclass
class Evaluation:
    query: str = ""
    args: tuple[str, ...] = ()
    collected: list[Item] = field(default_factory=list)
    items: list[Item] = field(default_factory=list)
    trace: list[TraceEvent] = field(default_factory=list)

    def log(self, op, **payload):
        self.trace.append(TraceEvent(op, payload))

    def explain_trace(self, console: Console | None = None) -> Table:
        table = Table(title=f"q_pick trace (query={self.query!r})")
        table.add_column("op")
        table.add_column("name")
        table.add_column("details")
        for ev in self.trace:
            payload = dict(ev.payload)
            name = str(payload.pop("name", ""))
            if "seconds" in payload:
                payload["seconds"] = f"{payload['seconds']:.4f}"
            table.add_row(ev.op, name, ", ".join(f"{k}={v}" for k, v in payload.items()))
        (console or Console()).print(table)
        return table


@dataclass(frozen=True)
class SubmatchContext:
    """Hidden context an orchestrator hands to actions that open a nested session."""

    pipeline: "Pipeline"
    start: Callable[..., Awaitable[Any]]


class Pipeline:
    """One picker configuration: a producer plus the stream stages applied to it.

    `evaluate` runs a single collect/curate -> match -> sort -> render pass;
    the interactive loop around it belongs to the caller.
    """

    def __init__(
        self,
        producer,
        matchers=(),
        sorters=(),
        renderers=(),
        previewers=(),
        actions=None,
        default_action="default",
        name="Pipeline",
    ):
        self._config = dict(
            producer=producer,
            matchers=tuple(matchers),
            sorters=tuple(sorters),
            renderers=tuple(renderers),
            previewers=tuple(previewers),
            actions=dict(actions or {}),
            default_action=default_action,
            name=name,
        )
        self.producer = derive(producer)
        if hasattr(self.producer, "curate"):
            self.curated = True
        elif hasattr(self.producer, "collect"):
            self.curated = False
        else:
            raise TypeError(f"Expected a Source or Curator, got {type(self.producer).__name__}")
        self.matcher = compose_matchers(*matchers) if matchers else None
        self.sorter = compose_sorters(*sorters) if sorters else None
        self.renderer = compose_renderers(*renderers) if renderers else None
        self.previewer = compose_previewers(*previewers) if previewers else None
        self.actions = {
            key: compose_actions(*value) if isinstance(value, (list, tuple)) else derive(value)
            for key, value in (actions or {}).items()
        }
        self.actions.setdefault(default_action, noop_action())
        self.default_action = default_action
        self.name = name

    def evolve(self, **changes) -> "Pipeline":
        return Pipeline(**{**self._config, **changes})

    async def evaluate(self, ctx, args=(), query="", *, signal=None) -> Evaluation:
        ev = Evaluation(query=query, args=tuple(args))
        with timer() as t_all:
            check(signal)
            with timer() as t:
                if self.curated:
                    stream = self.producer.curate(ctx, CurateParams(ev.args, query), signal=signal)
                else:
                    stream = self.producer.collect(ctx, CollectParams(ev.args), signal=signal)
                ev.collected = await to_list(stream)
            ev.log("time", name=stage_name(self.producer), seconds=t(), n=len(ev.collected))

            # stages below mutate items in place; keep `collected` untouched
            items = [item.evolve() for item in ev.collected]
            if self.matcher is not None:
                with timer() as t:
                    items = await to_list(
                        self.matcher.match(ctx, MatchParams(items, query), signal=signal)
                    )
                ev.log("time", name=self.matcher.name, seconds=t(), n=len(items))
            if self.sorter is not None:
                with timer() as t:
                    await self.sorter.sort(ctx, SortParams(items), signal=signal)
                ev.log("time", name=self.sorter.name, seconds=t())
            if self.renderer is not None:
                with timer() as t:
                    await self.renderer.render(ctx, RenderParams(items), signal=signal)
                ev.log("time", name=self.renderer.name, seconds=t())
            ev.items = items
        ev.log("time_overall", name=self.name, seconds=t_all())
        return ev

    async def preview(self, ctx, item: Item, *, signal=None) -> PreviewItem | None:
        if self.previewer is None:
            return None
        return await self.previewer.preview(ctx, PreviewParams(item), signal=signal)

    async def invoke(
        self,
        ctx,
        action_name: str | None = None,
        params: InvokeParams | None = None,
        *,
        signal=None,
        start=None,
    ):
        """Run the named action (the default one when None).

        When `start` is given, actions receive a `SubmatchContext` so they can
        open a nested session. Returns `CHAIN` or None.
        """
        name = action_name or self.default_action
        action = self.actions.get(name)
        if action is None:
            raise KeyError(f"No action named {name!r}; available: {sorted(self.actions)}")
        params = params or InvokeParams()
        if start is not None:
            params = replace(params, context=SubmatchContext(self, start))
        check(signal)
        with timer() as t:
            result = await action.invoke(ctx, params, signal=signal)
        ctx.log("invoke", name=name, seconds=t(), chain=bool(result))
        return CHAIN if result else None
