import os
import shlex

from .action import CHAIN, Action, define_action
from .core import Aborted, MissingContextError, check
from .ops_source import list_source
from .utils import derive_all

RESTRICTIONS = ("file", "directory", "directory-or-parent")


def _value(item):
    return item.value


def _path(item):
    return item.detail.get("path") or item.detail.get("bufname") or item.value


async def _restrict(ctx, value: str, restriction: str | None) -> str | None:
    if restriction is None:
        return value
    if not os.path.isabs(value):
        value = await ctx.expand(value)
    if not os.path.exists(value):
        return None
    if restriction == "file":
        return value if os.path.isfile(value) else None
    if restriction == "directory":
        return value if os.path.isdir(value) else None
    return value if os.path.isdir(value) else os.path.dirname(value)


def per_item(run, *, attr_getter=None, restriction=None, name="per_item") -> Action:
    """Action awaiting `run(ctx, value, item, signal=...)` for each selected (or the focused) item.

    A failing item is logged as `action_error` and the rest still run;
    cancellation stops the whole action.
    """
    if restriction is not None and restriction not in RESTRICTIONS:
        raise ValueError(f"Unknown restriction {restriction!r}; expected one of {RESTRICTIONS}")
    getter = attr_getter or _value

    async def invoke(ctx, params, *, signal=None):
        for item in params.targets:
            check(signal)
            value = getter(item)
            if value is not None:
                value = await _restrict(ctx, value, restriction)
            if value is None:
                continue
            try:
                await run(ctx, value, item, signal=signal)
            except Aborted:
                raise
            except Exception as e:
                ctx.log("action_error", action=name, value=value, error=f"{type(e).__name__}: {e}")

    return define_action(invoke, name=name)


def noop_action() -> Action:
    def invoke(ctx, params, *, signal=None):
        return None

    return define_action(invoke, name="noop")


def echo() -> Action:
    async def invoke(ctx, params, *, signal=None):
        await ctx.echo(repr(params.selected_items if params.selected_items is not None else params.item))

    return define_action(invoke, name="echo")


def cmd(template="{}", attr_getter=None, restriction=None, immediate=True, shellescape=False) -> Action:
    """Run `template` through the shell with `{}` replaced by each item's value.

    Unless `immediate`, the command line is offered to the user for editing
    first; an empty answer skips the item.
    """

    async def run(ctx, value, item, *, signal=None):
        command = template.replace("{}", shlex.quote(value) if shellescape else value)
        if not immediate:
            command = await ctx.prompt(":", command)
            if not command:
                return
        async for line in ctx.spawn(["sh", "-c", command], signal=signal):
            await ctx.echo(line)
        ctx.log("cmd", command=command)

    return per_item(run, attr_getter=attr_getter, restriction=restriction, name="cmd")


def cd() -> Action:
    """Change the host cwd to the item's directory (or the directory containing it)."""

    async def run(ctx, value, item, *, signal=None):
        await ctx.chdir(value)

    return per_item(run, attr_getter=_path, restriction="directory-or-parent", name="cd")


def open_action(opener="edit") -> Action:
    async def run(ctx, value, item, *, signal=None):
        await ctx.open(value, line=item.detail.get("line"), opener=opener)

    return per_item(run, attr_getter=_path, name=f"open:{opener}")


def yank(register='"', attr_getter=None) -> Action:
    """Join the values of all targets with newlines into `register`."""
    getter = attr_getter or _value

    async def invoke(ctx, params, *, signal=None):
        values = [getter(item) for item in params.targets]
        await ctx.set_register(register, "\n".join(v for v in values if v is not None))

    return define_action(invoke, name="yank")


def submatch(*matchers, sorters=None, renderers=None, previewers=None) -> Action:
    """Re-pick the selected (or all filtered) items with other matchers in a nested session.

    Needs the `SubmatchContext` a pipeline attaches to `InvokeParams.context`.
    """
    if not matchers:
        raise ValueError("submatch() requires at least one matcher")

    async def invoke(ctx, params, *, signal=None):
        context = params.context
        if context is None or not hasattr(context, "start"):
            raise MissingContextError(
                "submatch must be invoked from a pipeline that supplies a SubmatchContext"
            )
        items = params.selected_items if params.selected_items is not None else params.filtered_items
        overrides = {"producer": list_source(list(items)), "matchers": derive_all(matchers)}
        if sorters is not None:
            overrides["sorters"] = derive_all(sorters)
        if renderers is not None:
            overrides["renderers"] = derive_all(renderers)
        if previewers is not None:
            overrides["previewers"] = derive_all(previewers)
        child = context.pipeline.evolve(**overrides)
        if await context.start(child, signal=signal):
            return CHAIN
        return None

    return define_action(invoke, name="submatch")
