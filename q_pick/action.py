from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from .core import InvokeParams, check
from .utils import derive_all, maybe_await, stage_name

InvokeFn = Callable[..., Any]

# Returned by an action to keep the picker session open (or chain into a
# nested one) instead of closing it.
CHAIN = True


@runtime_checkable
class Action(Protocol):
    name: str

    async def invoke(
        self, ctx: Any, params: InvokeParams, *, signal=None
    ) -> bool | None: ...


@dataclass(frozen=True)
class _Action:
    fn: InvokeFn
    name: str = "Action"

    async def invoke(self, ctx, params: InvokeParams, *, signal=None):
        return await maybe_await(self.fn(ctx, params, signal=signal))


def define_action(invoke: InvokeFn, *, name=None) -> Action:
    """`invoke` returns None to close the session or `CHAIN` to keep it open."""
    return _Action(invoke, name or getattr(invoke, "__name__", "Action"))


def compose_actions(*actions) -> Action:
    """Run actions one after another, each awaited before the next starts."""
    if not actions:
        raise ValueError("compose_actions() requires at least one action")
    resolved = derive_all(actions)

    async def invoke(ctx, params, *, signal=None):
        chain = None
        for action in resolved:
            check(signal)
            if await action.invoke(ctx, params, signal=signal):
                chain = CHAIN
        return chain

    return define_action(invoke, name="&".join(stage_name(a) for a in resolved))
