import asyncio
import inspect
import time
from collections.abc import AsyncIterable, Iterable
from contextlib import contextmanager, suppress

from .core import check


@contextmanager
def timer():
    start = time.perf_counter()
    try:
        yield lambda: (time.perf_counter() - start)
    finally:
        pass


def summarize_timings(state):
    """Return a dict of total time per stage name (seconds) based on 'time' trace events."""
    totals = {}
    for ev in getattr(state, "trace", []):
        if ev.op == "time":
            name = ev.payload.get("name", "unknown")
            dt = ev.payload.get("seconds", 0.0)
            totals[name] = totals.get(name, 0.0) + dt
    overall = next(
        (ev.payload.get("seconds") for ev in state.trace if ev.op == "time_overall"),
        None,
    )
    return {"per_op": totals, "overall": overall}


# ---------- derivable stages ----------
def derive(value):
    """Resolve a stage given either as a value or as a zero-argument factory."""
    return value() if callable(value) else value


def derive_all(values) -> list:
    return [derive(v) for v in values]


def stage_name(stage) -> str:
    return getattr(stage, "name", None) or type(stage).__name__


# ---------- async helpers ----------
async def maybe_await(value):
    if inspect.isawaitable(value):
        return await value
    return value


async def until_aborted(awaitable, signal=None):
    """Await `awaitable`, raising `Aborted` as soon as `signal` fires instead."""
    if signal is None:
        return await awaitable
    task = asyncio.ensure_future(awaitable)
    aborted = asyncio.ensure_future(signal.wait())
    try:
        await asyncio.wait({task, aborted}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        aborted.cancel()
        if not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
    check(signal)
    return task.result()


async def to_list(items: AsyncIterable) -> list:
    return [item async for item in items]


async def aiter_of(items: Iterable | AsyncIterable):
    if isinstance(items, AsyncIterable):
        async for item in items:
            yield item
    else:
        for item in items:
            yield item


# ---------- text ----------
def byte_length(text: str) -> int:
    return len(text.encode("utf-8"))


def split_text(text: str) -> list[str]:
    """Split into lines POSIX style: a trailing newline does not add an empty line."""
    if "\r\n" in text:
        lines = text.split("\r\n")
    else:
        lines = text.split("\n")
    return lines[:-1] if lines and lines[-1] == "" else lines
