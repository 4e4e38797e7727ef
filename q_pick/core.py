import asyncio
import time
from collections.abc import AsyncIterable, Sequence
from dataclasses import dataclass, field, replace
from typing import Any


@dataclass
class Decoration:
    """Highlight span over an item label.

    `column` is 1-based; `column` and `length` are UTF-8 byte counts.
    """

    column: int
    length: int
    highlight: str | None = None


@dataclass
class Item:
    id: int | str
    value: str
    detail: dict[str, Any] = field(default_factory=dict)
    label: str | None = None
    decorations: list[Decoration] = field(default_factory=list)

    def __post_init__(self):
        if self.label is None:
            self.label = self.value

    def evolve(self, **changes) -> "Item":
        """Copy of the item with `changes` applied; detail/decorations are not shared."""
        changes.setdefault("detail", dict(self.detail))
        changes.setdefault("decorations", list(self.decorations))
        if "value" in changes and "label" not in changes and self.label == self.value:
            changes["label"] = changes["value"]
        return replace(self, **changes)


@dataclass
class PreviewItem:
    content: list[str]
    line: int | None = None
    column: int | None = None
    filename: str | None = None


# ---------- operation parameters ----------
@dataclass(frozen=True)
class CollectParams:
    args: tuple[str, ...] = ()


@dataclass(frozen=True)
class CurateParams:
    args: tuple[str, ...] = ()
    query: str = ""


@dataclass(frozen=True)
class MatchParams:
    items: Sequence[Item]
    query: str = ""


@dataclass(frozen=True)
class SortParams:
    items: list[Item]


@dataclass(frozen=True)
class RenderParams:
    items: list[Item]


@dataclass(frozen=True)
class PreviewParams:
    item: Item


@dataclass(frozen=True)
class InvokeParams:
    item: Item | None = None
    selected_items: list[Item] | None = None
    filtered_items: list[Item] = field(default_factory=list)
    context: Any = None

    @property
    def targets(self) -> list[Item]:
        """Explicit selection when present, otherwise the focused item."""
        if self.selected_items is not None:
            return list(self.selected_items)
        return [self.item] if self.item is not None else []


@dataclass(frozen=True)
class RefineParams:
    items: AsyncIterable[Item]


@dataclass(frozen=True)
class ProjectParams:
    items: AsyncIterable[Item]


# ---------- cancellation ----------
class Aborted(Exception):
    """Raised by `AbortSignal.throw_if_aborted`; cancellation, not a failure."""


class AbortSignal:
    def __init__(self):
        self._reason: Any = None
        self._aborted = False
        self._waiters: list[asyncio.Future] = []

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def reason(self) -> Any:
        return self._reason

    def abort(self, reason: Any = None) -> None:
        if self._aborted:
            return
        self._aborted = True
        self._reason = reason if reason is not None else "aborted"
        for waiter in self._waiters:
            if not waiter.done():
                waiter.set_result(self._reason)
        self._waiters.clear()

    async def wait(self) -> None:
        """Return once the signal is aborted."""
        if self._aborted:
            return
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        finally:
            if waiter in self._waiters:
                self._waiters.remove(waiter)

    def throw_if_aborted(self) -> None:
        if self._aborted:
            raise Aborted(self._reason)


def check(signal: AbortSignal | None) -> None:
    if signal is not None:
        signal.throw_if_aborted()


# ---------- errors ----------
class ContractViolation(ValueError):
    """A detail-transform stage requires fields its predecessor does not provide."""

    def __init__(self, previous: str, stage: str, missing, message: str | None = None):
        self.previous = previous
        self.stage = stage
        self.missing = sorted(missing)
        super().__init__(
            message
            or f"{stage!r} requires detail fields {self.missing} "
            f"which are not provided after {previous!r}"
        )


class MissingContextError(RuntimeError):
    pass


# ---------- tracing ----------
@dataclass
class TraceEvent:
    op: str
    payload: dict[str, Any]
    t: float = field(default_factory=time.time)
