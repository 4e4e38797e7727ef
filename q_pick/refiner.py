"""Refiners: detail transforms that keep what they read and may add fields.

A refiner declares the detail keys it `requires` and the keys it `provides`.
Items leaving it carry `requires | provides` on top of whatever else they
had, so a chain accumulates fields:

    T0 -> R1 -> T0 & R1.provides -> R2 -> T0 & R1.provides & R2.provides

Python has no structural type check for this, so the chain is validated
twice: once when composed (against the declared fields of the producer, or,
when it declares none, against every required field no stage in the chain
provides), and per item while streaming. Both raise `ContractViolation` naming the stage pair.
Filter-style stages are refiners with nothing in `provides`.
"""

from collections.abc import AsyncIterable, AsyncIterator, Callable, Iterable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from .core import ContractViolation, Item, RefineParams, check
from .curator import Curator, define_curator
from .source import Source, define_source
from .utils import derive, derive_all, stage_name

RefineFn = Callable[..., AsyncIterator[Item]]


@runtime_checkable
class Refiner(Protocol):
    name: str
    requires: frozenset[str]
    provides: frozenset[str]

    def refine(
        self, ctx: Any, params: RefineParams, *, signal=None
    ) -> AsyncIterator[Item]: ...


@dataclass(frozen=True)
class _Refiner:
    fn: RefineFn
    name: str = "Refiner"
    requires: frozenset[str] = frozenset()
    provides: frozenset[str] = frozenset()

    def refine(self, ctx, params: RefineParams, *, signal=None) -> AsyncIterator[Item]:
        return self.fn(ctx, params, signal=signal)


def define_refiner(
    refine: RefineFn,
    *,
    requires: Iterable[str] = (),
    provides: Iterable[str] = (),
    name=None,
) -> Refiner:
    return _Refiner(
        refine,
        name or getattr(refine, "__name__", "Refiner"),
        frozenset(requires),
        frozenset(provides),
    )


def compose_refiners(*refiners, fields: Iterable[str] | None = None, after="input") -> Refiner:
    """Chain refiners lazily, checking the field contract up front.

    `fields` are the detail keys known to be present on incoming items;
    `after` names their producer in error messages.
    """
    if not refiners:
        raise ValueError("compose_refiners() requires at least one refiner")
    resolved = derive_all(refiners)
    validate_chain(resolved, fields, after)

    needed: set[str] = set()
    provided: set[str] = set()
    for r in resolved:
        needed |= r.requires - provided
        provided |= r.provides

    async def refine(ctx, params, *, signal=None):
        check(signal)
        items: AsyncIterable[Item] = params.items
        previous = after
        for r in resolved:
            incoming: dict = {}
            items = _guard_output(
                r,
                r.refine(ctx, RefineParams(_guard_input(r, previous, items, incoming)), signal=signal),
                incoming,
            )
            previous = stage_name(r)
        async for item in items:
            yield item

    return define_refiner(
        refine,
        requires=needed,
        provides=provided,
        name=">".join(stage_name(r) for r in resolved),
    )


def validate_chain(refiners, fields=None, after="input") -> frozenset[str]:
    """Return the fields available after the chain, or raise ContractViolation."""
    if not refiners:
        return frozenset(fields or ())
    if fields is None:
        # undeclared producer: assume it carries whatever the chain never adds itself
        provided = set().union(*(r.provides for r in refiners))
        fields = set().union(*(r.requires for r in refiners)) - provided
    available = set(fields)
    previous = after
    for r in refiners:
        missing = r.requires - available
        if missing:
            raise ContractViolation(previous, stage_name(r), missing)
        available |= r.provides
        previous = stage_name(r)
    return frozenset(available)


def refine_source(source, *refiners) -> Source:
    """Wrap a source so its items stream through `refiners` in order."""
    src = derive(source)
    fields = getattr(src, "fields", None)
    refiner = compose_refiners(*refiners, fields=fields, after=stage_name(src))
    out_fields = None if fields is None else fields | refiner.provides

    def collect(ctx, params, *, signal=None):
        items = src.collect(ctx, params, signal=signal)
        return refiner.refine(ctx, RefineParams(items), signal=signal)

    return define_source(collect, name=f"{stage_name(src)}>{refiner.name}", fields=out_fields)


def refine_curator(curator, *refiners) -> Curator:
    cur = derive(curator)
    fields = getattr(cur, "fields", None)
    refiner = compose_refiners(*refiners, fields=fields, after=stage_name(cur))
    out_fields = None if fields is None else fields | refiner.provides

    def curate(ctx, params, *, signal=None):
        items = cur.curate(ctx, params, signal=signal)
        return refiner.refine(ctx, RefineParams(items), signal=signal)

    return define_curator(curate, name=f"{stage_name(cur)}>{refiner.name}", fields=out_fields)


# ---------- per-item contract checks ----------
async def _guard_input(refiner, previous: str, items: AsyncIterable[Item], incoming: dict):
    async for item in items:
        missing = refiner.requires - item.detail.keys()
        if missing:
            raise ContractViolation(previous, stage_name(refiner), missing)
        incoming[item.id] = frozenset(item.detail)
        yield item


async def _guard_output(refiner, items: AsyncIterable[Item], incoming: dict):
    async for item in items:
        expected = incoming.get(item.id, refiner.requires) | refiner.provides
        missing = expected - item.detail.keys()
        if missing:
            name = stage_name(refiner)
            raise ContractViolation(
                name,
                name,
                missing,
                message=f"{name!r} dropped or did not add detail fields {sorted(missing)}",
            )
        yield item
