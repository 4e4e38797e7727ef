import re

from rapidfuzz import fuzz

from .core import Decoration, check
from .matcher import Matcher, define_matcher
from .utils import byte_length


def _span(value: str, start: int, end: int) -> Decoration:
    return Decoration(column=1 + byte_length(value[:start]), length=byte_length(value[start:end]))


def _ignore_case(query: str, smart_case: bool, ignore_case: bool) -> bool:
    if ignore_case:
        return True
    if smart_case:
        return query.lower() == query
    return False


def substring(smart_case=False, ignore_case=False) -> Matcher:
    """Keep items containing every whitespace-separated term; decorate each occurrence.

    `ignore_case` wins over `smart_case`; smart case ignores case only for an
    all-lowercase query.
    """

    async def match(ctx, params, *, signal=None):
        terms = params.query.split()
        if not terms:
            for item in params.items:
                yield item
            return
        fold = _ignore_case(params.query, smart_case, ignore_case)
        norm = str.lower if fold else (lambda v: v)
        terms = [norm(t) for t in terms]
        pattern = re.compile(
            "|".join(re.escape(t) for t in terms), re.IGNORECASE if fold else 0
        )

        for item in params.items:
            check(signal)
            value = norm(item.value)
            if any(t not in value for t in terms):
                continue
            spans = [_span(item.label, m.start(), m.end()) for m in pattern.finditer(item.label)]
            yield item.evolve(decorations=[*item.decorations, *spans])

    return define_matcher(match, name="substring")


def regexp() -> Matcher:
    """Treat the whole (stripped) query as one regular expression."""

    async def match(ctx, params, *, signal=None):
        query = params.query.strip()
        if not query:
            for item in params.items:
                yield item
            return
        pattern = re.compile(query)

        for item in params.items:
            check(signal)
            if not pattern.search(item.value):
                continue
            spans = [
                _span(item.label, m.start(), m.end())
                for m in pattern.finditer(item.label)
                if m.end() > m.start()
            ]
            yield item.evolve(decorations=[*item.decorations, *spans])

    return define_matcher(match, name="regexp")


def fuzzy(smart_case=True, sort=True) -> Matcher:
    """Subsequence matching ranked by rapidfuzz similarity.

    Terms are applied last to first, so the first term decides the final
    ranking; the result is the intersection of every term's matches either way.
    """

    async def match(ctx, params, *, signal=None):
        terms = params.query.split()
        if not terms:
            for item in params.items:
                yield item
            return

        items = list(params.items)
        for term in reversed(terms):
            fold = _ignore_case(term, smart_case, False)
            scored = []
            for item in items:
                check(signal)
                positions = _subsequence(term, item.value, fold)
                if positions is None:
                    continue
                haystack = item.value.lower() if fold else item.value
                score = fuzz.partial_ratio(term.lower() if fold else term, haystack)
                # decorations index the label, which may differ from the value
                shown = positions if item.label == item.value else _subsequence(term, item.label, fold)
                spans = [_span(item.label, s, e) for s, e in _runs(shown or [])]
                scored.append((score, item.evolve(decorations=[*item.decorations, *spans])))
            if sort:
                # stable: equal scores keep the shorter trimmed value first, then input order
                scored.sort(key=lambda p: (-p[0], len(p[1].value.strip())))
            items = [item for _, item in scored]
            if not items:
                return

        for item in items:
            yield item

    return define_matcher(match, name="fuzzy")


def noop_matcher() -> Matcher:
    """Matches nothing once the query is non-empty."""

    async def match(ctx, params, *, signal=None):
        if params.query.strip():
            return
        for item in params.items:
            yield item

    return define_matcher(match, name="noop")


# ---------- helpers ----------
def _subsequence(term: str, value: str, fold: bool) -> list[int] | None:
    if fold:
        term, value = term.lower(), value.lower()
    positions = []
    i = 0
    for ch in term:
        i = value.find(ch, i)
        if i < 0:
            return None
        positions.append(i)
        i += 1
    return positions


def _runs(positions: list[int]) -> list[tuple[int, int]]:
    runs: list[tuple[int, int]] = []
    for p in positions:
        if runs and runs[-1][1] == p:
            runs[-1] = (runs[-1][0], p + 1)
        else:
            runs.append((p, p + 1))
    return runs
