import os
import re

from .core import Item, check
from .curator import Curator, define_curator

_GREP_RECORD = re.compile(r"^(.*?):(\d+):(.*)$")
_COLUMN_RECORD = re.compile(r"^(.*?):(\d+):(\d+):(.*)$")


def _external_curator(name, command, pattern, *, relative_to_root=False) -> Curator:
    """Curator streaming `command(query, root)` output parsed by `pattern`.

    Exit status 1 means "no matches" for every supported tool, so it is not
    an error. The resolved root is cached per curator instance.
    """
    roots: dict[str, str] = {}

    async def curate(ctx, params, *, signal=None):
        if not params.query.strip():
            return
        expr = params.args[0] if params.args else "."
        if expr not in roots:
            roots[expr] = await ctx.expand(expr)
        root = roots[expr]
        check(signal)

        n = 0
        async for record in ctx.spawn(
            command(params.query, root), cwd=root, ok_codes=(0, 1), signal=signal
        ):
            check(signal)
            m = pattern.match(record)
            if not m:
                continue
            path, line, *rest = m.groups()
            if relative_to_root:
                path = os.path.join(root, path)
            detail = {"path": path, "line": int(line), "context": rest[-1]}
            if len(rest) == 2:
                detail["column"] = int(rest[0])
            yield Item(id=n, value=_join(detail), detail=detail)
            n += 1

    fields = {"path", "line", "context"} | ({"column"} if pattern is _COLUMN_RECORD else set())
    return define_curator(curate, name=name, fields=fields)


def _join(detail) -> str:
    parts = [detail["path"], str(detail["line"])]
    if "column" in detail:
        parts.append(str(detail["column"]))
    parts.append(detail["context"])
    return ":".join(parts)


def grep() -> Curator:
    return _external_curator(
        "grep",
        lambda query, root: [
            "grep",
            "--color=never",
            "--no-messages",
            "--recursive",
            "--line-number",
            query,
            "--",
            root,
        ],
        _GREP_RECORD,
    )


def rg() -> Curator:
    return _external_curator(
        "rg",
        lambda query, root: [
            "rg",
            "--color=never",
            "--no-heading",
            "--no-messages",
            "--with-filename",
            "--line-number",
            "--column",
            query,
            "--",
            root,
        ],
        _COLUMN_RECORD,
    )


def git_grep() -> Curator:
    return _external_curator(
        "git_grep",
        lambda query, root: [
            "git",
            "grep",
            "--color=never",
            "--no-heading",
            "--line-number",
            "--column",
            query,
        ],
        _COLUMN_RECORD,
        relative_to_root=True,
    )


def noop_curator() -> Curator:
    async def curate(ctx, params, *, signal=None):
        return
        yield

    return define_curator(curate, name="noop")
