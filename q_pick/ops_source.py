import asyncio
import errno
import os
import re
import stat
from collections.abc import AsyncIterable, Iterable

from .core import Item, check
from .source import Source, define_source
from .utils import aiter_of

CHUNK_SIZE = 1000

_SILENT_ERRNOS = {errno.ENOENT, errno.EACCES, errno.EPERM, errno.ELOOP, errno.ENAMETOOLONG}


def is_silent(err: BaseException) -> bool:
    """Filesystem faults that mean "no item here" rather than a failure."""
    if isinstance(err, (FileNotFoundError, PermissionError)):
        return True
    return isinstance(err, OSError) and err.errno in _SILENT_ERRNOS


def list_source(items: Iterable[Item] | AsyncIterable[Item], *, fields=None) -> Source:
    """Yield a fixed list of items (re-iterable inputs are replayed on every collect)."""

    async def collect(ctx, params, *, signal=None):
        async for item in aiter_of(items):
            check(signal)
            yield item

    return define_source(collect, name="list", fields=fields)


def noop_source() -> Source:
    async def collect(ctx, params, *, signal=None):
        return
        yield

    return define_source(collect, name="noop")


def file_source(includes=None, excludes=None) -> Source:
    """Recursively list files under `args[0]` (default: the host cwd).

    `includes`/`excludes` are regex patterns tested against the full path.
    """
    includes = [re.compile(p) for p in includes or []] or None
    excludes = [re.compile(p) for p in excludes or []] or None

    async def collect(ctx, params, *, signal=None):
        root = await ctx.expand(params.args[0] if params.args else ".")
        check(signal)
        n = 0
        async for path, st in _walk(ctx, root, includes, excludes, signal):
            yield Item(id=n, value=path, detail={"path": path, "stat": st})
            n += 1

    return define_source(collect, name="file", fields={"path", "stat"})


async def _walk(ctx, root, includes, excludes, signal):
    try:
        with os.scandir(root) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        if not is_silent(e):
            raise
        ctx.log("file_skip", path=root, error=str(e))
        return
    # one directory per event-loop turn
    await asyncio.sleep(0)

    for entry in entries:
        check(signal)
        path = entry.path
        if includes and not any(p.search(path) for p in includes):
            continue
        if excludes and any(p.search(path) for p in excludes):
            continue
        try:
            # follows symlinks, so loops and dangling links land in the except
            st = os.stat(path)
        except OSError as e:
            if not is_silent(e):
                raise
            ctx.log("file_skip", path=path, error=str(e))
            continue
        if stat.S_ISDIR(st.st_mode):
            async for sub in _walk(ctx, path, includes, excludes, signal):
                yield sub
        else:
            yield path, st


def line_source(chunk_size: int | None = None) -> Source:
    """Lines of the buffer named by `args[0]` (default: current buffer), read in chunks."""
    chunk_size = chunk_size or int(os.environ.get("Q_PICK_CHUNK_SIZE", CHUNK_SIZE))
    if chunk_size < 1:
        raise ValueError("chunk_size must be positive")

    async def collect(ctx, params, *, signal=None):
        expr = params.args[0] if params.args else "%"
        info = await ctx.buffer_info(expr)
        check(signal)
        n = 0
        line = 1
        while line <= info.linecount:
            content = await ctx.buffer_lines(expr, line, line + chunk_size - 1)
            check(signal)
            for offset, value in enumerate(content):
                yield Item(
                    id=n,
                    value=value,
                    detail={
                        "bufnr": info.bufnr,
                        "bufname": info.name,
                        "line": line + offset,
                        "context": value,
                    },
                )
                n += 1
            line += chunk_size

    return define_source(collect, name="line", fields={"bufnr", "bufname", "line", "context"})


def buffer_source() -> Source:
    """One item per host buffer."""

    async def collect(ctx, params, *, signal=None):
        for n, info in enumerate(ctx.buffers()):
            check(signal)
            yield Item(
                id=n,
                value=info.name,
                detail={"bufnr": info.bufnr, "bufname": info.name, "linecount": info.linecount},
            )

    return define_source(collect, name="buffer", fields={"bufnr", "bufname"})
