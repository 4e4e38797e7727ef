import asyncio
import fnmatch
import os
import re
import stat
import time

from .core import check
from .ops_source import is_silent
from .refiner import Refiner, define_refiner


async def _abspath(ctx, path: str) -> str:
    return path if os.path.isabs(path) else await ctx.expand(path)


def noop_refiner() -> Refiner:
    async def refine(ctx, params, *, signal=None):
        async for item in params.items:
            yield item

    return define_refiner(refine, name="noop")


def regexp_refiner(includes=None, excludes=None) -> Refiner:
    """Keep items whose value matches any of `includes` and none of `excludes`."""
    if includes is None and excludes is None:
        raise ValueError("regexp_refiner() needs includes, excludes or both")
    includes = [re.compile(p) for p in includes] if includes is not None else None
    excludes = [re.compile(p) for p in excludes] if excludes is not None else None

    async def refine(ctx, params, *, signal=None):
        check(signal)
        async for item in params.items:
            check(signal)
            if includes is not None and not any(p.search(item.value) for p in includes):
                continue
            if excludes is not None and any(p.search(item.value) for p in excludes):
                continue
            yield item

    return define_refiner(refine, name="regexp")


def exists() -> Refiner:
    """Drop items whose `path` does not exist."""

    async def refine(ctx, params, *, signal=None):
        async for item in params.items:
            check(signal)
            path = await _abspath(ctx, item.detail["path"])
            if await asyncio.to_thread(os.path.exists, path):
                yield item

    return define_refiner(refine, requires={"path"}, name="exists")


def cwd() -> Refiner:
    """Keep items whose `path` lies under the host cwd."""

    async def refine(ctx, params, *, signal=None):
        root = await ctx.getcwd()
        check(signal)
        async for item in params.items:
            check(signal)
            path = await _abspath(ctx, item.detail["path"])
            if os.path.commonpath([root, path]) == root:
                yield item

    return define_refiner(refine, requires={"path"}, name="cwd")


def relative_path_refiner() -> Refiner:
    """Rewrite `path` relative to the host cwd and keep the original as `abspath`."""

    async def refine(ctx, params, *, signal=None):
        root = await ctx.getcwd()
        check(signal)
        async for item in params.items:
            check(signal)
            path = item.detail["path"]
            relpath = os.path.relpath(path, root)
            yield item.evolve(
                value=item.value.replace(path, relpath),
                detail={**item.detail, "path": relpath, "abspath": path},
            )

    return define_refiner(refine, requires={"path"}, provides={"abspath"}, name="relative_path")


def absolute_path_refiner() -> Refiner:
    """Resolve `path` against the host cwd; the input path is kept as `relpath`."""

    async def refine(ctx, params, *, signal=None):
        root = await ctx.getcwd()
        check(signal)
        async for item in params.items:
            check(signal)
            path = item.detail["path"]
            abspath = path if os.path.isabs(path) else os.path.normpath(os.path.join(root, path))
            yield item.evolve(
                value=item.value.replace(path, abspath),
                detail={**item.detail, "path": abspath, "relpath": path},
            )

    return define_refiner(refine, requires={"path"}, provides={"relpath"}, name="absolute_path")


def file_info(
    extensions=None,
    min_size=None,
    max_size=None,
    modified_within: float | None = None,
    include_directories=True,
    include_files=True,
    include_symlinks=True,
    exclude_hidden=False,
    exclude_patterns=None,
) -> Refiner:
    """Filter on file metadata and attach it as `stat`.

    `modified_within` is in seconds. Missing or unreadable paths are dropped;
    other OS errors propagate.
    """
    extensions = {e.lower() for e in extensions} if extensions else None
    exclude_patterns = list(exclude_patterns or [])

    def accept(item, abspath):
        path = item.detail["path"]
        if exclude_hidden and any(part.startswith(".") for part in path.split(os.sep) if part):
            return None
        if any(fnmatch.fnmatch(path, p) for p in exclude_patterns):
            return None
        if extensions is not None and os.path.splitext(path)[1].lower() not in extensions:
            return None
        try:
            st = os.lstat(abspath)
            if stat.S_ISLNK(st.st_mode):
                if not include_symlinks:
                    return None
                st = os.stat(abspath)
        except OSError as e:
            if not is_silent(e):
                raise
            return None
        is_dir = stat.S_ISDIR(st.st_mode)
        if is_dir and not include_directories:
            return None
        if not is_dir and not include_files:
            return None
        if not is_dir and min_size is not None and st.st_size < min_size:
            return None
        if not is_dir and max_size is not None and st.st_size > max_size:
            return None
        if modified_within is not None and time.time() - st.st_mtime > modified_within:
            return None
        return item.evolve(detail={**item.detail, "stat": st})

    async def refine(ctx, params, *, signal=None):
        async for item in params.items:
            check(signal)
            kept = await asyncio.to_thread(accept, item, await _abspath(ctx, item.detail["path"]))
            if kept is not None:
                yield kept

    return define_refiner(refine, requires={"path"}, provides={"stat"}, name="file_info")
