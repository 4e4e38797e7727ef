"""Host context handed to every stage as its first argument.

Core combinators pass it through untouched; only the builtin stages in the
`ops_*` modules call into it. `LocalHost` backs it with the local
filesystem, asyncio subprocesses and in-memory buffers.
"""

import asyncio
import os
import subprocess
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import suppress
from dataclasses import dataclass, field
from pathlib import Path
from signal import SIGKILL
from typing import Any, Protocol, runtime_checkable

from .core import TraceEvent, check
from .utils import maybe_await, until_aborted

# longest stdout line spawn() accepts, in bytes
LINE_LIMIT = 16 * 1024 * 1024


def kill_group(proc) -> None:
    """SIGKILL the process group started for `proc`, reaching its children too."""
    with suppress(ProcessLookupError):
        os.killpg(proc.pid, SIGKILL)


@dataclass
class BufferInfo:
    bufnr: int
    name: str
    linecount: int


@runtime_checkable
class Host(Protocol):
    async def expand(self, expr: str) -> str: ...

    async def getcwd(self) -> str: ...

    async def chdir(self, path: str) -> None: ...

    def buffers(self) -> list[BufferInfo]: ...

    async def buffer_info(self, expr: str) -> BufferInfo: ...

    async def buffer_lines(self, expr: str, start: int, end: int) -> list[str]: ...

    def spawn(
        self, argv: Sequence[str], *, cwd: str | None = None, ok_codes=(0,), signal=None
    ) -> AsyncIterator[str]: ...

    async def prompt(self, message: str, default: str = "") -> str | None: ...

    async def echo(self, message: str) -> None: ...

    async def open(self, path: str, *, line: int | None = None, opener: str = "edit") -> None: ...

    async def set_register(self, name: str, value: str) -> None: ...

    def log(self, op: str, **payload) -> None: ...


@dataclass
class _Buffer:
    bufnr: int
    name: str
    lines: list[str] = field(default_factory=list)


class LocalHost:
    def __init__(
        self,
        cwd: str | Path | None = None,
        buffers: dict[str, list[str]] | None = None,
        prompt: Callable[[str, str], Any] | None = None,
    ):
        self.cwd = Path(cwd or os.getcwd()).resolve()
        self.trace: list[TraceEvent] = []
        self.messages: list[str] = []
        self.opened: list[dict[str, Any]] = []
        self.registers: dict[str, str] = {}
        self._prompt = prompt
        self._buffers: dict[int, _Buffer] = {}
        self.current: int | None = None
        for name, lines in (buffers or {}).items():
            self.add_buffer(name, lines)

    def log(self, op, **payload):
        self.trace.append(TraceEvent(op, payload))

    def add_buffer(self, name: str, lines: list[str]) -> int:
        bufnr = len(self._buffers) + 1
        self._buffers[bufnr] = _Buffer(bufnr, name, list(lines))
        if self.current is None:
            self.current = bufnr
        return bufnr

    def buffers(self) -> list[BufferInfo]:
        return [BufferInfo(b.bufnr, b.name, len(b.lines)) for b in self._buffers.values()]

    # ---------- paths ----------
    async def expand(self, expr: str) -> str:
        path = os.path.expandvars(os.path.expanduser(expr))
        if not os.path.isabs(path):
            path = os.path.join(self.cwd, path)
        return os.path.normpath(path)

    async def getcwd(self) -> str:
        return str(self.cwd)

    async def chdir(self, path: str) -> None:
        target = Path(await self.expand(path))
        if not target.is_dir():
            raise NotADirectoryError(str(target))
        self.cwd = target
        self.log("chdir", path=str(target))

    # ---------- buffers ----------
    def _resolve_buffer(self, expr: str | int) -> _Buffer:
        if expr in ("%", "", None) and self.current is not None:
            return self._buffers[self.current]
        if isinstance(expr, int) or str(expr).isdigit():
            buf = self._buffers.get(int(expr))
            if buf is not None:
                return buf
        for buf in self._buffers.values():
            if buf.name == expr:
                return buf
        raise LookupError(f"No such buffer: {expr!r}")

    async def buffer_info(self, expr: str) -> BufferInfo:
        buf = self._resolve_buffer(expr)
        return BufferInfo(buf.bufnr, buf.name, len(buf.lines))

    async def buffer_lines(self, expr: str, start: int, end: int) -> list[str]:
        buf = self._resolve_buffer(expr)
        return buf.lines[max(0, start - 1) : end]

    # ---------- processes ----------
    async def spawn(self, argv, *, cwd=None, ok_codes=(0,), signal=None):
        """Yield stdout lines of `argv`; raise CalledProcessError on an unexpected exit code."""
        check(signal)
        proc = await asyncio.create_subprocess_exec(
            *argv,
            cwd=str(cwd or self.cwd),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
            limit=LINE_LIMIT,
            start_new_session=True,
        )
        try:
            while True:
                raw = await until_aborted(proc.stdout.readline(), signal)
                if not raw:
                    break
                yield raw.decode("utf-8", errors="replace").rstrip("\r\n")
            code = await until_aborted(proc.wait(), signal)
            if code not in ok_codes:
                raise subprocess.CalledProcessError(code, list(argv))
        finally:
            if proc.returncode is None:
                kill_group(proc)
                await proc.wait()

    # ---------- interaction ----------
    async def prompt(self, message: str, default: str = "") -> str | None:
        if self._prompt is None:
            return default
        return await maybe_await(self._prompt(message, default))

    async def echo(self, message: str) -> None:
        self.messages.append(message)

    async def open(self, path: str, *, line=None, opener="edit") -> None:
        self.opened.append({"path": path, "line": line, "opener": opener})

    async def set_register(self, name: str, value: str) -> None:
        self.registers[name] = value
