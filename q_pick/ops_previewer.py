import asyncio
import os
from pathlib import Path

from .core import PreviewItem, check
from .host import kill_group
from .previewer import Previewer, define_previewer
from .utils import split_text, until_aborted

BINARY_MESSAGE = "No preview for binary file is available."


def file_previewer() -> Previewer:
    """Show the file at `detail["path"]`, positioned at `line`/`column` when present."""

    async def preview(ctx, params, *, signal=None):
        detail = params.item.detail
        if "path" not in detail:
            return None
        path = detail["path"]
        abspath = path if os.path.isabs(path) else await ctx.expand(path)
        check(signal)
        try:
            data = await asyncio.to_thread(Path(abspath).read_bytes)
            check(signal)
            text = data.decode("utf-8")
        except UnicodeDecodeError:
            return PreviewItem(content=[BINARY_MESSAGE])
        except OSError as e:
            ctx.log("preview_error", path=abspath, error=str(e))
            return PreviewItem(content=str(e).split("\n"))
        return PreviewItem(
            content=split_text(text),
            line=detail.get("line"),
            column=detail.get("column"),
            filename=os.path.basename(abspath),
        )

    return define_previewer(preview, name="file")


def buffer_previewer() -> Previewer:
    """Show the host buffer named by `detail["bufnr"]` (or `bufname`)."""

    async def preview(ctx, params, *, signal=None):
        detail = params.item.detail
        expr = detail.get("bufnr") or detail.get("bufname")
        if expr is None:
            return None
        try:
            info = await ctx.buffer_info(expr)
            check(signal)
            content = await ctx.buffer_lines(expr, 1, info.linecount)
        except LookupError as e:
            return PreviewItem(content=[str(e)])
        return PreviewItem(
            content=content,
            line=detail.get("line"),
            column=detail.get("column"),
            filename=info.name,
        )

    return define_previewer(preview, name="buffer")


def shell_previewer(shell=None, timeout: float | None = None, max_lines: int | None = None) -> Previewer:
    """Run `detail["command"]` (default: the item value) and show its output.

    With `detail["args"]` the command is executed directly, otherwise through
    `shell` (default `sh -c`). Timeout is in seconds.
    """
    shell = list(shell or ["sh", "-c"])
    timeout = timeout or float(os.environ.get("Q_PICK_SHELL_TIMEOUT", 5.0))
    max_lines = max_lines or int(os.environ.get("Q_PICK_PREVIEW_MAX_LINES", 1000))

    async def preview(ctx, params, *, signal=None):
        item = params.item
        command = item.detail.get("command") or item.value
        args = item.detail.get("args") or []
        cmd = [command, *args] if args else [*shell, command]
        env = item.detail.get("env")
        title = f"$ {' '.join(cmd)}"
        limit = item.detail.get("timeout") or timeout
        check(signal)

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=item.detail.get("cwd"),
                env={**os.environ, **env} if env else None,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
            try:
                stdout, stderr = await asyncio.wait_for(
                    until_aborted(proc.communicate(), signal), limit
                )
            except asyncio.TimeoutError:
                return PreviewItem(content=[f"[Command timed out after {limit}s]"], filename=title)
            finally:
                if proc.returncode is None:
                    kill_group(proc)
                    await proc.wait()
        except OSError as e:
            return PreviewItem(
                content=[f"Error executing command: {command}", "", *str(e).split("\n")],
                filename=title,
            )

        content = split_text(stdout.decode("utf-8", errors="replace"))
        err_lines = split_text(stderr.decode("utf-8", errors="replace"))
        if err_lines:
            if content:
                content.append("--- stderr ---")
            content.extend(err_lines)
        if proc.returncode != 0:
            content.extend(["", "[Command failed with non-zero exit code]"])
        if len(content) > max_lines:
            content = [*content[:max_lines], "", f"[Output truncated to {max_lines} lines]"]
        return PreviewItem(content=content or ["[No output]"], filename=title)

    return define_previewer(preview, name="shell")


def noop_previewer() -> Previewer:
    def preview(ctx, params, *, signal=None):
        return None

    return define_previewer(preview, name="noop")
