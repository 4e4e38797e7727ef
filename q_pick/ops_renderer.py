import os

from .core import Decoration, check
from .renderer import Renderer, define_renderer
from .utils import byte_length


def relative_path(base: str | None = None) -> Renderer:
    """Replace `detail["path"]` in the label with its path relative to `base` (default: host cwd)."""

    async def render(ctx, params, *, signal=None):
        root = base or await ctx.getcwd()
        check(signal)
        for item in params.items:
            path = item.detail["path"]
            item.label = item.label.replace(path, os.path.relpath(path, root))

    return define_renderer(render, name="relative_path")


def absolute_path(base: str | None = None) -> Renderer:
    async def render(ctx, params, *, signal=None):
        root = base or await ctx.getcwd()
        check(signal)
        for item in params.items:
            path = item.detail["path"]
            if not os.path.isabs(path):
                item.label = item.label.replace(path, os.path.join(root, path))

    return define_renderer(render, name="absolute_path")


def smart_path(highlight: str = "Comment") -> Renderer:
    """Render `dir/name` as `name dir`, dimming the directory part.

    Existing decorations are moved along with the text they cover.
    """

    def render(ctx, params, *, signal=None):
        for item in params.items:
            check(signal)
            label = item.label
            index = label.rfind(os.sep)
            if index < 0:
                continue
            dirname, filename = label[:index], label[index + 1 :]
            dlen, flen = byte_length(dirname), byte_length(filename)

            def project(column: int) -> int:
                offset = column - 1
                if offset > dlen:
                    return offset - dlen
                return offset + flen + 2

            item.label = f"{filename} {dirname}"
            item.decorations = [
                Decoration(project(d.column), d.length, d.highlight) for d in item.decorations
            ]
            item.decorations.append(Decoration(flen + 1, dlen + 1, highlight))

    return define_renderer(render, name="smart_path")


def noop_renderer() -> Renderer:
    def render(ctx, params, *, signal=None):
        return None

    return define_renderer(render, name="noop")
