import asyncio
import sys

from rich.console import Console
from rich.table import Table

import q_pick as qp
from q_pick.utils import summarize_timings

console = Console()

files = qp.Pipeline(
    qp.refine_source(
        qp.file_source(excludes=[r"/\.git/", r"__pycache__", r"\.egg-info"]),
        qp.relative_path_refiner(),
        qp.file_info(exclude_hidden=True),
    ),
    matchers=[qp.fuzzy],
    renderers=[qp.smart_path],
    previewers=[qp.file_previewer],
    name="files",
)


async def main(query: str):
    ctx = qp.LocalHost()
    evaluation = await files.evaluate(ctx, ["."], query)

    table = Table(title=f"{len(evaluation.items)} of {len(evaluation.collected)} files match {query!r}")
    table.add_column("id", justify="right")
    table.add_column("label")
    table.add_column("size", justify="right")
    for item in evaluation.items[:15]:
        table.add_row(str(item.id), item.label, str(item.detail["stat"].st_size))
    console.print(table)

    if evaluation.items:
        preview = await files.preview(ctx, evaluation.items[0])
        if preview is not None:
            console.rule(preview.filename or "")
            console.print("\n".join(preview.content[:10]), markup=False)

    console.print(summarize_timings(evaluation))


if __name__ == "__main__":
    asyncio.run(main(" ".join(sys.argv[1:]) or "py"))
