import asyncio
import sys

import q_pick as qp

files = qp.Pipeline(
    qp.refine_source(
        qp.file_source(excludes=[r"/\.git/", r"__pycache__"]),
        qp.relative_path_refiner(),
    ),
    matchers=[qp.fuzzy],
    renderers=[qp.smart_path],
    previewers=[qp.file_previewer, qp.noop_previewer],
    actions={"default": qp.open_action, "cd": qp.cd, "yank": qp.yank},
    name="files",
)


async def pick(root=".", query=""):
    ctx = qp.LocalHost(cwd=root)
    evaluation = await files.evaluate(ctx, [root], query)
    return ctx, evaluation


if __name__ == "__main__":
    ctx, evaluation = asyncio.run(pick(*sys.argv[1:3]))
    for item in evaluation.items[:20]:
        print(item.label)
    evaluation.explain_trace()
