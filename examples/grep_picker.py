import asyncio
import sys

import q_pick as qp

search = qp.Pipeline(
    qp.refine_curator(qp.grep(), qp.exists(), qp.relative_path_refiner()),
    matchers=[qp.substring(smart_case=True)],
    sorters=[qp.numerical(lambda item: item.detail["line"]), qp.lexical(lambda item: item.detail["path"])],
    previewers=[qp.file_previewer],
    actions={"default": qp.open_action, "narrow": [qp.submatch(qp.fuzzy), qp.echo]},
    name="grep",
)


async def main(query, root="."):
    ctx = qp.LocalHost(cwd=root)
    evaluation = await search.evaluate(ctx, [root], query)
    for item in evaluation.items:
        print(item.label)
    if evaluation.items:
        preview = await search.preview(ctx, evaluation.items[0])
        print(preview.filename if preview else None)


if __name__ == "__main__":
    asyncio.run(main(*sys.argv[1:3]))
