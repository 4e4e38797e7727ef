"""Detail fields accumulating through a refiner chain in front of a matcher."""
import asyncio

import q_pick as qp

seen = []


def tag(name, key, requires, transform):
    async def refine(ctx, params, *, signal=None):
        seen.append(name)
        async for item in params.items:
            value = transform(item.detail)
            yield item.evolve(value=value, detail={**item.detail, key: value})

    return qp.define_refiner(refine, requires=requires, provides={key}, name=name)


upper = tag("upper", "A", {"a"}, lambda d: d["a"].upper())
triple = tag("triple", "B", {"A"}, lambda d: d["A"] * 3)

words = qp.list_source(
    [qp.Item(id=i, value=w, detail={"a": w}) for i, w in enumerate(["pear", "fig", "apple", "plum"])],
    fields={"a"},
)

pipeline = qp.Pipeline(
    qp.refine_source(words, upper, triple),
    matchers=[qp.substring(ignore_case=True)],
    sorters=[qp.lexical],
    name="refine_chain",
)


async def run(query="p"):
    ctx = qp.LocalHost()
    return await pipeline.evaluate(ctx, query=query)


if __name__ == "__main__":
    evaluation = asyncio.run(run())
    for item in evaluation.items:
        print(item.value, item.detail)
    evaluation.explain_trace()
