import pytest

import q_pick as qp
from q_pick.utils import to_list


def copy_field(name, source, target, transform=lambda v: v, calls=None):
    async def refine(ctx, params, *, signal=None):
        if calls is not None:
            calls.append(name)
        async for item in params.items:
            yield item.evolve(detail={**item.detail, target: transform(item.detail[source])})

    return qp.define_refiner(refine, requires={source}, provides={target}, name=name)


def source_of(*details, fields=None):
    return qp.list_source(
        [qp.Item(id=n, value=f"item{n}", detail=d) for n, d in enumerate(details)],
        fields=fields,
    )


@pytest.mark.asyncio
async def test_refiners_accumulate_detail_and_start_outermost_first():
    calls = []
    r1 = copy_field("refiner1", "a", "A", calls=calls)
    r2 = copy_field("refiner2", "A", "B", lambda v: v * 3, calls=calls)
    r3 = copy_field("refiner3", "B", "C", str.upper, calls=calls)

    source = qp.refine_source(source_of({"a": "x"}, fields={"a"}), r1, r2, r3)
    out = await to_list(source.collect(None, qp.CollectParams()))

    assert [i.detail for i in out] == [{"a": "x", "A": "x", "B": "xxx", "C": "XXX"}]
    assert calls == ["refiner3", "refiner2", "refiner1"]
    assert source.fields == frozenset({"a", "A", "B", "C"})


def test_reversed_chain_is_rejected_when_composed():
    r1 = copy_field("refiner1", "a", "A")
    r2 = copy_field("refiner2", "A", "B")

    with pytest.raises(qp.ContractViolation) as exc:
        qp.refine_source(source_of(fields={"a"}), r2, r1)
    assert (exc.value.previous, exc.value.stage, exc.value.missing) == ("list", "refiner2", ["A"])

    # undeclared producer: `A` is only ever added later in the chain
    with pytest.raises(qp.ContractViolation) as exc:
        qp.compose_refiners(r2, r1)
    assert (exc.value.previous, exc.value.stage, exc.value.missing) == ("input", "refiner2", ["A"])


def test_composite_refiner_exposes_chain_contract():
    r1 = copy_field("refiner1", "a", "A")
    r2 = copy_field("refiner2", "A", "B")

    chain = qp.compose_refiners(r1, r2)

    assert chain.requires == frozenset({"a"})
    assert chain.provides == frozenset({"A", "B"})
    assert chain.name == "refiner1>refiner2"
    assert qp.validate_chain([r1, r2], {"a", "z"}) == frozenset({"a", "z", "A", "B"})


@pytest.mark.asyncio
async def test_item_missing_required_field_fails_while_streaming():
    source = qp.refine_source(source_of({"a": 1}, {"b": 2}), copy_field("upper", "a", "A"))
    seen = []

    with pytest.raises(qp.ContractViolation) as exc:
        async for item in source.collect(None, qp.CollectParams()):
            seen.append(item.detail)

    assert seen == [{"a": 1, "A": 1}]
    assert exc.value.stage == "upper"
    assert exc.value.missing == ["a"]


@pytest.mark.asyncio
async def test_refiner_not_adding_declared_field_fails():
    async def refine(ctx, params, *, signal=None):
        async for item in params.items:
            yield item

    liar = qp.define_refiner(refine, requires={"path"}, provides={"size"}, name="liar")
    source = qp.refine_source(source_of({"path": "/tmp"}, fields={"path"}), liar)

    with pytest.raises(qp.ContractViolation, match="did not add"):
        await to_list(source.collect(None, qp.CollectParams()))


@pytest.mark.asyncio
async def test_filter_style_refiner_drops_items_and_keeps_detail():
    async def refine(ctx, params, *, signal=None):
        async for item in params.items:
            if item.detail["n"] % 2:
                yield item

    odd = qp.define_refiner(refine, requires={"n"}, name="odd")
    source = qp.refine_source(source_of({"n": 1}, {"n": 2}, {"n": 3}, fields={"n"}), odd, qp.noop_refiner)

    out = await to_list(source.collect(None, qp.CollectParams()))

    assert [i.detail["n"] for i in out] == [1, 3]
    assert [i.id for i in out] == [0, 2]


@pytest.mark.asyncio
async def test_refine_curator_sees_live_query():
    async def curate(ctx, params, *, signal=None):
        yield qp.Item(id=0, value=params.query, detail={"q": params.query})

    curator = qp.refine_curator(
        qp.define_curator(curate, fields={"q"}), copy_field("echo", "q", "Q", str.upper)
    )
    out = await to_list(curator.curate(None, qp.CurateParams(query="needle")))

    assert out[0].detail == {"q": "needle", "Q": "NEEDLE"}
    assert curator.fields == frozenset({"q", "Q"})


def projector(name, fn):
    async def project(ctx, params, *, signal=None):
        async for item in params.items:
            yield fn(item)

    return qp.define_projector(project, name=name)


@pytest.mark.asyncio
async def test_pipe_projectors_reshapes_source_items_in_order():
    size = projector("size", lambda i: qp.Item(id=i.id, value=str(len(i.value)), detail={"size": len(i.value)}))
    double = projector("double", lambda i: i.evolve(value=i.value * 2))

    source = qp.pipe_projectors(qp.list_source([qp.Item(id=0, value="ab"), qp.Item(id=1, value="abc")]), size, double)
    out = await to_list(source.collect(None, qp.CollectParams()))

    assert [(i.value, i.detail) for i in out] == [("22", {"size": 2}), ("33", {"size": 3})]
    assert isinstance(source, qp.Source)
    assert source.name == "list>size>double"


@pytest.mark.asyncio
async def test_pipe_projectors_keeps_curators_curators():
    async def curate(ctx, params, *, signal=None):
        yield qp.Item(id=0, value=params.query)

    upper = projector("upper", lambda i: i.evolve(value=i.value.upper()))
    curator = qp.pipe_projectors(qp.define_curator(curate), upper)

    out = await to_list(curator.curate(None, qp.CurateParams(query="abc")))

    assert [i.value for i in out] == ["ABC"]
    assert isinstance(curator, qp.Curator)
    assert not hasattr(curator, "collect")


def test_pipe_projectors_rejects_other_stages():
    with pytest.raises(TypeError):
        qp.pipe_projectors(qp.lexical(), qp.define_projector(lambda ctx, params, *, signal=None: params.items))


@pytest.mark.asyncio
async def test_two_refiners_yield_exact_accumulated_fields():
    r1 = copy_field("refiner1", "a", "A")
    r2 = copy_field("refiner2", "A", "B", lambda v: v * 3)

    source = qp.refine_source(source_of({"a": "x"}), r1, r2)
    out = await to_list(source.collect(None, qp.CollectParams()))

    assert out[0].detail == {"a": "x", "A": "x", "B": "xxx"}


@pytest.mark.asyncio
async def test_undeclared_producer_fields_are_assumed_for_later_refiners():
    def needs(name, field, provides=()):
        async def refine(ctx, params, *, signal=None):
            async for item in params.items:
                yield item.evolve(detail={**item.detail, **{key: item.detail[field] for key in provides}})

        return qp.define_refiner(refine, requires={field}, provides=provides, name=name)

    source = qp.refine_source(
        source_of({"path": "/x", "line": 3}),
        needs("resolve", "path", ["abspath"]),
        needs("jump", "line"),
    )
    out = await to_list(source.collect(None, qp.CollectParams()))

    assert out[0].detail == {"path": "/x", "line": 3, "abspath": "/x"}
    assert source.fields is None


@pytest.mark.asyncio
async def test_refiner_dropping_an_incoming_field_fails():
    async def refine(ctx, params, *, signal=None):
        async for item in params.items:
            detail = dict(item.detail)
            detail.pop("line")
            yield item.evolve(detail=detail)

    lossy = qp.define_refiner(refine, requires={"path"}, name="lossy")
    source = qp.refine_source(source_of({"path": "/x", "line": 3}, fields={"path", "line"}), lossy)

    assert source.fields == frozenset({"path", "line"})
    with pytest.raises(qp.ContractViolation, match="dropped") as exc:
        await to_list(source.collect(None, qp.CollectParams()))
    assert exc.value.missing == ["line"]
