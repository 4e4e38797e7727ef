import os

import pytest

import q_pick as qp


def items(*values, **detail):
    return [qp.Item(id=n, value=v, detail=dict(detail)) for n, v in enumerate(values)]


@pytest.mark.asyncio
async def test_lexical_sorts_by_getter_and_reverse():
    values = items("b", "C", "a")

    await qp.lexical().sort(None, qp.SortParams(values))
    assert [i.value for i in values] == ["C", "a", "b"]

    await qp.lexical(lambda i: i.value.lower(), reverse=True).sort(None, qp.SortParams(values))
    assert [i.value for i in values] == ["C", "b", "a"]


@pytest.mark.asyncio
async def test_numerical_puts_non_numbers_last_in_input_order():
    values = items("10", "x", "2", "y", "-1.5")

    await qp.numerical().sort(None, qp.SortParams(values))
    assert [i.value for i in values] == ["-1.5", "2", "10", "x", "y"]

    await qp.numerical(reverse=True).sort(None, qp.SortParams(values))
    assert [i.value for i in values] == ["10", "2", "-1.5", "x", "y"]


@pytest.mark.asyncio
async def test_numerical_is_stable_for_equal_keys():
    values = [qp.Item(id=n, value=v, detail={"n": 1}) for n, v in enumerate("cab")]

    await qp.numerical(lambda i: i.detail["n"]).sort(None, qp.SortParams(values))

    assert [i.value for i in values] == ["c", "a", "b"]


@pytest.mark.asyncio
async def test_relative_and_absolute_path_renderers_only_touch_labels(tmp_path):
    ctx = qp.LocalHost(cwd=tmp_path)
    path = str(ctx.cwd / "src" / "main.py")
    values = [qp.Item(id=0, value=path, detail={"path": path})]

    await qp.relative_path().render(ctx, qp.RenderParams(values))
    assert values[0].label == os.path.join("src", "main.py")
    assert values[0].value == path

    rel = [qp.Item(id=0, value="src/main.py", detail={"path": "src/main.py"})]
    await qp.absolute_path(base="/repo").render(ctx, qp.RenderParams(rel))
    assert rel[0].label == "/repo/src/main.py"


@pytest.mark.asyncio
async def test_smart_path_moves_existing_decorations():
    # "dir/naïve.py": dirname "dir" (3 bytes), filename "naïve.py" (9 bytes)
    item = qp.Item(
        id=0,
        value="dir/naïve.py",
        decorations=[qp.Decoration(1, 2), qp.Decoration(5, 4)],
    )

    await qp.smart_path().render(None, qp.RenderParams([item]))

    assert item.label == "naïve.py dir"
    assert item.decorations == [
        qp.Decoration(11, 2),
        qp.Decoration(1, 4),
        qp.Decoration(10, 4, "Comment"),
    ]
    assert item.value == "dir/naïve.py"


@pytest.mark.asyncio
async def test_smart_path_leaves_plain_names_alone():
    item = qp.Item(id=0, value="README")

    await qp.smart_path(highlight="Dim").render(None, qp.RenderParams([item]))

    assert item.label == "README"
    assert item.decorations == []
