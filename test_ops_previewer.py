import pytest

import q_pick as qp
from q_pick.ops_previewer import BINARY_MESSAGE


def params(value="x", **detail):
    return qp.PreviewParams(qp.Item(id=0, value=value, detail=detail))


@pytest.mark.asyncio
async def test_file_previewer_reads_relative_paths_from_host_cwd(tmp_path):
    (tmp_path / "notes.txt").write_text("first\nsecond\n")
    ctx = qp.LocalHost(cwd=tmp_path)

    result = await qp.file_previewer().preview(ctx, params(path="notes.txt", line=2))

    assert result == qp.PreviewItem(content=["first", "second"], line=2, filename="notes.txt")


@pytest.mark.asyncio
async def test_file_previewer_binary_and_missing_files(tmp_path):
    (tmp_path / "blob.bin").write_bytes(b"\xff\xfe\x00\x01")
    ctx = qp.LocalHost(cwd=tmp_path)
    previewer = qp.file_previewer()

    binary = await previewer.preview(ctx, params(path=str(tmp_path / "blob.bin")))
    missing = await previewer.preview(ctx, params(path="gone.txt"))

    assert binary.content == [BINARY_MESSAGE]
    assert "gone.txt" in missing.content[0]
    assert [ev.op for ev in ctx.trace] == ["preview_error"]
    assert await previewer.preview(ctx, params()) is None


@pytest.mark.asyncio
async def test_buffer_previewer_and_fallback():
    ctx = qp.LocalHost(buffers={"scratch": ["a", "b"]})
    previewer = qp.compose_previewers(qp.file_previewer, qp.buffer_previewer)

    result = await previewer.preview(ctx, params(bufnr=1, line=2))
    missing = await qp.buffer_previewer().preview(ctx, params(bufname="other"))

    assert result == qp.PreviewItem(content=["a", "b"], line=2, filename="scratch")
    assert missing.content == ["No such buffer: 'other'"]


@pytest.mark.asyncio
async def test_shell_previewer_collects_stdout_and_stderr():
    previewer = qp.shell_previewer()

    ok = await previewer.preview(None, params("echo out; echo err >&2"))
    failed = await previewer.preview(None, params("exit 3"))
    direct = await previewer.preview(None, params(command="echo", args=["x y"]))

    assert ok.content == ["out", "--- stderr ---", "err"]
    assert ok.filename == "$ sh -c echo out; echo err >&2"
    assert failed.content == ["", "[Command failed with non-zero exit code]"]
    assert direct.content == ["x y"]


@pytest.mark.asyncio
async def test_shell_previewer_timeout_and_truncation(monkeypatch):
    monkeypatch.setenv("Q_PICK_PREVIEW_MAX_LINES", "2")
    previewer = qp.shell_previewer()

    slow = await previewer.preview(None, params("sleep 5", timeout=0.1))
    long = await previewer.preview(None, params("printf 'a\\nb\\nc\\n'"))

    assert slow.content == ["[Command timed out after 0.1s]"]
    assert long.content == ["a", "b", "", "[Output truncated to 2 lines]"]


@pytest.mark.asyncio
async def test_noop_previewer_returns_nothing():
    assert await qp.noop_previewer().preview(None, params()) is None
