"""Tests for the file writer."""

from typebridge.writer import FileWriter, MemoryWriter


def test_file_writer_creates_parents(tmp_path):
    target = tmp_path / "a" / "b" / "index.ts"
    outcome = FileWriter().write(target, "export {};\n")

    assert outcome.ok is True
    assert outcome.error is None
    assert target.read_text(encoding="utf-8") == "export {};\n"


def test_file_writer_reports_failure(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")

    outcome = FileWriter().write(blocker / "index.ts", "x")

    assert outcome.ok is False
    assert outcome.error


def test_memory_writer(tmp_path):
    writer = MemoryWriter()
    writer.write(tmp_path / "x.ts", "x")
    assert writer.files == {tmp_path / "x.ts": "x"}
    assert not (tmp_path / "x.ts").exists()
