import time
from pathlib import Path

from watchdog.events import FileCreatedEvent, FileModifiedEvent, FileMovedEvent

from mddb.commands.watch_cmd import revalidate
from mddb.watcher import DocumentEventHandler


def test_events_are_debounced(tmp_path: Path) -> None:
    batches: list[list[Path]] = []
    handler = DocumentEventHandler(tmp_path, batches.append, debounce_ms=300)

    handler.on_modified(FileModifiedEvent(str(tmp_path / "b.md")))
    handler.on_modified(FileModifiedEvent(str(tmp_path / "b.md")))
    handler.on_created(FileCreatedEvent(str(tmp_path / "a.md")))
    handler.on_created(FileCreatedEvent(str(tmp_path / "notes.txt")))
    handler.on_modified(FileModifiedEvent(str(tmp_path / ".obsidian" / "x.md")))

    assert handler.flush_pending(now=time.monotonic() - 10) == []
    assert batches == []

    flushed = handler.flush_pending(now=time.monotonic() + 1)
    assert flushed == [tmp_path / "a.md", tmp_path / "b.md"]
    assert batches == [flushed]
    assert handler.pending == {}


def test_moves_touch_both_paths(tmp_path: Path) -> None:
    handler = DocumentEventHandler(tmp_path, lambda paths: None, debounce_ms=0)
    handler.on_moved(FileMovedEvent(str(tmp_path / "old.md"), str(tmp_path / "new.md")))

    assert set(handler.pending) == {tmp_path / "old.md", tmp_path / "new.md"}


def test_revalidate_skips_deleted_files(corpus: Path, schema, users) -> None:
    result = revalidate(
        [corpus / "adr-002.md", corpus / "gone.md"],
        corpus,
        schema,
        users,
    )
    assert [f.path.name for f in result.files] == ["adr-002.md"]
    assert not result.has_errors
