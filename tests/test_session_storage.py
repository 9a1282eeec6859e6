"""Tests for transcript storage."""

from pathlib import Path

import pytest

from textual_claude.session import ConversationEntry, EntryState
from textual_claude.session_storage import SessionStorage


@pytest.fixture
def storage(tmp_path: Path) -> SessionStorage:
    return SessionStorage(db_path=tmp_path / "transcripts.db")


def rows(*messages: str) -> list[dict]:
    return [
        ConversationEntry(user_message=m, state=EntryState.RESOLVED, response="ok").to_dict()
        for m in messages
    ]


class TestSessionStorage:
    """Tests for per-directory transcript snapshots."""

    def test_load_missing(self, storage: SessionStorage, tmp_path: Path) -> None:
        """Nothing saved means None."""
        assert storage.load(tmp_path) is None

    def test_save_and_load(self, storage: SessionStorage, tmp_path: Path) -> None:
        """A saved transcript loads back unchanged."""
        saved = rows("one", "two")
        storage.save(tmp_path, saved)
        assert storage.load(tmp_path) == saved

    def test_save_replaces(self, storage: SessionStorage, tmp_path: Path) -> None:
        """Saving again replaces the earlier transcript."""
        storage.save(tmp_path, rows("one"))
        storage.save(tmp_path, rows("two"))
        [row] = storage.load(tmp_path)
        assert row["user_message"] == "two"

    def test_directories_are_separate(self, storage: SessionStorage, tmp_path: Path) -> None:
        """Each working directory has its own transcript."""
        a, b = tmp_path / "a", tmp_path / "b"
        a.mkdir()
        b.mkdir()
        storage.save(a, rows("in a"))
        assert storage.load(b) is None

    def test_paths_normalised(self, storage: SessionStorage, tmp_path: Path) -> None:
        """Equivalent paths share a transcript."""
        (tmp_path / "sub").mkdir()
        storage.save(tmp_path / "sub" / "..", rows("x"))
        assert storage.load(str(tmp_path)) is not None

    def test_delete(self, storage: SessionStorage, tmp_path: Path) -> None:
        """Delete reports whether something was removed."""
        storage.save(tmp_path, rows("x"))
        assert storage.delete(tmp_path) is True
        assert storage.delete(tmp_path) is False
        assert storage.load(tmp_path) is None

    def test_clear_all(self, storage: SessionStorage, tmp_path: Path) -> None:
        """clear_all removes every transcript and returns the count."""
        a, b = tmp_path / "a", tmp_path / "b"
        a.mkdir()
        b.mkdir()
        storage.save(a, rows("x"))
        storage.save(b, rows("y"))
        assert storage.clear_all() == 2
        assert storage.load(a) is None

    def test_clear_on_init(self, tmp_path: Path) -> None:
        """clear_on_init starts from an empty store."""
        db = tmp_path / "t.db"
        SessionStorage(db_path=db).save(tmp_path, rows("x"))
        assert SessionStorage(db_path=db, clear_on_init=True).load(tmp_path) is None
