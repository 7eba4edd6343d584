"""
In-memory state behind the Notebook and Study views.

Nothing here is persisted; both containers live for the lifetime of the
application window and are only touched from the Tk main thread.
"""

from typing import Callable, Iterator, List, Optional, Sequence

from .logger import logger
from .models import DictionaryEntry


class Notebook:
    """Saved entries, newest first, unique by term."""

    def __init__(self, on_change: Optional[Callable[["Notebook"], None]] = None) -> None:
        self._entries: List[DictionaryEntry] = []
        self.on_change = on_change

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[DictionaryEntry]:
        return iter(list(self._entries))

    @property
    def entries(self) -> List[DictionaryEntry]:
        return list(self._entries)

    def is_saved(self, term: str) -> bool:
        return any(e.term == term for e in self._entries)

    def terms(self) -> List[str]:
        return [e.term for e in self._entries]

    def toggle_save(self, entry: DictionaryEntry) -> bool:
        """
        Save ``entry``, or unsave whatever entry holds the same term.

        Returns True if the entry is saved after the call.
        """
        if self.is_saved(entry.term):
            self._entries = [e for e in self._entries if e.term != entry.term]
            logger.ui(f"Removed from notebook: {entry.term}")
            saved = False
        else:
            self._entries.insert(0, entry)
            logger.ui(f"Saved to notebook: {entry.term} ({len(self._entries)} total)")
            saved = True
        self._changed()
        return saved

    def delete(self, entry_id: str) -> None:
        before = len(self._entries)
        self._entries = [e for e in self._entries if e.id != entry_id]
        if len(self._entries) != before:
            logger.ui(f"Deleted notebook entry {entry_id}")
            self._changed()

    def clear(self) -> None:
        if self._entries:
            self._entries = []
            self._changed()

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change(self)


class StudyDeck:
    """
    Flip-card cursor over a snapshot of notebook entries.

    Moving to another card always shows its front first; navigation wraps
    around in both directions.
    """

    def __init__(self, entries: Sequence[DictionaryEntry] = ()) -> None:
        self._entries: List[DictionaryEntry] = list(entries)
        self.index = 0
        self.is_flipped = False

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def is_empty(self) -> bool:
        return not self._entries

    @property
    def current(self) -> Optional[DictionaryEntry]:
        if self.is_empty:
            return None
        return self._entries[self.index]

    @property
    def position(self) -> str:
        if self.is_empty:
            return "0 / 0"
        return f"{self.index + 1} / {len(self._entries)}"

    def flip(self) -> bool:
        if not self.is_empty:
            self.is_flipped = not self.is_flipped
        return self.is_flipped

    def next(self) -> Optional[DictionaryEntry]:
        if self.is_empty:
            return None
        self.is_flipped = False
        self.index = (self.index + 1) % len(self._entries)
        return self.current

    def previous(self) -> Optional[DictionaryEntry]:
        if self.is_empty:
            return None
        self.is_flipped = False
        self.index = (self.index - 1 + len(self._entries)) % len(self._entries)
        return self.current

    def sync(self, entries: Sequence[DictionaryEntry]) -> None:
        """Re-bind to a fresh snapshot, keeping the index in range."""
        self._entries = list(entries)
        if self.index >= len(self._entries):
            self.index = 0
            self.is_flipped = False
