import logging
import threading
from typing import Dict, Optional

from ..data.repository import SqlIndexRepository
from ..domain.interfaces import IIndexRepository
from ..domain.models import DuplicateIndexEntry

logger = logging.getLogger(__name__)


class DuplicateIndex:
    """
    Single source of truth for "have we seen this content before".

    The in-memory map answers lookups; every mutation goes through one lock
    and is committed to the repository before the lock is released, so
    concurrent uploads cannot lose each other's updates.
    """

    def __init__(self, repository: IIndexRepository):
        self.repo = repository
        self._entries: Dict[str, DuplicateIndexEntry] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_url(cls, database_url: str) -> "DuplicateIndex":
        return cls(SqlIndexRepository(database_url))

    def load(self) -> int:
        """Bootstraps the map from the persisted table. Returns the entry count."""
        with self._lock:
            self._entries = {entry.hash: entry for entry in self.repo.load_all()}
            count = len(self._entries)
        logger.info(f"Duplicate index loaded with {count} entries")
        return count

    def lookup(self, file_hash: str) -> Optional[DuplicateIndexEntry]:
        return self._entries.get(file_hash)

    def upsert(self, entry: DuplicateIndexEntry) -> None:
        with self._lock:
            self.repo.save(entry)
            self._entries[entry.hash] = entry
        logger.debug(f"Indexed {entry.hash[:12]} -> {entry.filename}")

    def remove(self, file_hash: str) -> Optional[DuplicateIndexEntry]:
        with self._lock:
            entry = self._entries.get(file_hash)
            if entry is None:
                return None
            self.repo.delete(file_hash)
            del self._entries[file_hash]
            return entry

    def remove_by_filename(self, filename: str) -> Optional[DuplicateIndexEntry]:
        """
        Removes the first entry naming `filename`.
        Linear scan: the index is keyed by hash, not filename.
        """
        with self._lock:
            match = next((e for e in self._entries.values() if e.filename == filename), None)
            if match is None:
                return None
            self.repo.delete(match.hash)
            del self._entries[match.hash]
        logger.info(f"Removed index entry for {filename}")
        return match

    def __len__(self) -> int:
        return len(self._entries)
