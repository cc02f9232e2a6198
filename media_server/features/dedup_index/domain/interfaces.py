from abc import ABC, abstractmethod
from typing import List
from .models import DuplicateIndexEntry

class IIndexRepository(ABC):
    """
    Durable backing store for the duplicate index.
    Callers serialize access; implementations need not be thread-safe.
    """
    @abstractmethod
    def load_all(self) -> List[DuplicateIndexEntry]:
        """Reads the persisted table. An absent store yields an empty list."""
        pass

    @abstractmethod
    def save(self, entry: DuplicateIndexEntry) -> None:
        """Inserts or overwrites the row for entry.hash and commits."""
        pass

    @abstractmethod
    def delete(self, file_hash: str) -> None:
        """Removes the row for file_hash and commits."""
        pass
