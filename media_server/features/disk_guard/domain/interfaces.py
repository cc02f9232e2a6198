from abc import ABC, abstractmethod
from pathlib import Path
from .models import DiskUsage

class IDiskStats(ABC):
    @abstractmethod
    def usage(self, path: Path) -> DiskUsage:
        """
        Queries filesystem statistics for the volume holding `path`.
        Raises OSError when the query fails.
        """
        pass
