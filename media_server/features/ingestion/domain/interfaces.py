from abc import ABC, abstractmethod
from .models import SniffedType

class IContentSniffer(ABC):
    @abstractmethod
    def sniff(self, data: bytes) -> SniffedType:
        """
        Detects the content type from magic numbers.
        Client-declared MIME types and filenames are never consulted.
        """
        pass
