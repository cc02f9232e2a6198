from abc import ABC, abstractmethod
from .models import ImageMetadata

class IImageInspector(ABC):
    """
    Contract for deriving ImageMetadata from encoded image bytes.
    """
    @abstractmethod
    def extract(self, data: bytes) -> ImageMetadata:
        """
        Raises:
            MetadataExtractionError: If pixel dimensions cannot be determined.
        """
        pass
