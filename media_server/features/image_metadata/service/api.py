import asyncio
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError

from media_server.core.errors import MetadataExtractionError
from ..data.pillow_adapter import HEIF_AVAILABLE, PillowImageInspector, lqip_from_file
from ..domain.interfaces import IImageInspector
from ..domain.models import ImageMetadata


class ImageMetadataExtractor:
    """
    Public API of the image metadata feature.
    Decoding runs in a worker thread so the event loop is not blocked.
    """
    def __init__(self, inspector: Optional[IImageInspector] = None):
        self.inspector = inspector or PillowImageInspector()

    def extract(self, data: bytes) -> ImageMetadata:
        return self.inspector.extract(data)

    async def extract_async(self, data: bytes) -> ImageMetadata:
        return await asyncio.to_thread(self.inspector.extract, data)

    async def extract_file(self, path: Path) -> ImageMetadata:
        data = await asyncio.to_thread(Path(path).read_bytes)
        return await self.extract_async(data)

    async def lqip_for_file(self, path: Path) -> str:
        """Placeholder for an image already on disk, e.g. a video poster."""
        try:
            return await asyncio.to_thread(lqip_from_file, path)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
            raise MetadataExtractionError(f"Could not build placeholder from {Path(path).name}: {e}") from e

    @property
    def supports_heif(self) -> bool:
        return HEIF_AVAILABLE
