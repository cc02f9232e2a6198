import base64
import io
import logging
from pathlib import Path
from typing import Tuple, Union

from PIL import Image, ImageFilter, UnidentifiedImageError

from media_server.core.errors import MetadataExtractionError
from ..domain.interfaces import IImageInspector
from ..domain.models import ImageMetadata
from .exif_parser import parse_exif

try:
    from pillow_heif import register_heif_opener  # type: ignore
    register_heif_opener()
    HEIF_AVAILABLE = True
except ImportError:  # pragma: no cover
    HEIF_AVAILABLE = False

logger = logging.getLogger(__name__)

LQIP_SIZE = (20, 20)
LQIP_QUALITY = 50
LQIP_BLUR_RADIUS = 2


def build_lqip(image: Image.Image) -> str:
    """
    Tiny blurred JPEG as a data URI. Fits inside LQIP_SIZE, keeping aspect ratio.
    """
    preview = image.copy()
    if preview.mode not in ("RGB", "L"):
        preview = preview.convert("RGB")
    preview.thumbnail(LQIP_SIZE)
    preview = preview.filter(ImageFilter.GaussianBlur(LQIP_BLUR_RADIUS))

    buffer = io.BytesIO()
    preview.save(buffer, format="JPEG", quality=LQIP_QUALITY)
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/jpeg;base64,{encoded}"


def lqip_from_file(path: Union[str, Path]) -> str:
    with Image.open(path) as image:
        return build_lqip(image)


class PillowImageInspector(IImageInspector):
    def extract(self, data: bytes) -> ImageMetadata:
        try:
            with Image.open(io.BytesIO(data)) as image:
                width, height = self._dimensions(image)
                lqip = build_lqip(image)
                exif_data, location = parse_exif(self._read_exif(image))
        except MetadataExtractionError:
            raise
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise MetadataExtractionError(f"Could not decode image: {e}") from e

        return ImageMetadata(
            width=width,
            height=height,
            aspect_ratio=round(width / height, 4),
            lqip=lqip,
            exif=exif_data,
            location=location,
        )

    def _dimensions(self, image: Image.Image) -> Tuple[int, int]:
        width, height = image.size
        if not width or not height:
            raise MetadataExtractionError("Could not determine image dimensions")
        return width, height

    def _read_exif(self, image: Image.Image):
        try:
            return image.getexif()
        except Exception as e:
            logger.warning(f"EXIF segment unreadable, continuing without it: {e}")
            return None
