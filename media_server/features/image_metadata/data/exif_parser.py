"""
EXIF → ExifData / GeoLocation.

Every field is parsed on its own: a missing or malformed value drops that
field only. Callers get None instead of an empty object.
"""

import logging
import math
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from PIL import ExifTags

from ..domain.models import ExifData, GeoLocation

logger = logging.getLogger(__name__)

EXIF_DATE_FORMATS = ("%Y:%m:%d %H:%M:%S", "%Y:%m:%d")


def _clean_text(value: Any) -> Optional[str]:
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="ignore")
    if not isinstance(value, str):
        return None
    text = value.replace("\x00", "").strip()
    return text or None


def _to_float(value: Any) -> Optional[float]:
    if isinstance(value, (tuple, list)):
        value = value[0] if value else None
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_exif_date(value: Any) -> Optional[str]:
    """'2024:01:15 14:30:00' -> '2024-01-15T14:30:00'."""
    text = _clean_text(value)
    if not text:
        return None
    for fmt in EXIF_DATE_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return parsed.isoformat() if "%H" in fmt else parsed.date().isoformat()
    return None


def gps_to_decimal(ref: Any, coord: Optional[Sequence[Any]]) -> Optional[float]:
    """degrees + minutes/60 + seconds/3600, negated for S and W."""
    ref_text = _clean_text(ref)
    if not ref_text or coord is None or len(coord) < 3:
        return None

    parts = [_to_float(c) for c in coord[:3]]
    if any(p is None for p in parts):
        return None

    degrees, minutes, seconds = parts
    decimal = degrees + minutes / 60 + seconds / 3600
    if ref_text.upper() in ("S", "W"):
        decimal = -decimal
    return decimal


def format_exposure_time(value: Any) -> Optional[str]:
    exposure = _to_float(value)
    if not exposure or exposure <= 0:
        return None
    if exposure >= 1:
        return f"{exposure:g}s"
    # Halves round up: 0.4s is shown as 1/3
    return f"1/{int(1 / exposure + 0.5)}"


def _parse_iso(value: Any) -> Optional[int]:
    number = _to_float(value)
    if number is None or number <= 0:
        return None
    return int(number)


def parse_exif_fields(base: Mapping[int, Any], photo: Mapping[int, Any]) -> Optional[ExifData]:
    """
    `base` is IFD0 (camera make/model, DateTime); `photo` is the Exif sub-IFD.
    """
    date_source = photo.get(ExifTags.Base.DateTimeOriginal) or base.get(ExifTags.Base.DateTime)

    data = ExifData(
        date_time=parse_exif_date(date_source),
        camera_make=_clean_text(base.get(ExifTags.Base.Make)),
        camera_model=_clean_text(base.get(ExifTags.Base.Model)),
        lens_make=_clean_text(photo.get(ExifTags.Base.LensMake)),
        lens_model=_clean_text(photo.get(ExifTags.Base.LensModel)),
        focal_length=_to_float(photo.get(ExifTags.Base.FocalLength)),
        aperture=_to_float(photo.get(ExifTags.Base.FNumber)),
        iso=_parse_iso(photo.get(ExifTags.Base.ISOSpeedRatings)),
        exposure_time=format_exposure_time(photo.get(ExifTags.Base.ExposureTime)),
    )
    return None if data.is_empty() else data


def parse_gps(gps: Mapping[int, Any]) -> Optional[GeoLocation]:
    if not gps:
        return None

    lat = gps_to_decimal(gps.get(ExifTags.GPS.GPSLatitudeRef), gps.get(ExifTags.GPS.GPSLatitude))
    lon = gps_to_decimal(gps.get(ExifTags.GPS.GPSLongitudeRef), gps.get(ExifTags.GPS.GPSLongitude))
    if lat is None or lon is None:
        return None

    alt = _to_float(gps.get(ExifTags.GPS.GPSAltitude))
    if alt is not None:
        ref = gps.get(ExifTags.GPS.GPSAltitudeRef)
        if isinstance(ref, bytes):
            ref = ref[:1] == b"\x01"
        # Ref 1: below sea level
        if ref == 1 or ref is True:
            alt = -alt

    return GeoLocation(lat=lat, lon=lon, alt=alt)


def parse_exif(exif) -> tuple:
    """
    Parses a Pillow `Image.Exif`. Returns (ExifData | None, GeoLocation | None)
    and never raises.
    """
    if not exif:
        return None, None

    try:
        fields = parse_exif_fields(exif, exif.get_ifd(ExifTags.IFD.Exif))
    except Exception as e:
        logger.warning(f"EXIF parsing failed, continuing without it: {e}")
        fields = None

    try:
        location = parse_gps(exif.get_ifd(ExifTags.IFD.GPSInfo))
    except Exception as e:
        logger.warning(f"GPS parsing failed, continuing without location: {e}")
        location = None

    return fields, location
