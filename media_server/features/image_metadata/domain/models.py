from dataclasses import dataclass, fields
from typing import Optional


@dataclass(frozen=True)
class GeoLocation:
    """Signed decimal degrees; south and west are negative."""
    lat: float
    lon: float
    alt: Optional[float] = None

    def to_dict(self) -> dict:
        out = {"lat": self.lat, "lon": self.lon}
        if self.alt is not None:
            out["alt"] = self.alt
        return out


@dataclass(frozen=True)
class ExifData:
    date_time: Optional[str] = None
    camera_make: Optional[str] = None
    camera_model: Optional[str] = None
    lens_make: Optional[str] = None
    lens_model: Optional[str] = None
    focal_length: Optional[float] = None
    aperture: Optional[float] = None
    iso: Optional[int] = None
    exposure_time: Optional[str] = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def to_dict(self) -> dict:
        return {
            key: value
            for key, value in {
                "dateTime": self.date_time,
                "cameraMake": self.camera_make,
                "cameraModel": self.camera_model,
                "lensMake": self.lens_make,
                "lensModel": self.lens_model,
                "focalLength": self.focal_length,
                "aperture": self.aperture,
                "iso": self.iso,
                "exposureTime": self.exposure_time,
            }.items()
            if value is not None
        }


@dataclass(frozen=True)
class ImageMetadata:
    """
    Derived on ingestion and on metadata lookup; never stored.
    `exif` and `location` are either fully parsed or absent.
    """
    width: int
    height: int
    aspect_ratio: float
    lqip: str
    exif: Optional[ExifData] = None
    location: Optional[GeoLocation] = None

    def to_dict(self) -> dict:
        out = {
            "width": self.width,
            "height": self.height,
            "aspectRatio": self.aspect_ratio,
            "lqip": self.lqip,
        }
        if self.exif is not None:
            out["exif"] = self.exif.to_dict()
        if self.location is not None:
            out["location"] = self.location.to_dict()
        return out
