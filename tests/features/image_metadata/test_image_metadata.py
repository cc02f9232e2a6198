import base64
import io

import pytest
from PIL import ExifTags, Image

from conftest import make_exif, make_jpeg, make_png
from media_server.core.errors import MetadataExtractionError
from media_server.features.image_metadata.data.exif_parser import (
    format_exposure_time,
    gps_to_decimal,
    parse_exif_date,
    parse_exif_fields,
    parse_gps,
)
from media_server.features.image_metadata.data.pillow_adapter import LQIP_SIZE
from media_server.features.image_metadata.service.api import ImageMetadataExtractor

LQIP_PREFIX = "data:image/jpeg;base64,"


@pytest.fixture
def extractor():
    return ImageMetadataExtractor()


def decode_lqip(lqip: str) -> Image.Image:
    assert lqip.startswith(LQIP_PREFIX)
    return Image.open(io.BytesIO(base64.b64decode(lqip[len(LQIP_PREFIX):])))

# --- Extraction ---

def test_dimensions_and_aspect_ratio(extractor):
    meta = extractor.extract(make_jpeg(1920, 1080))

    assert (meta.width, meta.height) == (1920, 1080)
    assert meta.aspect_ratio == 1.7778


def test_lqip_fits_inside_bound_and_keeps_aspect(extractor):
    meta = extractor.extract(make_jpeg(1920, 1080))

    preview = decode_lqip(meta.lqip)
    assert preview.format == "JPEG"
    assert preview.width <= LQIP_SIZE[0] and preview.height <= LQIP_SIZE[1]
    assert preview.width == 20
    assert preview.height in (11, 12)


def test_png_with_alpha_gets_jpeg_placeholder(extractor):
    meta = extractor.extract(make_png(40, 80))

    assert meta.aspect_ratio == 0.5
    assert decode_lqip(meta.lqip).mode == "RGB"


def test_image_without_exif_omits_sub_objects(extractor):
    payload = extractor.extract(make_jpeg()).to_dict()

    assert "exif" not in payload
    assert "location" not in payload
    assert set(payload) == {"width", "height", "aspectRatio", "lqip"}


def test_exif_and_gps_are_parsed(extractor):
    meta = extractor.extract(make_jpeg(exif=make_exif(alt=12.5)))
    payload = meta.to_dict()

    assert payload["exif"] == {
        "dateTime": "2024-01-15T14:30:00",
        "cameraMake": "FUJIFILM",
        "cameraModel": "X-T4",
        "lensModel": "XF23mmF2 R WR",
        "focalLength": 23.0,
        "aperture": 2.0,
        "iso": 400,
        "exposureTime": "1/250",
    }
    assert payload["location"]["lat"] == pytest.approx(59.924167, abs=1e-5)
    assert payload["location"]["lon"] == pytest.approx(10.758333, abs=1e-5)
    assert payload["location"]["alt"] == pytest.approx(12.5)


def test_southern_western_hemispheres_are_negative(extractor):
    exif = make_exif(lat=(33, 52, 4), lat_ref="S", lon=(151, 12, 26), lon_ref="W", with_camera=False)

    meta = extractor.extract(make_jpeg(exif=exif))

    assert meta.exif is None
    assert meta.location.lat == pytest.approx(-33.867778, abs=1e-5)
    assert meta.location.lon == pytest.approx(-151.207222, abs=1e-5)


def test_undecodable_bytes_are_a_hard_error(extractor):
    with pytest.raises(MetadataExtractionError):
        extractor.extract(b"\xff\xd8\xff" + b"not really a jpeg" * 10)


@pytest.mark.asyncio
async def test_extract_file_and_lqip_for_file(extractor, tmp_path):
    path = tmp_path / "poster.jpg"
    path.write_bytes(make_jpeg(320, 180))

    meta = await extractor.extract_file(path)
    lqip = await extractor.lqip_for_file(path)

    assert meta.width == 320
    assert lqip.startswith(LQIP_PREFIX)

    with pytest.raises(MetadataExtractionError):
        await extractor.lqip_for_file(tmp_path / "missing.jpg")

# --- EXIF field parsing ---

@pytest.mark.parametrize("value, expected", [
    (2.0, "2s"),
    (1, "1s"),
    (0.5, "1/2"),
    (0.4, "1/3"),
    (1 / 250, "1/250"),
    (0.0166, "1/60"),
    (0, None),
    ("garbage", None),
])
def test_format_exposure_time(value, expected):
    assert format_exposure_time(value) == expected


def test_gps_to_decimal():
    assert gps_to_decimal("N", (59, 55, 27)) == pytest.approx(59.924167, abs=1e-5)
    assert gps_to_decimal("W", (10, 30, 0)) == pytest.approx(-10.5)
    assert gps_to_decimal(None, (1, 2, 3)) is None
    assert gps_to_decimal("N", (1, 2)) is None
    assert gps_to_decimal("N", (1, "x", 3)) is None


def test_parse_exif_date():
    assert parse_exif_date("2024:01:15 14:30:00") == "2024-01-15T14:30:00"
    assert parse_exif_date("2024:01:15") == "2024-01-15"
    assert parse_exif_date(b"2024:01:15 14:30:00\x00") == "2024-01-15T14:30:00"
    assert parse_exif_date("0000:00:00 00:00:00") is None
    assert parse_exif_date(None) is None


def test_malformed_fields_are_dropped_individually():
    base = {ExifTags.Base.Make: "  Canon\x00", ExifTags.Base.Model: 12345}
    photo = {ExifTags.Base.FNumber: "f/wide", ExifTags.Base.ISOSpeedRatings: (800, 800)}

    parsed = parse_exif_fields(base, photo)

    assert parsed.camera_make == "Canon"
    assert parsed.camera_model is None
    assert parsed.aperture is None
    assert parsed.iso == 800


def test_empty_exif_collapses_to_none():
    assert parse_exif_fields({}, {}) is None
    assert parse_gps({}) is None
    assert parse_gps({ExifTags.GPS.GPSLatitudeRef: "N"}) is None


def test_negative_altitude_below_sea_level():
    gps = {
        ExifTags.GPS.GPSLatitudeRef: "N",
        ExifTags.GPS.GPSLatitude: (31, 30, 0),
        ExifTags.GPS.GPSLongitudeRef: "E",
        ExifTags.GPS.GPSLongitude: (35, 30, 0),
        ExifTags.GPS.GPSAltitudeRef: b"\x01",
        ExifTags.GPS.GPSAltitude: 430.0,
    }

    assert parse_gps(gps).alt == -430.0
