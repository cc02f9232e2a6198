from media_server.core.common.enums import MediaKind
from media_server.core.config.settings import Settings


def test_public_url_defaults_to_port():
    s = Settings()
    s.PORT = 4000
    s.PUBLIC_URL = ""

    assert s.PUBLIC_URL == "http://localhost:4000"

    s.PUBLIC_URL = "https://media.example.com/"
    assert s.PUBLIC_URL == "https://media.example.com"


def test_storage_layout(tmp_path):
    s = Settings()
    s.UPLOAD_DIR = tmp_path / "store"
    s.INDEX_DATABASE_URL = ""

    s.ensure_dirs()

    for name in ("images", "videos", "thumbnails", "tmp"):
        assert (tmp_path / "store" / name).is_dir()
    assert s.INDEX_DATABASE_URL == f"sqlite:///{(tmp_path / 'store').resolve() / 'index.db'}"


def test_size_limits_in_bytes():
    s = Settings()
    s.MIN_FREE_SPACE_MB = 500
    s.MAX_FILE_SIZE_MB = 2

    assert s.MIN_FREE_SPACE_BYTES == 500 * 1024 * 1024
    assert s.MAX_FILE_SIZE_BYTES == 2 * 1024 * 1024


def test_media_kind_directories():
    assert MediaKind.IMAGE.subdir == "images"
    assert MediaKind.from_subdir("videos") is MediaKind.VIDEO
