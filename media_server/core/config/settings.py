# File: media_server/core/config/settings.py

import os
import shutil
from pathlib import Path


class Settings:
    # --- Server ---
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "3001"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # --- Paths ---
    UPLOAD_DIR: Path = Path(os.getenv("UPLOAD_DIR", "./uploads"))

    # --- Public surface ---
    _PUBLIC_URL: str = os.getenv("PUBLIC_URL", "")
    API_KEY: str = os.getenv("API_KEY", "")

    # --- Admission control ---
    MIN_FREE_SPACE_MB: int = int(os.getenv("MIN_FREE_SPACE_MB", "500"))
    MAX_FILE_SIZE_MB: int = int(os.getenv("MAX_FILE_SIZE_MB", "500"))
    # Transcoding keeps the original and the new encode on disk at the same time
    VIDEO_SPACE_MULTIPLIER: float = float(os.getenv("VIDEO_SPACE_MULTIPLIER", "2.5"))

    UPLOAD_RATE_LIMIT: int = int(os.getenv("UPLOAD_RATE_LIMIT", "20"))
    API_RATE_LIMIT: int = int(os.getenv("API_RATE_LIMIT", "100"))
    RATE_LIMIT_WINDOW_SECONDS: float = float(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))

    # --- Duplicate index ---
    _INDEX_DATABASE_URL: str = os.getenv("INDEX_DATABASE_URL", "")

    # --- External Tools ---
    # Auto-detect ffmpeg/ffprobe or use env var
    FFMPEG_BINARY: str = os.getenv("FFMPEG_BINARY_PATH", shutil.which("ffmpeg") or "ffmpeg")
    FFPROBE_BINARY: str = os.getenv("FFPROBE_BINARY_PATH", shutil.which("ffprobe") or "ffprobe")

    # --- Transcoding ---
    TRANSCODE_CRF: int = int(os.getenv("TRANSCODE_CRF", "18"))
    TRANSCODE_PRESET: str = os.getenv("TRANSCODE_PRESET", "slow")
    TRANSCODE_AUDIO_BITRATE: str = os.getenv("TRANSCODE_AUDIO_BITRATE", "256k")

    PROBE_TIMEOUT_SECONDS: float = float(os.getenv("PROBE_TIMEOUT_SECONDS", "30"))
    TRANSCODE_TIMEOUT_SECONDS: float = float(os.getenv("TRANSCODE_TIMEOUT_SECONDS", "1800"))
    THUMBNAIL_TIMEOUT_SECONDS: float = float(os.getenv("THUMBNAIL_TIMEOUT_SECONDS", "60"))

    TEMP_FILE_MAX_AGE_SECONDS: float = float(os.getenv("TEMP_FILE_MAX_AGE_SECONDS", "3600"))

    @property
    def PUBLIC_URL(self) -> str:
        return (self._PUBLIC_URL or f"http://localhost:{self.PORT}").rstrip("/")

    @PUBLIC_URL.setter
    def PUBLIC_URL(self, value: str) -> None:
        self._PUBLIC_URL = value

    @property
    def INDEX_DATABASE_URL(self) -> str:
        if self._INDEX_DATABASE_URL:
            return self._INDEX_DATABASE_URL
        return f"sqlite:///{Path(self.UPLOAD_DIR).resolve() / 'index.db'}"

    @INDEX_DATABASE_URL.setter
    def INDEX_DATABASE_URL(self, value: str) -> None:
        self._INDEX_DATABASE_URL = value

    @property
    def IMAGES_DIR(self) -> Path:
        return Path(self.UPLOAD_DIR) / "images"

    @property
    def VIDEOS_DIR(self) -> Path:
        return Path(self.UPLOAD_DIR) / "videos"

    @property
    def THUMBNAILS_DIR(self) -> Path:
        return Path(self.UPLOAD_DIR) / "thumbnails"

    @property
    def TEMP_DIR(self) -> Path:
        # Never mounted under /files
        return Path(self.UPLOAD_DIR) / "tmp"

    @property
    def MIN_FREE_SPACE_BYTES(self) -> int:
        return self.MIN_FREE_SPACE_MB * 1024 * 1024

    @property
    def MAX_FILE_SIZE_BYTES(self) -> int:
        return self.MAX_FILE_SIZE_MB * 1024 * 1024

    def ensure_dirs(self):
        """Creates the storage tree if it doesn't exist."""
        for directory in (self.IMAGES_DIR, self.VIDEOS_DIR, self.THUMBNAILS_DIR, self.TEMP_DIR):
            directory.mkdir(parents=True, exist_ok=True)


settings = Settings()
