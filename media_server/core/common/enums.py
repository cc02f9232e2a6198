# File: media_server/core/common/enums.py

from enum import Enum, unique

@unique
class MediaKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"

    @property
    def subdir(self) -> str:
        return "images" if self is MediaKind.IMAGE else "videos"

    @classmethod
    def from_subdir(cls, subdir: str) -> "MediaKind":
        for kind in cls:
            if kind.subdir == subdir:
                return kind
        raise ValueError(f"Unknown storage directory: {subdir}")

@unique
class Orientation(str, Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"

@unique
class IngestState(str, Enum):
    RECEIVED = "received"
    TYPE_VALIDATED = "type-validated"
    DEDUP_CHECKED = "dedup-checked"
    CAPACITY_CHECKED = "capacity-checked"
    PROCESSING = "processing"
    PERSISTED = "persisted"
    INDEXED = "indexed"
    RESPONDED = "responded"
    ERROR = "error"
