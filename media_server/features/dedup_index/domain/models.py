from dataclasses import dataclass
from media_server.core.common.enums import MediaKind

@dataclass(frozen=True)
class DuplicateIndexEntry:
    """
    One row per distinct content hash.
    filename/kind/url are a denormalized pointer to the stored file.
    """
    hash: str
    filename: str
    kind: MediaKind
    url: str
