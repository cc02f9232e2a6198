from pydantic import BaseModel

from media_server.core.common.enums import MediaKind


class MetadataRequest(BaseModel):
    url: str
    type: MediaKind
