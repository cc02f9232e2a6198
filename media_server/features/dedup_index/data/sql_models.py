from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Enum as SQLEnum
from media_server.core.database.base import Base
from media_server.core.common.enums import MediaKind

def utc_now():
    return datetime.now(timezone.utc)

class IndexEntryModel(Base):
    __tablename__ = "media_index"

    file_hash = Column(String(64), primary_key=True)
    filename = Column(String, nullable=False, index=True)
    kind = Column(SQLEnum(MediaKind), nullable=False)
    url = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now)
