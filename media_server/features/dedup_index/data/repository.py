import logging
from pathlib import Path
from typing import List
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url

from media_server.core.database.base import Base
from media_server.core.database.connection import create_db_engine, create_session_factory
from .sql_models import IndexEntryModel
from ..domain.interfaces import IIndexRepository
from ..domain.models import DuplicateIndexEntry

logger = logging.getLogger(__name__)


class SqlIndexRepository(IIndexRepository):
    def __init__(self, database_url: str):
        url = make_url(database_url)
        if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
            # First start: the file is created empty
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)

        self.engine: Engine = create_db_engine(database_url)
        self.SessionLocal = create_session_factory(self.engine)
        Base.metadata.create_all(bind=self.engine, tables=[IndexEntryModel.__table__])

    def load_all(self) -> List[DuplicateIndexEntry]:
        with self.SessionLocal() as db:
            rows = db.query(IndexEntryModel).all()
            return [
                DuplicateIndexEntry(
                    hash=row.file_hash,
                    filename=row.filename,
                    kind=row.kind,
                    url=row.url,
                )
                for row in rows
            ]

    def save(self, entry: DuplicateIndexEntry) -> None:
        with self.SessionLocal() as db:
            try:
                db.merge(IndexEntryModel(
                    file_hash=entry.hash,
                    filename=entry.filename,
                    kind=entry.kind,
                    url=entry.url,
                ))
                db.commit()
            except Exception:
                db.rollback()
                raise

    def delete(self, file_hash: str) -> None:
        with self.SessionLocal() as db:
            try:
                db.query(IndexEntryModel).filter(IndexEntryModel.file_hash == file_hash).delete()
                db.commit()
            except Exception:
                db.rollback()
                raise

    def close(self) -> None:
        self.engine.dispose()
