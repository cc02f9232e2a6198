import threading

import pytest
from sqlalchemy import create_engine, text

from media_server.core.common.enums import MediaKind
from media_server.features.dedup_index.data.repository import SqlIndexRepository
from media_server.features.dedup_index.domain.models import DuplicateIndexEntry
from media_server.features.dedup_index.service.api import DuplicateIndex

# --- FIXTURES ---

@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'index' / 'index.db'}"


@pytest.fixture
def index(db_url):
    idx = DuplicateIndex.from_url(db_url)
    idx.load()
    yield idx
    idx.repo.close()


def entry(n: int, kind: MediaKind = MediaKind.IMAGE) -> DuplicateIndexEntry:
    file_hash = f"{n:064x}"
    filename = f"file{n}.jpg" if kind is MediaKind.IMAGE else f"file{n}.mp4"
    return DuplicateIndexEntry(
        hash=file_hash,
        filename=filename,
        kind=kind,
        url=f"http://media.test/files/{kind.subdir}/{filename}",
    )

# --- TESTS ---

def test_first_start_creates_empty_index(db_url, tmp_path):
    idx = DuplicateIndex.from_url(db_url)

    assert idx.load() == 0
    assert (tmp_path / "index" / "index.db").exists()
    idx.repo.close()


def test_upsert_then_lookup(index):
    e = entry(1)
    index.upsert(e)

    assert index.lookup(e.hash) == e
    assert index.lookup("f" * 64) is None
    assert len(index) == 1


def test_entries_survive_restart(db_url):
    first = DuplicateIndex.from_url(db_url)
    first.load()
    first.upsert(entry(1))
    first.upsert(entry(2, MediaKind.VIDEO))
    first.repo.close()

    second = DuplicateIndex.from_url(db_url)
    assert second.load() == 2
    restored = second.lookup(entry(2, MediaKind.VIDEO).hash)
    assert restored.kind is MediaKind.VIDEO
    assert restored.filename == "file2.mp4"
    second.repo.close()


def test_upsert_replaces_existing_hash(index, db_url):
    original = entry(1)
    index.upsert(original)
    replacement = DuplicateIndexEntry(original.hash, "moved.jpg", MediaKind.IMAGE, "http://media.test/files/images/moved.jpg")

    index.upsert(replacement)

    assert index.lookup(original.hash).filename == "moved.jpg"
    engine = create_engine(db_url)
    with engine.connect() as conn:
        count = conn.execute(text("SELECT COUNT(*) FROM media_index")).scalar()
    engine.dispose()
    assert count == 1


def test_remove_by_filename(index):
    index.upsert(entry(1))
    index.upsert(entry(2))

    removed = index.remove_by_filename("file1.jpg")

    assert removed.hash == entry(1).hash
    assert index.lookup(entry(1).hash) is None
    assert index.lookup(entry(2).hash) is not None
    assert index.remove_by_filename("file1.jpg") is None


def test_remove_is_persisted(db_url, index):
    index.upsert(entry(7))
    index.remove(entry(7).hash)

    reloaded = DuplicateIndex(SqlIndexRepository(db_url))
    assert reloaded.load() == 0
    reloaded.repo.close()


def test_concurrent_upserts_are_not_lost(db_url, index):
    """
    Many writers at once: every entry must be both in memory and on disk.
    """
    threads = [threading.Thread(target=index.upsert, args=(entry(n),)) for n in range(40)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(index) == 40

    reloaded = DuplicateIndex.from_url(db_url)
    assert reloaded.load() == 40
    reloaded.repo.close()


class FailingRepository(SqlIndexRepository):
    def save(self, entry):
        raise RuntimeError("disk full")


def test_failed_save_leaves_memory_unchanged(db_url):
    idx = DuplicateIndex(FailingRepository(db_url))
    idx.load()

    with pytest.raises(RuntimeError):
        idx.upsert(entry(1))

    assert idx.lookup(entry(1).hash) is None
    idx.repo.close()
