import asyncio
import math
from datetime import datetime

import pytest

from novadesk.core.config import Settings
from novadesk.core.exceptions import StorageError
from novadesk.services.db_service import (
    MemoryRecordStore,
    SqliteRecordStore,
    create_record_store,
)

@pytest.mark.asyncio
async def test_insert_then_latest_round_trip(store):
    record = await store.insert("García", "78421")

    assert record.id > 0
    assert record.last_name == "García"
    assert record.booking_number == "78421"
    assert record.created_at.endswith("Z")
    # Parseable, UTC
    created = datetime.fromisoformat(record.created_at.replace("Z", "+00:00"))
    assert created.utcoffset().total_seconds() == 0

    latest = await store.latest(1)
    assert len(latest) == 1
    assert latest[0] == record

@pytest.mark.asyncio
async def test_latest_is_newest_first_and_bounded(store):
    for i in range(7):
        await store.insert("Guest", f"{1000 + i}")

    latest = await store.latest()
    assert len(latest) == 5
    ids = [r.id for r in latest]
    assert ids == sorted(ids, reverse=True)
    assert latest[0].booking_number == "1006"

@pytest.mark.asyncio
async def test_concurrent_inserts_get_contiguous_ids(store):
    n = 50
    records = await asyncio.gather(*[store.insert("Paralelo", f"{5000 + i}") for i in range(n)])

    ids = sorted(r.id for r in records)
    assert len(set(ids)) == n
    assert ids == list(range(ids[0], ids[0] + n))
    assert await store.count() == n

@pytest.mark.asyncio
async def test_pagination_covers_every_record_once(store):
    for i in range(23):
        await store.insert("Página", f"{2000 + i}")

    total = await store.count()
    size = 5
    page_count = max(1, math.ceil(total / size))

    seen = []
    for page in range(1, page_count + 1):
        seen.extend(await store.list(page, size))

    assert len(seen) == total == 23
    assert len({r.id for r in seen}) == total
    assert [r.id for r in seen] == sorted((r.id for r in seen), reverse=True)
    assert await store.list(page_count + 1, size) == []

@pytest.mark.asyncio
async def test_list_clamps_page_and_size(store):
    for i in range(3):
        await store.insert("Clamp", f"{3000 + i}")

    assert len(await store.list(0, 20)) == 3
    assert len(await store.list(-4, 20)) == 3
    assert len(await store.list(1, 0)) == 1
    assert len(await store.list(1, 10_000)) == 3
    assert await store.list(2, 10_000) == []

@pytest.mark.asyncio
async def test_delete_is_idempotent(store):
    record = await store.insert("Borrar", "4444")

    assert await store.delete(record.id) == 1
    assert await store.delete(record.id) == 0
    assert await store.delete(record.id) == 0
    assert await store.delete(999_999) == 0
    assert await store.count() == 0

@pytest.mark.asyncio
async def test_pages_past_64_bit_offsets_are_empty(store):
    await store.insert("Lejos", "5555")

    assert await store.list(99999999999999999, 200) == []
    assert await store.list(10 ** 25, 20) == []
    assert len(await store.latest(10 ** 25)) == 1
    assert await store.count() == 1

@pytest.mark.asyncio
async def test_delete_of_id_past_64_bits_deletes_nothing(store):
    await store.insert("Lejos", "5555")

    assert await store.delete(2 ** 63) == 0
    assert await store.delete(10 ** 25) == 0
    assert await store.count() == 1

@pytest.mark.asyncio
async def test_ids_are_never_reused_after_delete(store):
    first = await store.insert("Uno", "1111")
    await store.delete(first.id)
    second = await store.insert("Dos", "2222")
    assert second.id > first.id

@pytest.mark.asyncio
async def test_sqlite_store_persists_across_reopen(tmp_path):
    path = str(tmp_path / "reservas.sqlite")
    store = SqliteRecordStore(path)
    record = await store.insert("Durable", "8888")
    store.close()

    reopened = SqliteRecordStore(path)
    try:
        assert await reopened.latest(1) == [record]
    finally:
        reopened.close()

@pytest.mark.asyncio
async def test_sqlite_errors_become_storage_error(tmp_path):
    store = SqliteRecordStore(str(tmp_path / "broken.sqlite"))
    await store.count()
    # Drop the table behind the store's back
    store._db.execute("DROP TABLE reservas")
    store._db.commit()

    with pytest.raises(StorageError):
        await store.insert("Fallo", "1234")
    with pytest.raises(StorageError):
        await store.count()
    store.close()

@pytest.mark.asyncio
async def test_failed_insert_leaves_no_row(tmp_path):
    path = str(tmp_path / "atomic.sqlite")
    store = SqliteRecordStore(path)
    await store.insert("Antes", "1000")

    with pytest.raises(StorageError):
        # NOT NULL violation
        await store.insert(None, "2000")

    assert await store.count() == 1
    store.close()

def test_create_record_store_selects_backend(tmp_path):
    memory = create_record_store(Settings(_env_file=None, STORAGE_BACKEND="memory"))
    assert isinstance(memory, MemoryRecordStore)

    durable = create_record_store(Settings(
        _env_file=None, STORAGE_BACKEND="sqlite", DATABASE_PATH=str(tmp_path / "x.sqlite")
    ))
    assert isinstance(durable, SqliteRecordStore)

    with pytest.raises(ValueError):
        create_record_store(Settings(_env_file=None, STORAGE_BACKEND="postgres"))
