import asyncio
import csv
import io
import math
from typing import Optional, Union

from novadesk.core.exceptions import ValidationError
from novadesk.core.logger import logger
from novadesk.models.admin_models import DeleteResult, Listing
from novadesk.services.db_service import RecordStore, clamp_page, clamp_size

CSV_HEADER = ["id", "last_name", "booking_number", "created_at"]

RawInt = Optional[Union[int, str]]


def parse_int(value: RawInt, default: int, field: str) -> int:
    """
    Reads an integer query value. Missing -> default, not an integer -> ValidationError.
    Range clamping is left to the caller.
    """
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    try:
        return int(value.strip())
    except ValueError:
        raise ValidationError(f"{field} must be an integer")


def parse_record_id(value: RawInt) -> int:
    if value is None or isinstance(value, bool):
        raise ValidationError("id must be a positive integer")
    text = str(value).strip()
    if not text.isascii() or not text.isdigit():
        raise ValidationError("id must be a positive integer")
    record_id = int(text)
    if record_id < 1:
        raise ValidationError("id must be a positive integer")
    return record_id


class AdminQueryService:
    """
    Read-side composition over the RecordStore for the admin panel and API.
    """

    def __init__(self, store: RecordStore, list_default_size: int = 20, csv_default_size: int = 100):
        self.store = store
        self.list_default_size = list_default_size
        self.csv_default_size = csv_default_size

    async def render_listing(self, page: RawInt = None, size: RawInt = None,
                             default_size: Optional[int] = None) -> Listing:
        page = clamp_page(parse_int(page, 1, "page"))
        size = clamp_size(parse_int(size, default_size or self.list_default_size, "size"))

        # Independent reads, no ordering needed between them
        rows, total = await asyncio.gather(
            self.store.list(page, size),
            self.store.count(),
        )

        page_count = max(1, math.ceil(total / size))
        return Listing(rows=rows, page=page, size=size, total=total, page_count=page_count)

    async def export_csv(self, page: RawInt = None, size: RawInt = None) -> str:
        listing = await self.render_listing(page, size, default_size=self.csv_default_size)

        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL)
        writer.writerow(CSV_HEADER)
        for row in listing.rows:
            writer.writerow([row.id, row.last_name, row.booking_number, row.created_at])

        logger.info(f"📤 CSV export: {len(listing.rows)} rows (page {listing.page}, size {listing.size})")
        return buffer.getvalue()

    async def delete_one(self, raw_id: RawInt) -> DeleteResult:
        record_id = parse_record_id(raw_id)
        deleted = await self.store.delete(record_id)
        return DeleteResult(ok=True, deleted=deleted)
