from typing import List
from pydantic import BaseModel

from novadesk.models.db_models import BookingRecord

# --- Admin Query Service results ---

class Listing(BaseModel):
    rows: List[BookingRecord]
    page: int
    size: int
    total: int
    page_count: int

class DeleteResult(BaseModel):
    ok: bool = True
    deleted: int

# --- Outgoing JSON bodies ---

class ListingResponse(BaseModel):
    page: int
    size: int
    total: int
    pages: int
    data: List[BookingRecord]

    @classmethod
    def from_listing(cls, listing: Listing) -> "ListingResponse":
        return cls(
            page=listing.page,
            size=listing.size,
            total=listing.total,
            pages=listing.page_count,
            data=listing.rows,
        )

class ErrorResponse(BaseModel):
    ok: bool = False
    error: str
