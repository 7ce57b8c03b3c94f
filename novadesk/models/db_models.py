from pydantic import BaseModel, Field

class BookingDraft(BaseModel):
    """A parsed pre-check-in message that has not been stored yet."""
    last_name: str = Field(min_length=1)
    booking_number: str = Field(min_length=4)

class BookingRecord(BookingDraft):
    id: int = Field(gt=0)
    created_at: str  # UTC ISO 8601, e.g. 2025-03-01T10:15:02.123Z
