from datetime import datetime
from typing import Optional

from novadesk.core.exceptions import StorageError
from novadesk.core.logger import logger
from novadesk.models.db_models import BookingRecord
from novadesk.services import intake_parser
from novadesk.services.db_service import RecordStore

REGISTER_FAILED = "⚠️ Error al registrar. Inténtalo otra vez."
QUERY_FAILED = "⚠️ Error al consultar."
NO_RECORDS = "Aún no hay reservas registradas."


def format_confirmation(record: BookingRecord) -> str:
    return (
        "✅ *Pre check-in registrado*\n"
        f"Apellido: *{record.last_name}*\n"
        f"Reserva: *{record.booking_number}*\n"
        f"ID: *{record.id}*"
    )


def format_created_at(created_at: str) -> str:
    """UTC ISO text -> server local time, falls back to the raw value."""
    try:
        dt = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
    except ValueError:
        return created_at
    return dt.astimezone().strftime("%d/%m/%Y %H:%M:%S")


class CheckinService:
    """
    Chat-side pre-check-in flow: parse the guest's message, store it, answer.
    Replies are plain strings, the transport decides how to send them.
    """

    def __init__(self, store: RecordStore):
        self.store = store

    async def register(self, text: Optional[str]) -> Optional[str]:
        """
        Returns the reply for a guest message, or None when the message is not
        a pre-check-in and should be ignored.
        """
        draft = intake_parser.parse(text)
        if draft is None:
            return None

        logger.info(f"📥 Pre check-in request for booking {draft.booking_number}")
        try:
            record = await self.store.insert(draft.last_name, draft.booking_number)
        except StorageError as e:
            logger.error(f"❌ Error insertReserva: {e}")
            return REGISTER_FAILED

        return format_confirmation(record)

    async def latest_summary(self, limit: int = 5) -> str:
        try:
            rows = await self.store.latest(limit)
        except StorageError as e:
            logger.error(f"❌ Error /ultimas: {e}")
            return QUERY_FAILED

        if not rows:
            return NO_RECORDS

        return "\n".join(
            f"#{r.id} — {r.last_name} / {r.booking_number} · {format_created_at(r.created_at)}"
            for r in rows
        )
