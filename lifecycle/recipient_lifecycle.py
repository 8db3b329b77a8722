import asyncio
import logging
from datetime import datetime, timedelta
from typing import List

from models.recipient import RecipientRecord
from store.recipient_store import RecipientStore
from utils.time_utils import ensure_aware

logger = logging.getLogger("gms_service")


class RecipientLifecycle:
    """
    Drives a recipient through active -> expired_pending -> soft_deleted -> purged.

    "Active" is always re-derived by the store query from the expiry date and
    the flag; nothing here caches a status. Store calls are blocking, so they
    run in a worker thread.
    """

    def __init__(self, store: RecipientStore, expiry_window: timedelta):
        self.store = store
        self.expiry_window = expiry_window

    async def list_active(self, now: datetime) -> List[RecipientRecord]:
        return await asyncio.to_thread(self.store.list_active, ensure_aware(now))

    async def expire(self, now: datetime) -> int:
        """Soft-deletes every record whose expiry has passed. Safe to repeat."""
        count = await asyncio.to_thread(self.store.soft_delete_expired, ensure_aware(now))
        logger.info(f"Expiry sweep at {now.isoformat()} soft-deleted {count} recipient(s)")
        return count

    async def purge(self, threshold: datetime) -> int:
        """Permanently removes records that expired before `threshold`."""
        count = await asyncio.to_thread(self.store.hard_delete_older_than, ensure_aware(threshold))
        logger.info(f"Purge sweep before {threshold.isoformat()} removed {count} recipient(s)")
        return count

    async def enroll(self, email_address: str, now: datetime) -> RecipientRecord:
        """
        Adds a confirmed address to the mailing list.
        An address that is still active keeps its id and gets a fresh expiry,
        so it never ends up with two active records.
        """
        now = ensure_aware(now)
        expiry_date = now + self.expiry_window
        existing = await asyncio.to_thread(self.store.find_active_by_email, email_address, now)
        if existing:
            record = existing.model_copy(update={"expiry_date": expiry_date})
            logger.info(f"Extending recipient {record.id} until {expiry_date.isoformat()}")
        else:
            record = RecipientRecord(email_address=email_address, expiry_date=expiry_date, created_on=now)
            logger.info(f"Enrolling new recipient {record.id} until {expiry_date.isoformat()}")
        await asyncio.to_thread(self.store.upsert_recipient, record)
        return record
