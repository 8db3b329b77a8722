from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from utils.time_utils import ensure_aware, utcnow


class RecipientState(str, Enum):
    ACTIVE = "active"
    EXPIRED_PENDING = "expired_pending"
    SOFT_DELETED = "soft_deleted"
    PURGED = "purged"


class RecipientRecord(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    email_address: str
    expiry_date: datetime
    created_on: datetime = Field(default_factory=utcnow)
    is_deleted: bool = False

    @field_validator("email_address")
    @classmethod
    def _normalise_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("expiry_date", "created_on")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    def is_active(self, now: datetime) -> bool:
        return not self.is_deleted and self.expiry_date > ensure_aware(now)

    def state_at(self, now: datetime) -> RecipientState:
        """
        Derives the lifecycle state from the flag and the timestamps.
        Purged records no longer exist, so they never reach this method.
        """
        if self.is_deleted:
            return RecipientState.SOFT_DELETED
        if self.expiry_date > ensure_aware(now):
            return RecipientState.ACTIVE
        return RecipientState.EXPIRED_PENDING
