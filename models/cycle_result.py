from pydantic import BaseModel, Field
from typing import Optional, List
from enum import Enum
from datetime import datetime
from uuid import UUID


class SendStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    ERROR = "error"
    SKIPPED_DUPLICATE = "skipped_duplicate"


class CycleStatus(str, Enum):
    COMPLETED = "completed"
    PARTIAL_SUCCESS = "partial_success"
    FAILED = "failed"


class SendResult(BaseModel):
    recipient_id: UUID
    email_address: str
    status: SendStatus
    template_index: Optional[int] = None
    error: Optional[str] = None


class CycleResult(BaseModel):
    run_id: str
    status: CycleStatus = CycleStatus.COMPLETED
    started_at: datetime
    finished_at: Optional[datetime] = None
    send_results: List[SendResult] = Field(default_factory=list)
    expired_count: int = 0
    error_summary: Optional[str] = None

    @property
    def succeeded(self) -> List[SendResult]:
        return [r for r in self.send_results if r.status == SendStatus.SUCCESS]

    @property
    def failed(self) -> List[SendResult]:
        return [r for r in self.send_results if r.status in (SendStatus.FAILED, SendStatus.ERROR)]
