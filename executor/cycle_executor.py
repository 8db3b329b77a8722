import logging
import traceback
import asyncio
import random
from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from lifecycle.recipient_lifecycle import RecipientLifecycle
from models.cycle_result import CycleResult, CycleStatus, SendResult, SendStatus
from models.recipient import RecipientRecord
from senders.base_sender import BaseSender
from utils.result_writer import ResultWriter
from utils.time_utils import utcnow

from .template_selector import TemplateSelector

logger = logging.getLogger("gms_service")

SUBJECT = "This is Your Message of the Day from team Good Morning Sunshine"


class CycleExecutor:
    """
    One daily send cycle: fetch active recipients, send each a greeting,
    then run the expiry sweep once for the whole batch.

    Failures are contained at the smallest scope they occur in. A failed
    send is recorded on that recipient's SendResult, a failed fetch aborts
    only this cycle, and a failed sweep is recorded on the CycleResult.
    """

    def __init__(
        self,
        lifecycle: RecipientLifecycle,
        sender: BaseSender,
        template_selector: TemplateSelector,
        max_template_index: int,
        concurrency: int = 5,
        send_timeout_seconds: Optional[float] = None,
        result_writer: Optional[ResultWriter] = None,
        rng: Optional[random.Random] = None,
    ):
        if max_template_index < 1:
            raise ValueError("max_template_index must be at least 1")
        if max_template_index > template_selector.pool_size:
            raise ValueError(
                f"max_template_index {max_template_index} exceeds the "
                f"{template_selector.pool_size} available templates"
            )
        self.lifecycle = lifecycle
        self.sender = sender
        self.template_selector = template_selector
        self.max_template_index = max_template_index
        self.concurrency = concurrency
        self.send_timeout_seconds = send_timeout_seconds
        self.result_writer = result_writer
        self.rng = rng or random.Random()

    async def run_cycle(self, now: datetime = None) -> CycleResult:
        now = now or utcnow()
        run_id = str(uuid4())
        result = CycleResult(run_id=run_id, started_at=utcnow())

        logger.info("=" * 80)
        logger.info(f"GMS CYCLE STARTING [RunID: {run_id}] at {now.isoformat()}")
        logger.info("=" * 80)

        # 1. Fetch active recipients
        try:
            recipients = await self.lifecycle.list_active(now)
        except Exception as e:
            logger.error(f"Fetching active recipients failed, skipping this cycle: {e}")
            logger.error(traceback.format_exc())
            result.status = CycleStatus.FAILED
            result.error_summary = f"Active recipient fetch failed: {e}"
            return self._finish(result)

        logger.info(f"Resolved {len(recipients)} active recipient(s)")

        # 2. Send to every recipient, all sends finish before the sweep
        result.send_results = await self.send_batch(recipients)

        # 3. Expire stale recipients
        try:
            result.expired_count = await self.lifecycle.expire(now)
        except Exception as e:
            logger.error(f"Expiry sweep failed: {e}")
            result.error_summary = f"Expiry sweep failed: {e}"

        if result.error_summary or result.failed:
            result.status = CycleStatus.PARTIAL_SUCCESS
        return self._finish(result)

    async def send_batch(self, recipients: List[RecipientRecord]) -> List[SendResult]:
        """Sends to each recipient with bounded concurrency. Never raises for a single recipient."""
        semaphore = asyncio.Semaphore(self.concurrency)
        seen = set()
        results: List[SendResult] = []
        tasks = []

        for recipient in recipients:
            if recipient.email_address in seen:
                logger.warning(f"Skipping duplicate address {recipient.email_address} for recipient {recipient.id}")
                results.append(SendResult(
                    recipient_id=recipient.id,
                    email_address=recipient.email_address,
                    status=SendStatus.SKIPPED_DUPLICATE,
                ))
                continue
            seen.add(recipient.email_address)
            tasks.append(self._send_one(recipient, semaphore))

        if tasks:
            results.extend(await asyncio.gather(*tasks))
        return results

    async def _send_one(self, recipient: RecipientRecord, semaphore: asyncio.Semaphore) -> SendResult:
        template_index = self.rng.randrange(self.max_template_index)
        async with semaphore:
            try:
                html_body = self.template_selector.select_template(template_index)
                send = self.sender.send(
                    to_email=recipient.email_address,
                    subject=SUBJECT,
                    html_body=html_body,
                )
                if self.send_timeout_seconds:
                    sent = await asyncio.wait_for(send, timeout=self.send_timeout_seconds)
                else:
                    sent = await send

                if sent:
                    return SendResult(
                        recipient_id=recipient.id,
                        email_address=recipient.email_address,
                        template_index=template_index,
                        status=SendStatus.SUCCESS,
                    )
                logger.error(f"Failed to send greeting to {recipient.email_address}")
                return SendResult(
                    recipient_id=recipient.id,
                    email_address=recipient.email_address,
                    template_index=template_index,
                    status=SendStatus.FAILED,
                )

            except asyncio.TimeoutError:
                logger.error(f"Send to {recipient.email_address} timed out after {self.send_timeout_seconds}s")
                return SendResult(
                    recipient_id=recipient.id,
                    email_address=recipient.email_address,
                    template_index=template_index,
                    status=SendStatus.ERROR,
                    error="send timed out",
                )
            except Exception as e:
                logger.error(f"Error sending to {recipient.email_address}: {e}")
                return SendResult(
                    recipient_id=recipient.id,
                    email_address=recipient.email_address,
                    template_index=template_index,
                    status=SendStatus.ERROR,
                    error=str(e),
                )

    def _finish(self, result: CycleResult) -> CycleResult:
        result.finished_at = utcnow()

        logger.info("=" * 80)
        logger.info(f"GMS CYCLE {result.status.value.upper()} [RunID: {result.run_id}]")
        logger.info(f"   Sent: {len(result.succeeded)}")
        logger.info(f"   Failed: {len(result.failed)}")
        logger.info(f"   Expired: {result.expired_count}")
        if result.error_summary:
            logger.info(f"   Error: {result.error_summary}")
        logger.info("=" * 80)

        if self.result_writer:
            self.result_writer.save_result(result.run_id, result.model_dump(mode="json"))
        return result
