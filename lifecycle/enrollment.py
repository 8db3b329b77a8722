import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional

from auth.tokens import confirmation_url, create_token, verify_token
from executor.template_selector import TemplateSelector
from models.recipient import RecipientRecord
from senders.base_sender import BaseSender
from utils.email_validator_lite import normalise_email, validate_email
from utils.time_utils import utcnow

from .recipient_lifecycle import RecipientLifecycle

logger = logging.getLogger("gms_service")

CONFIRMATION_SUBJECT = "Rise & Shine: Your Good Morning Sunshine Link Inside!"


class InvalidEmailError(ValueError):
    pass


class ConfirmationNotSentError(Exception):
    pass


class EnrollmentService:
    """
    Token-gated signup. request_confirmation() mails a signed link,
    confirm() checks the token and puts the address on the mailing list.
    """

    def __init__(
        self,
        lifecycle: RecipientLifecycle,
        sender: BaseSender,
        template_selector: TemplateSelector,
        secret: str,
        token_ttl: timedelta,
        mail_page_url: str,
        mx_check: bool = False,
    ):
        self.lifecycle = lifecycle
        self.sender = sender
        self.template_selector = template_selector
        self.secret = secret
        self.token_ttl = token_ttl
        self.mail_page_url = mail_page_url
        self.mx_check = mx_check

    async def request_confirmation(self, email_address: str, now: Optional[datetime] = None) -> str:
        """Sends the confirmation link and returns it."""
        email_address = normalise_email(email_address)
        # the MX lookup blocks on DNS
        if not await asyncio.to_thread(validate_email, email_address, not self.mx_check):
            raise InvalidEmailError(f"Invalid email address: {email_address}")

        token = create_token(email_address, self.secret, self.token_ttl, now=now)
        link = confirmation_url(self.mail_page_url, token)
        body = self.template_selector.render("confirmation.html.j2", {"link": link})

        sent = await self.sender.send(
            to_email=email_address,
            subject=CONFIRMATION_SUBJECT,
            html_body=body,
        )
        if not sent:
            raise ConfirmationNotSentError(f"Could not send confirmation mail to {email_address}")

        logger.info(f"Confirmation link sent to {email_address}")
        return link

    async def confirm(self, token: str, now: Optional[datetime] = None) -> RecipientRecord:
        """Raises TokenError for a bad token. Store errors propagate to the caller."""
        email_address = verify_token(token, self.secret)
        return await self.lifecycle.enroll(email_address, now or utcnow())
