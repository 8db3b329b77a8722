from .base_sender import BaseSender
from typing import Dict, Any, List
import logging

logger = logging.getLogger("gms_service")


class LogSender(BaseSender):
    """Writes messages to the log instead of delivering them. Used for dry runs and local development."""

    def __init__(self, config: Dict[str, Any] = None):
        self.config = config or {}
        self.sent: List[Dict[str, str]] = []

    async def send(self, to_email, subject, html_body, text_body=None) -> bool:
        logger.info("[LOG] Sending email...")
        logger.info(f"   To: {to_email}")
        logger.info(f"   Subject: {subject}")
        logger.debug(f"   Body: {html_body}")
        self.sent.append({"to_email": to_email, "subject": subject, "html_body": html_body})
        return True
