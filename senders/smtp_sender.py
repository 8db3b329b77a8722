import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Dict, Any
import logging
import asyncio
from .base_sender import BaseSender

logger = logging.getLogger("gms_service")


class SMTPSender(BaseSender):
    def __init__(self, config: Dict[str, Any]):
        self.host = config.get("host")
        self.port = config.get("port", 587)
        self.username = config.get("username")
        self.password = config.get("password")
        self.use_tls = config.get("use_tls", True)
        self.from_email = config.get("from_email") or self.username
        self.timeout = config.get("timeout", 30)

    async def send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str = None
    ) -> bool:
        # smtplib blocks, keep it off the event loop
        return await asyncio.to_thread(
            self._send_sync,
            to_email,
            subject,
            html_body,
            text_body
        )

    def _send_sync(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str = None
    ) -> bool:
        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject

            # A trailing space in an address can make Gmail drop the message silently.
            clean_from_email = self.from_email.strip() if self.from_email else ""
            clean_to_email = to_email.strip() if to_email else ""

            msg["From"] = clean_from_email
            msg["To"] = clean_to_email

            if text_body:
                msg.attach(MIMEText(text_body, "plain"))
            if html_body:
                msg.attach(MIMEText(html_body, "html"))

            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.username:
                    server.login(self.username, self.password)
                server.sendmail(clean_from_email, [clean_to_email], msg.as_string())

            logger.info(f"SMTP email sent to {clean_to_email}")
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP send failed to {to_email}: {e}")
            return False
