from models.settings import Settings
from senders.base_sender import BaseSender
from senders.smtp_sender import SMTPSender
from senders.mock_senders import LogSender


class SenderBuilder:

    @staticmethod
    def validate_config(settings: Settings):
        """Validates the sender configuration. Raises ValueError if invalid."""
        if settings.mail_provider == "smtp":
            smtp = settings.smtp
            missing = [f for f in ["host", "username", "password"] if not getattr(smtp, f)]
            if missing:
                raise ValueError(f"SMTP requires: {missing}")

    @staticmethod
    def build(settings: Settings) -> BaseSender:
        SenderBuilder.validate_config(settings)

        if settings.mail_provider == "smtp":
            return SMTPSender(settings.smtp.model_dump())
        return LogSender()
