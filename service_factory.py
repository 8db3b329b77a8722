import logging
from datetime import timedelta

from executor.cycle_executor import CycleExecutor
from executor.sender_builder import SenderBuilder
from executor.template_selector import TemplateSelector
from lifecycle.enrollment import EnrollmentService
from lifecycle.recipient_lifecycle import RecipientLifecycle
from models.settings import ConfigError, Settings
from scheduler.daily_scheduler import DailyScheduler
from store.recipient_store import RecipientStore
from utils.result_writer import ResultWriter

logger = logging.getLogger("gms_service")


class ServiceFactory:
    """Wires the store, lifecycle, sender, templates, cycle and scheduler from one Settings."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.store = RecipientStore(settings.database_path)
        self.lifecycle = RecipientLifecycle(self.store, timedelta(days=settings.expiry_days))
        self.template_selector = TemplateSelector()

        try:
            self.sender = SenderBuilder.build(settings)
            self.cycle_executor = CycleExecutor(
                lifecycle=self.lifecycle,
                sender=self.sender,
                template_selector=self.template_selector,
                max_template_index=settings.scheduler.max_template_index,
                concurrency=settings.scheduler.send_concurrency,
                send_timeout_seconds=settings.scheduler.send_timeout_seconds,
                result_writer=ResultWriter(settings.results_dir) if settings.results_dir else None,
            )
        except ValueError as e:
            raise ConfigError(str(e)) from e

        self.enrollment = EnrollmentService(
            lifecycle=self.lifecycle,
            sender=self.sender,
            template_selector=self.template_selector,
            secret=settings.jwt_secret,
            token_ttl=timedelta(minutes=settings.jwt_ttl_minutes),
            mail_page_url=settings.mail_page_url,
            mx_check=settings.email_mx_check,
        )
        logger.info(f"Services ready (provider={settings.mail_provider}, db={settings.database_path})")

    def build_scheduler(self) -> DailyScheduler:
        return DailyScheduler(self.settings.scheduler, self.cycle_executor.run_cycle)
