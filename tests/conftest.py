import pytest
from datetime import datetime, timedelta, timezone
from fastapi.testclient import TestClient

from app import create_app
from lifecycle.recipient_lifecycle import RecipientLifecycle
from models.recipient import RecipientRecord
from models.settings import SchedulerConfig, Settings
from service_factory import ServiceFactory
from store.recipient_store import RecipientStore

NOW = datetime(2026, 3, 10, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def settings(tmp_path):
    return Settings(
        scheduler=SchedulerConfig(hour=8, max_template_index=7),
        database_path=str(tmp_path / "gms.db"),
        jwt_secret="test-secret",
        scheduler_enabled=False,
        mail_provider="log",
        mail_page_url="http://testserver/auth/gms",
    )


@pytest.fixture
def store(settings):
    store = RecipientStore(settings.database_path)
    store.create_table()
    return store


@pytest.fixture
def lifecycle(store):
    return RecipientLifecycle(store, timedelta(days=30))


@pytest.fixture
def make_record():
    def _make(email="sun@example.com", expires_in=timedelta(days=5), is_deleted=False, **kwargs):
        return RecipientRecord(
            email_address=email,
            expiry_date=NOW + expires_in,
            created_on=NOW - timedelta(days=1),
            is_deleted=is_deleted,
            **kwargs
        )
    return _make


@pytest.fixture
def services(settings):
    return ServiceFactory(settings)


@pytest.fixture
def client(services):
    with TestClient(create_app(services)) as c:
        yield c
