import os

import pytest

from models.settings import ConfigError, Settings

BASE_ENV = {"GMS_SCHEDULER__HOUR": "8", "GMS_JWT_SECRET": "secret"}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    # keep a developer's shell and .env out of the picture
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.upper().startswith("GMS_"):
            monkeypatch.delenv(key)


@pytest.fixture
def env(monkeypatch):
    def _set(values):
        for key, value in values.items():
            monkeypatch.setenv(key, value)
    return _set


def test_from_env_defaults(env):
    env(BASE_ENV)
    settings = Settings.from_env()

    assert settings.scheduler.hour == 8
    assert settings.scheduler.minute == 0
    assert settings.scheduler.second == 0
    assert settings.scheduler.timezone is None
    assert settings.scheduler.max_template_index == 7
    assert settings.scheduler.send_timeout_seconds is None
    assert settings.expiry_days == 30
    assert settings.mail_provider == "log"
    assert settings.email_mx_check is False
    assert settings.smtp.port == 587


def test_from_env_reads_every_value(env):
    env({
        **BASE_ENV,
        "GMS_SCHEDULER__MINUTE": "30",
        "GMS_SCHEDULER__SECOND": "15",
        "GMS_SCHEDULER__TIMEZONE": "Europe/Berlin",
        "GMS_SCHEDULER__MAX_TEMPLATE_INDEX": "3",
        "GMS_SCHEDULER__SEND_TIMEOUT_SECONDS": "2.5",
        "GMS_EXPIRY_DAYS": "10",
        "GMS_SCHEDULER_ENABLED": "false",
        "GMS_EMAIL_MX_CHECK": "true",
        "GMS_MAIL_PROVIDER": "SMTP",
        "GMS_SMTP__PORT": "465",
        "GMS_SMTP__USE_TLS": "0",
    })
    settings = Settings.from_env()

    assert (settings.scheduler.minute, settings.scheduler.second) == (30, 15)
    assert settings.scheduler.timezone == "Europe/Berlin"
    assert settings.scheduler.max_template_index == 3
    assert settings.scheduler.send_timeout_seconds == 2.5
    assert settings.expiry_days == 10
    assert settings.scheduler_enabled is False
    assert settings.email_mx_check is True
    assert settings.mail_provider == "smtp"
    assert settings.smtp.port == 465
    assert settings.smtp.use_tls is False


def test_blank_values_count_as_unset(env):
    env({**BASE_ENV, "GMS_DATABASE_PATH": "", "GMS_SCHEDULER__MINUTE": ""})
    settings = Settings.from_env()

    assert settings.database_path == "gms.db"
    assert settings.scheduler.minute == 0


def test_settings_read_dotenv_file(tmp_path):
    (tmp_path / ".env").write_text("GMS_SCHEDULER__HOUR=6\nGMS_JWT_SECRET=from-file\n")

    settings = Settings.from_env()

    assert settings.scheduler.hour == 6
    assert settings.jwt_secret == "from-file"


@pytest.mark.parametrize("values", [
    {"GMS_JWT_SECRET": "secret"},
    {"GMS_SCHEDULER__HOUR": "", "GMS_JWT_SECRET": "secret"},
    {**BASE_ENV, "GMS_SCHEDULER__HOUR": "24"},
    {**BASE_ENV, "GMS_SCHEDULER__MINUTE": "60"},
    {**BASE_ENV, "GMS_SCHEDULER__HOUR": "eight"},
    {**BASE_ENV, "GMS_SCHEDULER__TIMEZONE": "Mars/Olympus_Mons"},
    {**BASE_ENV, "GMS_SCHEDULER__MAX_TEMPLATE_INDEX": "0"},
    {**BASE_ENV, "GMS_MAIL_PROVIDER": "pigeon"},
    {"GMS_SCHEDULER__HOUR": "8"},
])
def test_invalid_configuration_is_fatal(env, values):
    env(values)
    with pytest.raises(ConfigError):
        Settings.from_env()
