"""
Pytest configuration and fixtures for all tests.
"""

import pytest

from notifier.config import MailRelayConfig, QueueTopology

NOTIFIER_ENV_VARS = (
    "RABBITMQ_URL",
    "QUEUE_NAME",
    "QUEUE_BINDINGS",
    "AMQP_CONNECT_ATTEMPTS",
    "AMQP_CONNECT_RETRY_DELAY_S",
    "SMTP_HOST",
    "SMTP_PORT",
    "SMTP_USERNAME",
    "SMTP_PASSWORD",
    "SMTP_FROM",
    "SMTP_USE_TLS",
    "SMTP_USE_SSL",
    "SMTP_TIMEOUT_S",
    "DEBUG_SHOW_SECRETS",
    "RECIPIENT_EMAIL",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Make sure no notifier setting leaks in from the host environment."""
    for name in NOTIFIER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def mail_config():
    return MailRelayConfig(
        host="smtp.example.com",
        port=587,
        username="alerts@example.com",
        password="supersecret123",
    )


@pytest.fixture
def topology():
    return QueueTopology(queue_name="notifications", binding_keys=("auction.*", "payment.success"))


