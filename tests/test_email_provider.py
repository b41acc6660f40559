import smtplib

import pytest

from ghoste.services.integrations import email as email_module
from ghoste.services.integrations.email import MockEmailProvider, SmtpEmailProvider


class FakeSMTP:
    instances = []

    def __init__(self, host, port):
        self.host, self.port = host, port
        self.tls = False
        self.login_args = None
        self.sent = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.tls = True

    def login(self, user, password):
        self.login_args = (user, password)

    def sendmail(self, sender, to, message):
        self.sent.append((sender, to, message))


class RefusingSMTP(FakeSMTP):
    def sendmail(self, sender, to, message):
        raise smtplib.SMTPRecipientsRefused({to: (550, b"no such user")})


@pytest.fixture(autouse=True)
def reset_fakes():
    FakeSMTP.instances = []


async def test_smtp_sends_over_tls(monkeypatch):
    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    provider = SmtpEmailProvider(host="smtp.example.com", port=2525, user="bot", password="pw")

    sent = await provider.send("artist@example.com", "Your campaign", "Spend is up.", from_email="manager@ghoste.test")

    assert sent is True
    [server] = FakeSMTP.instances
    assert (server.host, server.port, server.tls) == ("smtp.example.com", 2525, True)
    assert server.login_args == ("bot", "pw")
    sender, to, message = server.sent[0]
    assert (sender, to) == ("manager@ghoste.test", "artist@example.com")
    assert "Subject: Your campaign" in message


async def test_smtp_skips_login_without_credentials(monkeypatch):
    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)

    await SmtpEmailProvider(host="smtp.example.com", user="", password="").send("a@example.com", "s", "b")

    assert FakeSMTP.instances[0].login_args is None


async def test_smtp_failure_returns_false(monkeypatch):
    monkeypatch.setattr(smtplib, "SMTP", RefusingSMTP)

    assert await SmtpEmailProvider(host="smtp.example.com").send("a@example.com", "s", "b") is False


def test_factory_picks_provider_from_settings(monkeypatch):
    monkeypatch.setattr(email_module, "_current_provider", None)
    monkeypatch.setattr(email_module.settings, "SMTP_HOST", "smtp.example.com")
    assert isinstance(email_module.get_email_provider(), SmtpEmailProvider)

    monkeypatch.setattr(email_module, "_current_provider", None)
    monkeypatch.setattr(email_module.settings, "SMTP_HOST", "")
    assert isinstance(email_module.get_email_provider(), MockEmailProvider)
