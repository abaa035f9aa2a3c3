import pytest


class DummySMTP:
    """Stand-in for ``aiosmtplib.SMTP`` recording what the transport does."""

    def __init__(self, hostname=None, port=None, use_tls=False, start_tls=None,
                 tls_context=None, username=None, password=None, timeout=None):
        self.hostname = hostname
        self.port = port
        self.use_tls = use_tls
        self.start_tls = start_tls
        self.tls_context = tls_context
        self.bound_credentials = (username, password)
        self.login_credentials = None
        self.is_connected = False
        self.closed = False
        self.quit_called = False
        self.sent = []
        self.connect_error = None
        self.login_error = None
        self.send_error = None
        self.close_error = None
        self.send_result = ({}, "250 OK")

    async def connect(self):
        if self.connect_error is not None:
            raise self.connect_error
        self.is_connected = True

    async def login(self, user, password):
        if self.login_error is not None:
            raise self.login_error
        self.login_credentials = (user, password)

    async def send_message(self, message, sender=None, recipients=None):
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((message, sender, recipients))
        return self.send_result

    async def quit(self):
        self.quit_called = True
        if self.close_error is not None:
            raise self.close_error
        self.is_connected = False
        self.closed = True

    def close(self):
        if self.close_error is not None:
            raise self.close_error
        self.is_connected = False
        self.closed = True


@pytest.fixture
def smtp_clients(monkeypatch):
    """Replace aiosmtplib.SMTP in the transport module; yields created clients.

    Assign ``smtp_clients.configure`` to a callable to tweak each new client.
    """

    class Created(list):
        configure = None

    created = Created()

    def factory(**kwargs):
        smtp = DummySMTP(**kwargs)
        if created.configure is not None:
            created.configure(smtp)
        created.append(smtp)
        return smtp

    monkeypatch.setattr("mail_dispatch.transport.aiosmtplib.SMTP", factory)
    return created
