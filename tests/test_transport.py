"""Tests for scoped SMTP transport acquisition."""

import ssl

import aiosmtplib
import pytest

from mail_dispatch.models import ConnectionMode
from mail_dispatch.transport import create_client, open_transport, release
from mail_dispatch.transport_config import TransportConfig


def make_config(**kwargs):
    kwargs.setdefault("host", "smtp.example.com")
    kwargs.setdefault("use_mock", False)
    return TransportConfig(**kwargs)


@pytest.mark.asyncio
async def test_no_auth_connects_without_login(smtp_clients):
    config = make_config(port=25, username="user", password="pass")

    async with open_transport(config) as smtp:
        assert smtp.is_connected is True

    assert smtp.hostname == "smtp.example.com"
    assert smtp.port == 25
    assert smtp.use_tls is False
    assert smtp.start_tls is False
    assert smtp.login_credentials is None
    assert smtp.bound_credentials == (None, None)
    assert smtp.closed is True


@pytest.mark.asyncio
async def test_tls_logs_in_explicitly(smtp_clients):
    config = make_config(connection=ConnectionMode.TLS, port=587, username="user", password="pass")

    async with open_transport(config) as smtp:
        assert smtp.login_credentials == ("user", "pass")

    assert smtp.start_tls is None
    assert smtp.use_tls is False
    assert smtp.bound_credentials == (None, None)


@pytest.mark.asyncio
async def test_tls_without_username_skips_login(smtp_clients):
    async with open_transport(make_config(connection=ConnectionMode.TLS)) as smtp:
        pass
    assert smtp.login_credentials is None


@pytest.mark.asyncio
async def test_ssl_binds_credentials_and_uses_implicit_tls(smtp_clients):
    config = make_config(connection=ConnectionMode.SSL, port=465, username="user", password="pass")

    async with open_transport(config) as smtp:
        pass

    assert smtp.use_tls is True
    assert smtp.start_tls is False
    assert isinstance(smtp.tls_context, ssl.SSLContext)
    assert smtp.tls_context is config.options.tls_context
    assert smtp.bound_credentials == ("user", "pass")
    assert smtp.login_credentials is None


@pytest.mark.asyncio
async def test_transport_closed_when_block_raises(smtp_clients):
    with pytest.raises(RuntimeError):
        async with open_transport(make_config()) as smtp:
            raise RuntimeError("boom")
    assert smtp.closed is True


@pytest.mark.asyncio
async def test_transport_closed_when_login_fails(smtp_clients):
    def failing_login(smtp):
        smtp.login_error = aiosmtplib.SMTPAuthenticationError(535, "Authentication failed")

    smtp_clients.configure = failing_login
    config = make_config(connection=ConnectionMode.TLS, username="user", password="wrong")

    with pytest.raises(aiosmtplib.SMTPAuthenticationError):
        async with open_transport(config):
            pass

    assert smtp_clients[0].closed is True


@pytest.mark.asyncio
async def test_transport_closed_when_connect_fails(smtp_clients):
    def refuse(smtp):
        smtp.connect_error = ConnectionRefusedError("refused")

    smtp_clients.configure = refuse

    with pytest.raises(ConnectionRefusedError):
        async with open_transport(make_config()):
            pass

    assert smtp_clients[0].closed is True


@pytest.mark.asyncio
async def test_close_failure_is_logged_not_raised(smtp_clients, caplog):
    def broken_close(smtp):
        smtp.close_error = OSError("socket already gone")

    smtp_clients.configure = broken_close

    with caplog.at_level("WARNING"):
        async with open_transport(make_config()):
            pass

    assert "Failed to close SMTP connection to smtp.example.com:25" in caplog.text


@pytest.mark.asyncio
async def test_close_failure_does_not_mask_original_error(smtp_clients):
    def broken(smtp):
        smtp.close_error = OSError("socket already gone")

    smtp_clients.configure = broken

    with pytest.raises(ValueError, match="original"):
        async with open_transport(make_config()):
            raise ValueError("original")


@pytest.mark.asyncio
async def test_quit_wait_sends_quit(smtp_clients):
    async with open_transport(make_config(quit_wait=True)) as smtp:
        pass
    assert smtp.quit_called is True
    assert smtp.closed is True


@pytest.mark.asyncio
async def test_release_without_quit_wait_drops_connection(smtp_clients):
    config = make_config()
    smtp = create_client(config)
    await smtp.connect()

    await release(smtp, config)

    assert smtp.quit_called is False
    assert smtp.closed is True


@pytest.mark.asyncio
async def test_debug_traces_connection(smtp_clients, caplog):
    with caplog.at_level("INFO", logger="MailTransport"):
        async with open_transport(make_config(debug=True, port=2525)):
            pass
    assert "[smtp-debug] Connecting to smtp.example.com:2525" in caplog.text


@pytest.mark.asyncio
async def test_no_trace_without_debug(smtp_clients, caplog):
    with caplog.at_level("INFO", logger="MailTransport"):
        async with open_transport(make_config()):
            pass
    assert "[smtp-debug]" not in caplog.text
