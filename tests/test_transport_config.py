"""Tests for TransportConfig construction and derived transport options."""

import dataclasses
import ssl

import pytest

from mail_dispatch.errors import ConfigurationError
from mail_dispatch.models import ConnectionMode
from mail_dispatch.transport_config import (
    DEFAULT_FROM,
    MOCK_SERVER_NAME,
    TransportConfig,
    default_port,
    parse_connection_mode,
)


def test_defaults_select_mock_mode():
    config = TransportConfig.from_settings({})

    assert config.host == MOCK_SERVER_NAME
    assert config.use_mock is True
    assert config.connection is ConnectionMode.NO_AUTH
    assert config.port == 25
    assert config.default_from == DEFAULT_FROM
    assert config.default_from_name is None
    assert config.username is None
    assert config.password is None
    assert config.debug is False
    assert config.quit_wait is False


def test_real_host_disables_mock():
    config = TransportConfig.from_settings({"mail.smtp.host": "smtp.example.com"})
    assert config.use_mock is False


@pytest.mark.parametrize("connection,smtps,expected", [
    ("NO_AUTH", "false", 25),
    ("TLS", "false", 25),
    ("SSL", "false", 465),
    ("NO_AUTH", "true", 465),
])
def test_default_port_depends_on_connection(connection, smtps, expected):
    config = TransportConfig.from_settings({
        "mail.smtp.host": "smtp.example.com",
        "mail.smtp.connection": connection,
        "mail.smtps": smtps,
    })
    assert config.port == expected
    assert default_port(ConnectionMode(connection), smtps == "true") == expected


def test_explicit_port_wins():
    config = TransportConfig.from_settings({"mail.smtp.connection": "SSL", "mail.smtp.port": "2465"})
    assert config.port == 2465


def test_full_settings():
    config = TransportConfig.from_settings({
        "mail.smtp.connection": "tls",
        "mail.smtp.host": "smtp.example.com",
        "mail.smtp.port": "587",
        "mail.smtp.from": "noreply@example.com",
        "mail.smtp.from.name": "Example",
        "mail.smtp.username": "mailer",
        "mail.smtp.password": "secret",
        "mail.smtp.debug": "true",
        "mail.smtp.quitwait": "yes",
    })

    assert config.connection is ConnectionMode.TLS
    assert config.port == 587
    assert config.default_from == "noreply@example.com"
    assert config.default_from_name == "Example"
    assert config.username == "mailer"
    assert config.password == "secret"
    assert config.debug is True
    assert config.quit_wait is True
    assert "secret" not in repr(config)


def test_unknown_connection_mode():
    with pytest.raises(ConfigurationError) as excinfo:
        TransportConfig.from_settings({"mail.smtp.connection": "STARTTLS"})
    assert excinfo.value.key == "mail.smtp.connection"
    assert "NO_AUTH" in str(excinfo.value)


def test_parse_connection_mode_accepts_enum_and_text():
    assert parse_connection_mode(ConnectionMode.SSL) is ConnectionMode.SSL
    assert parse_connection_mode(" ssl ") is ConnectionMode.SSL


class TestTransportOptions:
    def test_no_auth(self):
        options = TransportConfig(connection=ConnectionMode.NO_AUTH).options
        assert options.auth is False
        assert options.start_tls is False
        assert options.use_tls is False
        assert options.tls_context is None
        assert options.bind_credentials is False

    def test_tls_uses_opportunistic_starttls(self):
        options = TransportConfig(connection=ConnectionMode.TLS).options
        assert options.auth is True
        assert options.start_tls is None
        assert options.use_tls is False
        assert options.bind_credentials is False

    def test_ssl_uses_implicit_tls_with_bound_credentials(self):
        options = TransportConfig(connection=ConnectionMode.SSL).options
        assert options.auth is True
        assert options.start_tls is False
        assert options.use_tls is True
        assert isinstance(options.tls_context, ssl.SSLContext)
        assert options.bind_credentials is True

    def test_smtps_flag_forces_implicit_tls(self):
        options = TransportConfig(connection=ConnectionMode.TLS, use_smtps=True).options
        assert options.use_tls is True
        assert options.start_tls is False

    def test_string_connection_is_normalized(self):
        config = TransportConfig(connection="SSL")
        assert config.connection is ConnectionMode.SSL
        assert config.options.use_tls is True

    def test_replace_recomputes_options(self):
        config = TransportConfig(connection=ConnectionMode.NO_AUTH)
        replaced = dataclasses.replace(config, connection=ConnectionMode.SSL)
        assert replaced.options.use_tls is True
        assert config.options.use_tls is False


class TestAsProperties:
    def test_no_auth(self):
        props = TransportConfig(host="smtp.example.com", port=25).as_properties()
        assert props == {
            "mail.smtp.host": "smtp.example.com",
            "mail.smtp.port": "25",
            "mail.smtps.quitwait": "false",
            "mail.smtp.auth": "false",
        }

    def test_tls(self):
        props = TransportConfig(connection=ConnectionMode.TLS).as_properties()
        assert props["mail.smtp.auth"] == "true"
        assert props["mail.smtp.starttls.enable"] == "true"
        assert "mail.smtp.socketFactory.class" not in props

    def test_ssl(self):
        props = TransportConfig(connection=ConnectionMode.SSL, port=465, password="secret").as_properties()
        assert props["mail.smtp.auth"] == "true"
        assert props["mail.smtp.socketFactory.port"] == "465"
        assert props["mail.smtp.socketFactory.class"] == "ssl.SSLContext"
        assert "secret" not in props.values()
