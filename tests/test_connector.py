"""Tests for SftpConnector."""

import logging
from unittest.mock import MagicMock, call

import paramiko
import pytest

from remote_sftp.core.client import Channel, HostKey
from remote_sftp.core.constants import (
    PREFERRED_AUTHENTICATIONS,
    SERVER_HOST_KEY,
    STRICT_HOST_KEY_CHECKING,
)
from remote_sftp.core.exceptions import ErrorKind, MalformedKnownHostError, SftpTransfersError
from remote_sftp.domain.sftp import Connected, Disconnected, SftpConnector
from remote_sftp.domain.sftp.connector import MISSING_CREDENTIALS, SFTP_NOT_CONNECTED


def _set_config_keys(session):
    return [c.args[0] for c in session.set_config.call_args_list]


# --- Construction ---


class TestConstruction:
    def test_requires_config(self):
        with pytest.raises(ValueError):
            SftpConnector(None)

    def test_starts_disconnected(self, connector):
        assert isinstance(connector.state, Disconnected)
        assert not connector.is_connected

    def test_setup_and_open_connection(self, sftp_config, transport, channel):
        connector = SftpConnector.setup_and_open_connection(sftp_config, transport)
        assert connector.is_connected
        assert connector.state == Connected(session=transport.get_session.return_value, channel=channel)


# --- connect() ---


class TestConnect:
    def test_applies_settings_in_order(self, connector, transport, session, channel):
        connector.connect()

        transport.set_known_hosts.assert_called_once_with("/home/test/.ssh/known_hosts")
        transport.get_session.assert_called_once_with("test", "localhost", 22)
        session.set_timeout.assert_called_once_with(5.0)
        session.set_config.assert_any_call(PREFERRED_AUTHENTICATIONS, "publickey,password")
        session.set_password.assert_called_once_with("secret")
        session.connect.assert_called_once_with(5.0)
        session.open_channel.assert_called_once_with("sftp")
        channel.connect.assert_called_once_with(5.0)
        assert connector.is_connected

    def test_private_key_preferred_over_password(self, sftp_config, transport, session):
        sftp_config.private_key_file_path = "/home/test/.ssh/id_ed25519"
        SftpConnector(sftp_config, transport).connect()

        transport.add_identity.assert_called_once_with("/home/test/.ssh/id_ed25519")
        session.set_password.assert_not_called()

    def test_missing_credentials(self, sftp_config, transport, session):
        sftp_config.password = None
        connector = SftpConnector(sftp_config, transport)

        with pytest.raises(SftpTransfersError, match=MISSING_CREDENTIALS) as exc_info:
            connector.connect()

        assert exc_info.value.kind == ErrorKind.CONFIGURATION
        session.connect.assert_not_called()
        assert not connector.is_connected

    def test_detected_key_exchange_type(self, connector, transport, session):
        transport.get_host_keys.return_value = [
            HostKey("other.test", "ssh-ed25519"),
            HostKey("localhost,127.0.0.1", "ecdsa-sha2-nistp256"),
        ]
        connector.connect()
        session.set_config.assert_any_call(SERVER_HOST_KEY, "ecdsa-sha2-nistp256")

    def test_configured_key_exchange_type_wins(self, sftp_config, transport, session):
        sftp_config.key_exchange_type = "ssh-rsa"
        transport.get_host_keys.return_value = [HostKey("localhost", "ssh-ed25519")]

        SftpConnector(sftp_config, transport).connect()

        session.set_config.assert_any_call(SERVER_HOST_KEY, "ssh-rsa")
        transport.get_host_keys.assert_not_called()

    def test_no_key_exchange_type_when_host_unknown(self, connector, session):
        connector.connect()
        assert SERVER_HOST_KEY not in _set_config_keys(session)

    def test_malformed_known_host_propagates(self, connector, transport, session):
        transport.get_host_keys.return_value = [HostKey("localhost,", "ssh-rsa")]
        with pytest.raises(MalformedKnownHostError):
            connector.connect()
        session.connect.assert_not_called()

    def test_strict_host_checking_kept_by_default(self, connector, session):
        connector.connect()
        assert STRICT_HOST_KEY_CHECKING not in _set_config_keys(session)

    def test_strict_host_checking_disabled_with_warning(self, sftp_config, transport, session, caplog):
        sftp_config.disable_strict_host_checking = True

        with caplog.at_level(logging.WARNING, logger="remote_sftp.domain.sftp.connector"):
            SftpConnector(sftp_config, transport).connect()

        session.set_config.assert_any_call(STRICT_HOST_KEY_CHECKING, "no")
        assert "Disabling strict host checking" in caplog.text

    def test_session_failure_wrapped(self, connector, session):
        cause = paramiko.AuthenticationException("Authentication failed.")
        session.connect.side_effect = cause

        with pytest.raises(SftpTransfersError, match="Error occurred connecting to localhost") as exc_info:
            connector.connect()

        assert exc_info.value.kind == ErrorKind.CONNECTION
        assert exc_info.value.__cause__ is cause
        session.disconnect.assert_called_once()
        assert isinstance(connector.state, Disconnected)

    def test_channel_failure_releases_handles(self, connector, session, channel):
        channel.connect.side_effect = OSError("Connection reset by peer")

        with pytest.raises(SftpTransfersError) as exc_info:
            connector.connect()

        assert exc_info.value.kind == ErrorKind.CONNECTION
        assert isinstance(exc_info.value.__cause__, OSError)
        channel.disconnect.assert_called_once()
        session.disconnect.assert_called_once()
        assert not connector.is_connected

    def test_unreadable_known_hosts_wrapped(self, connector, transport):
        transport.set_known_hosts.side_effect = FileNotFoundError("known_hosts")
        with pytest.raises(SftpTransfersError) as exc_info:
            connector.connect()
        assert exc_info.value.kind == ErrorKind.CONNECTION

    def test_unexpected_channel_kind(self, connector, session):
        session.open_channel.return_value = MagicMock(spec=Channel)

        with pytest.raises(SftpTransfersError, match="localhost") as exc_info:
            connector.connect()

        assert exc_info.value.kind == ErrorKind.CONNECTION
        assert not connector.is_connected

    def test_connect_when_connected_is_noop(self, connected_connector, transport):
        connected_connector.connect()
        transport.get_session.assert_called_once()

    def test_reconnects_after_channel_dropped(self, connected_connector, transport, session, channel):
        channel.is_connected.return_value = False
        connected_connector.connect()

        assert transport.get_session.call_count == 2
        channel.disconnect.assert_called_once()
        session.disconnect.assert_called_once()


# --- disconnect() ---


class TestDisconnect:
    def test_closes_channel_then_session(self, connected_connector, session, channel):
        order = []
        channel.disconnect.side_effect = lambda: order.append("channel")
        session.disconnect.side_effect = lambda: order.append("session")

        connected_connector.disconnect()

        assert order == ["channel", "session"]
        assert isinstance(connected_connector.state, Disconnected)

    def test_idempotent(self, connected_connector, session, channel):
        connected_connector.disconnect()
        connected_connector.disconnect()
        channel.disconnect.assert_called_once()
        session.disconnect.assert_called_once()

    def test_before_connect(self, connector, session):
        connector.disconnect()
        session.disconnect.assert_not_called()

    def test_session_closed_even_if_channel_close_fails(self, connected_connector, session, channel):
        channel.disconnect.side_effect = paramiko.SSHException("close failed")

        with pytest.raises(paramiko.SSHException):
            connected_connector.disconnect()

        session.disconnect.assert_called_once()
        assert isinstance(connected_connector.state, Disconnected)

    def test_context_manager(self, connector, session, channel):
        with connector as c:
            assert c.is_connected
        assert channel.disconnect.call_args_list == [call()]
        session.disconnect.assert_called_once()


# --- Command execution ---


class TestRunCommand:
    def test_runs_against_channel(self, connected_connector, channel):
        command = MagicMock()
        connected_connector.run_command(command)
        command.assert_called_once_with(channel)

    def test_returns_response(self, connected_connector, channel):
        channel.pwd.return_value = "/home/test"
        assert connected_connector.run_command_with_response(lambda c: c.pwd()) == "/home/test"

    def test_not_connected(self, connector):
        command = MagicMock()
        with pytest.raises(SftpTransfersError, match=SFTP_NOT_CONNECTED) as exc_info:
            connector.run_command(command)
        assert exc_info.value.kind == ErrorKind.NOT_CONNECTED
        command.assert_not_called()

    def test_not_connected_after_disconnect(self, connected_connector):
        connected_connector.disconnect()
        with pytest.raises(SftpTransfersError) as exc_info:
            connected_connector.run_command_with_response(lambda c: c.pwd())
        assert exc_info.value.kind == ErrorKind.NOT_CONNECTED

    def test_not_connected_when_channel_dropped(self, connected_connector, channel):
        channel.is_connected.return_value = False
        with pytest.raises(SftpTransfersError) as exc_info:
            connected_connector.run_command(lambda c: c.pwd())
        assert exc_info.value.kind == ErrorKind.NOT_CONNECTED
        channel.pwd.assert_not_called()

    def test_failure_wrapped(self, connected_connector):
        cause = ValueError("boom")

        def command(channel):
            raise cause

        with pytest.raises(SftpTransfersError, match="ValueError: boom") as exc_info:
            connected_connector.run_command(command)

        assert exc_info.value.kind == ErrorKind.OPERATION
        assert exc_info.value.__cause__ is cause
