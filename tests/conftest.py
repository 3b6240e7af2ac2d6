"""Shared fixtures: an SftpConfig and a fully mocked transport/session/channel stack."""

from unittest.mock import MagicMock

import pytest

from remote_sftp.core.client import SftpChannel, SshSession, SshTransport
from remote_sftp.domain.sftp import SftpConfig, SftpConnector


@pytest.fixture
def sftp_config():
    return SftpConfig(
        host="localhost",
        user="test",
        port=22,
        password="secret",
        known_hosts_file="/home/test/.ssh/known_hosts",
    )


@pytest.fixture
def channel():
    channel = MagicMock(spec=SftpChannel)
    channel.is_connected.return_value = True
    return channel


@pytest.fixture
def session(channel):
    session = MagicMock(spec=SshSession)
    session.open_channel.return_value = channel
    session.get_timeout.return_value = 5.0
    session.is_connected.return_value = True
    return session


@pytest.fixture
def transport(session):
    transport = MagicMock(spec=SshTransport)
    transport.get_host_keys.return_value = []
    transport.get_session.return_value = session
    return transport


@pytest.fixture
def connector(sftp_config, transport):
    return SftpConnector(sftp_config, transport)


@pytest.fixture
def connected_connector(connector):
    connector.connect()
    return connector
