"""
Connection factory implementation
"""
from typing import Optional

from ...core.client import SshTransport
from ...core.interfaces import ConnectionFactory
from ...domain.sftp import SftpConfig, SftpConnector, SftpTransfers


class SftpConnectionFactory(ConnectionFactory):
    """SftpTransfers connection factory"""

    def __init__(self, transport: Optional[SshTransport] = None):
        self.transport = transport

    def create(self, config: SftpConfig) -> SftpTransfers:
        """
        Create and connect an SftpTransfers.

        Args:
            config: Connection settings

        Returns:
            Connected SftpTransfers instance

        Raises:
            SftpTransfersError: If connection fails
        """
        connector = SftpConnector.setup_and_open_connection(config, self.transport)
        return SftpTransfers(connector)
