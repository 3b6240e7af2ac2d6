"""
remote_sftp - SFTP session and transfer helpers built on paramiko

Provides:
- SftpConfig: connection settings for one remote host
- SftpConnector: session/channel lifecycle, host key and auth selection
- SftpTransfers: upload, download (single file or whole tree), listing,
  text retrieval and deletion over a connector
"""

__version__ = "0.1.0"

# Export core components
from .core import (
    SshTransport,
    RemoteError,
    ErrorKind,
    SftpTransfersError,
    MalformedKnownHostError,
    setup_logging,
)

# Export domain models
from .domain.sftp import (
    SftpConfig,
    SftpConnector,
    SftpTransfers,
    KnownHost,
    detect_key_exchange_type_for_host,
    set_session_key_exchange_type,
)

__all__ = [
    # Version
    "__version__",
    # Transport
    "SshTransport",
    # Errors
    "RemoteError",
    "ErrorKind",
    "SftpTransfersError",
    "MalformedKnownHostError",
    # Logging
    "setup_logging",
    # SFTP
    "SftpConfig",
    "SftpConnector",
    "SftpTransfers",
    "KnownHost",
    "detect_key_exchange_type_for_host",
    "set_session_key_exchange_type",
]
