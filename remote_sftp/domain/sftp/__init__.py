"""
SFTP session & transfer domain module
"""
from .config import SftpConfig
from .known_hosts import (
    KnownHost,
    detect_key_exchange_type_for_host,
    set_session_key_exchange_type,
)
from .connector import SftpConnector, Connected, Disconnected
from .transfers import SftpTransfers

__all__ = [
    "SftpConfig",
    "KnownHost",
    "detect_key_exchange_type_for_host",
    "set_session_key_exchange_type",
    "SftpConnector",
    "Connected",
    "Disconnected",
    "SftpTransfers",
]
