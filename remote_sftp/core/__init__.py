"""
Core infrastructure layer
"""
from .client import (
    Channel,
    HostKey,
    SftpChannel,
    SftpEntry,
    SshSession,
    SshTransport,
    load_private_key,
    read_known_hosts,
)
from .constants import *
from .exceptions import *
from .logging import TRACE, setup_logging, get_logger, get_stdout_console, get_stderr_console
from .utils import is_blank, is_not_blank, load_ssh_config

__all__ = [
    "Channel",
    "HostKey",
    "SftpChannel",
    "SftpEntry",
    "SshSession",
    "SshTransport",
    "load_private_key",
    "read_known_hosts",
    "RemoteError",
    "ErrorKind",
    "SftpTransfersError",
    "MalformedKnownHostError",
    "TRACE",
    "setup_logging",
    "get_logger",
    "get_stdout_console",
    "get_stderr_console",
    "is_blank",
    "is_not_blank",
    "load_ssh_config",
]
