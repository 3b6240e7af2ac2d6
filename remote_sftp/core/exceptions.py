"""
Unified exception definitions
"""
from enum import Enum
from typing import Optional


class RemoteError(Exception):
    """Base exception class"""
    pass


class ErrorKind(str, Enum):
    """What went wrong in an SFTP transfer"""
    CONFIGURATION = "configuration"
    CONNECTION = "connection"
    NOT_CONNECTED = "not_connected"
    OPERATION = "operation"


class SftpTransfersError(RemoteError):
    """
    The single error type raised by the SFTP subsystem.

    The transport's own exception, if any, is chained as ``__cause__``.
    """

    def __init__(self, message: Optional[str] = None, kind: ErrorKind = ErrorKind.OPERATION):
        self.kind = kind
        super().__init__(message or kind.value)

    @classmethod
    def wrap(cls, error: BaseException, kind: ErrorKind = ErrorKind.OPERATION) -> "SftpTransfersError":
        """Build an error whose message mirrors the wrapped one"""
        wrapped = cls(f"{type(error).__name__}: {error}", kind=kind)
        wrapped.__cause__ = error
        return wrapped


class MalformedKnownHostError(ValueError):
    """Known hosts entry whose host field is not 'hostName' or 'hostName,IP'"""
    pass
