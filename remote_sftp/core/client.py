"""
Paramiko-backed SSH transport

Exposes the handful of session and channel primitives the SFTP connector
needs, on top of paramiko's SSHClient / Transport / SFTPClient:

- SshTransport: known hosts, identities, session factory
- SshSession: per-connection settings, connect, open channel
- Channel / SftpChannel: subsystem channels opened on a session
"""
from __future__ import annotations

import logging
import stat
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import IO, Dict, List, Optional, Type, Union

import paramiko
from paramiko.hostkeys import HostKeyEntry, InvalidHostKey

from .constants import (
    DEFAULT_PREFERRED_AUTHENTICATIONS,
    PARAMIKO_LOG_CHANNEL,
    PREFERRED_AUTHENTICATIONS,
    SERVER_HOST_KEY,
    SFTP_CHANNEL,
    STRICT_HOST_KEY_CHECKING,
)
from .logging import get_logger

logger = get_logger(__name__)

RemotePath = Union[str, PurePath]


@dataclass(frozen=True)
class HostKey:
    """One known_hosts line: raw host field plus the key it pins"""
    host: str
    key_type: str
    key: Optional[paramiko.PKey] = None


@dataclass(frozen=True)
class SftpEntry:
    """One directory listing entry"""
    filename: str
    is_dir: bool = False

    @classmethod
    def from_attributes(cls, attrs: paramiko.SFTPAttributes) -> "SftpEntry":
        return cls(filename=attrs.filename, is_dir=stat.S_ISDIR(attrs.st_mode or 0))


# --------------------
# Private keys
# --------------------
_KEY_CLASSES = (paramiko.Ed25519Key, paramiko.ECDSAKey, paramiko.RSAKey)


def load_private_key(path: Union[str, Path]) -> paramiko.PKey:
    """
    Load a private key, probing Ed25519, ECDSA and RSA in turn.

    Raises:
        OSError: If the file cannot be read
        paramiko.SSHException: If no key type can parse it
    """
    p = Path(path).expanduser()
    if not p.is_file():
        raise FileNotFoundError(f"Private key not found: {p}")

    last_error: Optional[Exception] = None
    for key_class in _KEY_CLASSES:
        try:
            return key_class.from_private_key_file(str(p))
        except paramiko.SSHException as e:
            last_error = e
    raise paramiko.SSHException(f"Failed to load private key at {p}: {last_error}")


def read_known_hosts(path: Union[str, Path]) -> List[HostKey]:
    """
    Read an OpenSSH known_hosts file, keeping file order.

    Lines paramiko cannot parse (unknown key types, bad base64, markers)
    are skipped.
    """
    p = Path(path).expanduser()
    host_keys: List[HostKey] = []
    with open(p, "r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, 1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            try:
                entry = HostKeyEntry.from_line(line, lineno)
            except (InvalidHostKey, paramiko.SSHException) as e:
                logger.debug("Skipping known hosts line %d of %s: %s", lineno, p, e)
                continue
            if entry is None:
                logger.debug("Skipping known hosts line %d of %s", lineno, p)
                continue
            host_keys.append(
                HostKey(host=",".join(entry.hostnames), key_type=entry.key.get_name(), key=entry.key)
            )
    return host_keys


# --------------------
# Channels
# --------------------
class Channel:
    """A subsystem channel on an SSH session"""

    def __init__(self, session: SshSession, name: str) -> None:
        self.session = session
        self.name = name
        self._channel: Optional[paramiko.Channel] = None

    def connect(self, timeout: Optional[float] = None) -> None:
        """Open the channel and start its subsystem, bounded by ``timeout`` seconds"""
        transport = self.session.get_transport()
        channel = transport.open_session(timeout=timeout)
        channel.settimeout(timeout)
        channel.invoke_subsystem(self.name)
        self._channel = channel
        self._on_open(channel)
        # The timeout only bounds opening; later calls block
        channel.settimeout(None)

    def _on_open(self, channel: paramiko.Channel) -> None:
        pass

    def is_connected(self) -> bool:
        return (
            self._channel is not None
            and not self._channel.closed
            and self.session.is_connected()
        )

    def disconnect(self) -> None:
        if self._channel is not None:
            self._channel.close()
            self._channel = None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name} on {self.session}>"


class SftpChannel(Channel):
    """SFTP subsystem channel; relative names resolve against the current remote directory"""

    def __init__(self, session: SshSession, name: str = SFTP_CHANNEL) -> None:
        super().__init__(session, name)
        self._sftp: Optional[paramiko.SFTPClient] = None

    def _on_open(self, channel: paramiko.Channel) -> None:
        self._sftp = paramiko.SFTPClient(channel)

    @property
    def sftp(self) -> paramiko.SFTPClient:
        if self._sftp is None:
            raise paramiko.SSHException("SFTP channel is not open")
        return self._sftp

    def cd(self, path: RemotePath) -> None:
        self.sftp.chdir(str(path))

    def pwd(self) -> Optional[str]:
        return self.sftp.getcwd()

    def mkdir(self, path: RemotePath) -> None:
        self.sftp.mkdir(str(path))

    def ls(self, path: RemotePath) -> List[SftpEntry]:
        return [SftpEntry.from_attributes(attrs) for attrs in self.sftp.listdir_attr(str(path))]

    def get(self, filename: str) -> IO[bytes]:
        """Open a remote file for reading; the caller closes it"""
        remote_file = self.sftp.open(filename, "rb")
        remote_file.prefetch()
        return remote_file

    def put(self, data: IO[bytes], filename: str) -> None:
        self.sftp.putfo(data, filename)

    def rm(self, filename: str) -> None:
        self.sftp.remove(filename)

    def disconnect(self) -> None:
        if self._sftp is not None:
            self._sftp.close()
            self._sftp = None
        super().disconnect()


_CHANNEL_TYPES: Dict[str, Type[Channel]] = {
    SFTP_CHANNEL: SftpChannel,
}


# --------------------
# Host key preference
# --------------------
def key_family(key_type: str) -> str:
    """Name paramiko stores a key under; RSA signature variants map to ssh-rsa"""
    if key_type.startswith("rsa-sha2-"):
        return "ssh-rsa"
    return key_type


def prefer_key_type(transport: paramiko.Transport, key_type: str) -> None:
    """
    Move ``key_type`` to the front of the host key types the transport offers.

    Raises:
        ValueError: If paramiko does not support ``key_type``
    """
    options = transport.get_security_options()
    options.key_types = [key_type] + [k for k in options.key_types if k != key_type]


class PreferredHostKeyTransport(paramiko.Transport):
    """
    Transport that negotiates ``preferred_key_type`` first.

    SSHClient.connect reorders the host key types after the transport is
    built (putting the first known key type for the host in front), so the
    preference is applied again when negotiation starts.
    """
    preferred_key_type: Optional[str] = None

    def start_client(self, event=None, timeout=None):
        if self.preferred_key_type:
            prefer_key_type(self, self.preferred_key_type)
        return super().start_client(event=event, timeout=timeout)


# --------------------
# Session
# --------------------
class SshSession:
    """
    Settings for one connection to ``user@host:port`` and, once connected,
    the live paramiko client.

    Recognised config keys:
    - PreferredAuthentications: which credentials are offered
    - server_host_key: host key type to negotiate first
    - StrictHostKeyChecking: "no" accepts unknown hosts
    """

    def __init__(self, transport: SshTransport, user: str, host: str, port: int) -> None:
        self.transport = transport
        self.user = user
        self.host = host
        self.port = port
        self._config: Dict[str, str] = {}
        self._timeout: Optional[float] = None
        self._password: Optional[str] = None
        self._client: Optional[paramiko.SSHClient] = None

    # --------------------
    # Settings
    # --------------------
    def set_timeout(self, timeout: Optional[float]) -> None:
        self._timeout = timeout

    def get_timeout(self) -> Optional[float]:
        return self._timeout

    def set_config(self, key: str, value: str) -> None:
        self._config[key] = value

    def get_config(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._config.get(key, default)

    def set_password(self, password: str) -> None:
        self._password = password

    # --------------------
    # Connection management
    # --------------------
    def connect(self, timeout: Optional[float] = None) -> None:
        """Connect and authenticate; ``timeout`` defaults to the session timeout"""
        if timeout is None:
            timeout = self._timeout

        client = paramiko.SSHClient()
        client.set_log_channel(self.transport.log_channel)
        self._load_host_keys(client)
        client.set_missing_host_key_policy(self._missing_host_key_policy())

        try:
            client.connect(
                hostname=self.host,
                port=self.port,
                username=self.user,
                timeout=timeout,
                banner_timeout=timeout,
                auth_timeout=timeout,
                allow_agent=False,
                look_for_keys=False,
                transport_factory=self._open_transport,
                **self._credentials(),
            )
        except BaseException:
            client.close()
            raise

        self._client = client

    def _load_host_keys(self, client: paramiko.SSHClient) -> None:
        """Copy known host keys into the client, entries of the preferred key type first"""
        known = self.transport.get_host_keys()
        preferred = self.get_config(SERVER_HOST_KEY)
        if preferred:
            family = key_family(preferred)
            known.sort(key=lambda host_key: key_family(host_key.key_type) != family)

        host_keys = client.get_host_keys()
        for host_key in known:
            if host_key.key is None:
                continue
            for hostname in host_key.host.split(","):
                if hostname:
                    host_keys.add(hostname, host_key.key_type, host_key.key)

    def _missing_host_key_policy(self) -> paramiko.MissingHostKeyPolicy:
        if self.get_config(STRICT_HOST_KEY_CHECKING, "yes").lower() == "no":
            return paramiko.AutoAddPolicy()
        return paramiko.RejectPolicy()

    def _credentials(self) -> Dict[str, object]:
        methods = {
            m.strip()
            for m in self.get_config(PREFERRED_AUTHENTICATIONS, DEFAULT_PREFERRED_AUTHENTICATIONS).split(",")
        }
        credentials: Dict[str, object] = {}

        identities = self.transport.get_identities()
        if identities and "publickey" in methods:
            credentials["pkey"] = identities[0]

        if self._password and methods & {"password", "keyboard-interactive"}:
            credentials["password"] = self._password

        return credentials

    def _open_transport(self, sock, **kwargs) -> paramiko.Transport:
        transport = PreferredHostKeyTransport(sock, **kwargs)
        key_type = self.get_config(SERVER_HOST_KEY)
        if key_type:
            try:
                prefer_key_type(transport, key_type)
            except ValueError as e:
                transport.close()
                raise paramiko.SSHException(f"Unsupported host key type: {key_type}") from e
            transport.preferred_key_type = key_type
        return transport

    def get_transport(self) -> paramiko.Transport:
        transport = self._client.get_transport() if self._client else None
        if transport is None:
            raise paramiko.SSHException("Session is not connected")
        return transport

    def is_connected(self) -> bool:
        if self._client is None:
            return False
        transport = self._client.get_transport()
        return transport is not None and transport.is_active()

    def open_channel(self, name: str) -> Channel:
        """Create (but do not connect) a channel for the named subsystem"""
        channel_type = _CHANNEL_TYPES.get(name, Channel)
        return channel_type(self, name)

    def disconnect(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __repr__(self) -> str:
        return f"<SshSession {self.user}@{self.host}:{self.port}>"


# --------------------
# Transport
# --------------------
class SshTransport:
    """
    Builds sessions sharing one set of known hosts and identities.

    Paramiko's own logging goes to ``logger`` (by name), so callers choose
    where transport chatter ends up instead of it being configured globally.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or get_logger(PARAMIKO_LOG_CHANNEL)
        self._host_keys: List[HostKey] = []
        self._identities: List[paramiko.PKey] = []

    @property
    def log_channel(self) -> str:
        return self.logger.name

    def set_known_hosts(self, path: Union[str, Path]) -> None:
        self._host_keys = read_known_hosts(path)
        self.logger.debug("Loaded %d known host keys from %s", len(self._host_keys), path)

    def get_host_keys(self) -> List[HostKey]:
        return list(self._host_keys)

    def add_identity(self, path: Union[str, Path]) -> None:
        self._identities.append(load_private_key(path))

    def get_identities(self) -> List[paramiko.PKey]:
        return list(self._identities)

    def get_session(self, user: str, host: str, port: int) -> SshSession:
        return SshSession(self, user, host, port)
