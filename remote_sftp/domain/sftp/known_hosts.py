"""
Known hosts matching

Finds the host key type pinned for a host so a session can negotiate it first.
"""
import ipaddress
from dataclasses import dataclass
from typing import Iterable, Optional

from ...core.client import HostKey, SshSession
from ...core.constants import SERVER_HOST_KEY
from ...core.exceptions import MalformedKnownHostError
from ...core.utils import is_blank


@dataclass(frozen=True)
class KnownHost:
    """Host field of a known hosts entry, split into hostname and optional IP"""
    hostname: str
    ip_address: Optional[str] = None

    @classmethod
    def from_host_key(cls, host_key: HostKey) -> "KnownHost":
        host = host_key.host
        if "," not in host:
            return cls(hostname=host)

        parts = host.split(",")
        if len(parts) != 2 or not all(parts):
            raise MalformedKnownHostError("Expecting host key to be in format: hostName,IP")
        return cls(hostname=parts[0], ip_address=parts[1])

    def matches(self, host_or_ip: str) -> bool:
        if is_ip_address(host_or_ip):
            return host_or_ip == self.ip_address
        return host_or_ip == self.hostname


def is_ip_address(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def detect_key_exchange_type_for_host(host: str, known_hosts: Iterable[HostKey]) -> Optional[str]:
    """
    Find the key type of the first known hosts entry matching ``host``.

    IP literals are compared with the entry's IP part, anything else with
    its hostname part.

    Raises:
        ValueError: If host is blank
        MalformedKnownHostError: If an entry examined has more than one comma
    """
    if is_blank(host):
        raise ValueError("host must not be blank")
    if known_hosts is None:
        raise ValueError("known_hosts must not be None")

    for host_key in known_hosts:
        if KnownHost.from_host_key(host_key).matches(host):
            return host_key.key_type
    return None


def set_session_key_exchange_type(session: SshSession, key_exchange_type: str) -> None:
    """Set the key type (e.g. ``ssh-rsa``, ``ecdsa-sha2-nistp256``) the session negotiates first"""
    if session is None:
        raise ValueError("session must not be None")
    if is_blank(key_exchange_type):
        raise ValueError("key_exchange_type must not be blank")
    session.set_config(SERVER_HOST_KEY, key_exchange_type)
