"""
SFTP connection configuration
"""
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

from ...core.constants import (
    DEFAULT_PREFERRED_AUTHENTICATIONS,
    DEFAULT_SFTP_TIMEOUT,
    DEFAULT_SSH_PORT,
    MIN_SFTP_TIMEOUT,
)
from ...core.exceptions import ErrorKind, SftpTransfersError
from ...core.utils import is_blank, load_ssh_config


@dataclass
class SftpConfig:
    """
    Settings for SFTP access to one remote host.

    The connector uses either the private key or the password, never both.
    If both are given the private key wins.

    ``remote_base_path`` and ``error_path`` are carried for the embedding
    application; nothing in the connector or transfers reads them.
    """
    host: Optional[str] = None
    user: Optional[str] = None
    port: int = DEFAULT_SSH_PORT
    password: Optional[str] = field(default=None, repr=False)
    private_key_file_path: Optional[str] = None
    preferred_authentications: str = DEFAULT_PREFERRED_AUTHENTICATIONS
    remote_base_path: Optional[str] = None
    error_path: Optional[str] = None
    known_hosts_file: Optional[str] = None
    disable_strict_host_checking: bool = False
    key_exchange_type: Optional[str] = None
    timeout: float = DEFAULT_SFTP_TIMEOUT  # seconds

    def __post_init__(self) -> None:
        # Blank / zero values coming from deserialization mean "use the default"
        if not self.port:
            self.port = DEFAULT_SSH_PORT
        if is_blank(self.preferred_authentications):
            self.preferred_authentications = DEFAULT_PREFERRED_AUTHENTICATIONS
        if self.timeout is None:
            self.timeout = DEFAULT_SFTP_TIMEOUT

    def violations(self) -> List[str]:
        """Describe every invalid property; empty when valid"""
        problems = []
        if not isinstance(self.port, int) or not 1 <= self.port <= 65535:
            problems.append(f"port must be between 1 and 65535, got {self.port}")
        if is_blank(self.host):
            problems.append("host must not be blank")
        if is_blank(self.user):
            problems.append("user must not be blank")
        if is_blank(self.preferred_authentications):
            problems.append("preferred_authentications must not be blank")
        if is_blank(self.known_hosts_file):
            problems.append("known_hosts_file must not be blank")
        if self.timeout < MIN_SFTP_TIMEOUT:
            problems.append(f"timeout must be at least {MIN_SFTP_TIMEOUT} seconds, got {self.timeout}")
        return problems

    def validate(self) -> "SftpConfig":
        """
        Raises:
            SftpTransfersError: CONFIGURATION kind, listing every violation
        """
        problems = self.violations()
        if problems:
            raise SftpTransfersError(
                "Invalid SFTP configuration: " + "; ".join(problems),
                kind=ErrorKind.CONFIGURATION,
            )
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (the password is never included)"""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "password"
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SftpConfig":
        """Create from dictionary, ignoring unknown keys"""
        valid_fields = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        if valid_fields.get("port") is not None:
            valid_fields["port"] = int(valid_fields["port"])
        if valid_fields.get("timeout") is not None:
            valid_fields["timeout"] = float(valid_fields["timeout"])
        return cls(**valid_fields)

    @classmethod
    def from_ssh_config(
        cls,
        alias: str,
        ssh_config_path: Optional[Path] = None,
        **overrides: Any,
    ) -> "SftpConfig":
        """Resolve host, user, port and identity file from ~/.ssh/config"""
        entry = load_ssh_config(alias, ssh_config_path)
        data: Dict[str, Any] = {
            "host": entry["host"],
            "user": entry["user"],
            "port": entry["port"],
            "private_key_file_path": entry["key_file"],
        }
        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_dict(data)
