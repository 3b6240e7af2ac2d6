"""
String checks and ~/.ssh/config lookup
"""
from pathlib import Path
from typing import Any, Dict, Optional, Union

import paramiko

from .constants import DEFAULT_SSH_PORT, SSH_CONFIG_PATH
from .exceptions import ErrorKind, SftpTransfersError


def is_blank(value: Optional[str]) -> bool:
    """True for None, empty, or whitespace-only strings"""
    return value is None or not str(value).strip()


def is_not_blank(value: Optional[str]) -> bool:
    return not is_blank(value)


def load_ssh_config(alias: str, config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Look up ``alias`` in an OpenSSH client config file.

    Only the settings an SFTP connection needs are returned: ``host`` (the
    HostName, or the alias itself), ``user``, ``port`` and ``key_file``
    (first IdentityFile). Unset values are None, except port which
    defaults to 22.

    Raises:
        SftpTransfersError: CONFIGURATION kind if the file does not exist
    """
    path = Path(config_path or SSH_CONFIG_PATH).expanduser()
    if not path.is_file():
        raise SftpTransfersError(f"SSH config file not found: {path}", kind=ErrorKind.CONFIGURATION)

    lookup = paramiko.SSHConfig.from_path(str(path)).lookup(alias)
    identity_files = lookup.get("identityfile") or [None]

    return {
        "host": lookup.get("hostname", alias),
        "user": lookup.get("user"),
        "port": int(lookup.get("port", DEFAULT_SSH_PORT)),
        "key_file": identity_files[0],
    }
