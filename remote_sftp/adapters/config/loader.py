"""
Configuration loader with priority: CLI > env > TOML > defaults
"""
import os
import tomllib
from pathlib import Path
from typing import Dict, Any, Optional

from ...core.constants import ENV_PREFIX
from ...core.exceptions import ErrorKind, SftpTransfersError
from ...domain.sftp.config import SftpConfig


class ConfigLoader:
    """Builds an SftpConfig from a TOML file, the environment and CLI overrides"""

    # Environment variable suffix -> SftpConfig field
    ENV_MAPPINGS = {
        "HOST": "host",
        "USER": "user",
        "PORT": "port",
        "PASSWORD": "password",
        "KEY": "private_key_file_path",
        "PREFERRED_AUTHENTICATIONS": "preferred_authentications",
        "KNOWN_HOSTS": "known_hosts_file",
        "TIMEOUT": "timeout",
        "DISABLE_STRICT_HOST_CHECKING": "disable_strict_host_checking",
        "KEY_EXCHANGE_TYPE": "key_exchange_type",
        "REMOTE_BASE_PATH": "remote_base_path",
        "ERROR_PATH": "error_path",
        "SSH_CONFIG": "ssh_config",
    }

    def __init__(self, env_prefix: str = ENV_PREFIX):
        self._env_prefix = env_prefix

    def load_toml(self, path: Path) -> Dict[str, Any]:
        """
        Load the [sftp] table of a TOML file (or the whole file if it has none)

        Raises:
            SftpTransfersError: CONFIGURATION kind if missing or unparseable
        """
        if not path.exists():
            raise SftpTransfersError(f"Configuration file not found: {path}", kind=ErrorKind.CONFIGURATION)

        try:
            data = tomllib.loads(path.read_text(encoding='utf-8'))
        except tomllib.TOMLDecodeError as e:
            raise SftpTransfersError(
                f"Failed to parse TOML configuration: {e}", kind=ErrorKind.CONFIGURATION
            ) from e

        section = data.get("sftp", data)
        if not isinstance(section, dict):
            raise SftpTransfersError("[sftp] must be a table", kind=ErrorKind.CONFIGURATION)
        return section

    def load_env(self, environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """Load configuration from environment variables"""
        environ = os.environ if environ is None else environ
        config = {}

        for suffix, config_key in self.ENV_MAPPINGS.items():
            name = self._env_prefix + suffix
            value = environ.get(name)
            if value:
                try:
                    config[config_key] = self._convert_value(config_key, value)
                except ValueError as e:
                    raise SftpTransfersError(
                        f"Invalid value for {name}: {value!r}", kind=ErrorKind.CONFIGURATION
                    ) from e

        return config

    def _convert_value(self, config_key: str, value: str) -> Any:
        """Convert string value to the type of the target field"""
        if config_key == "disable_strict_host_checking":
            return value.lower() in ("true", "yes", "1")
        if config_key == "port":
            return int(value)
        if config_key == "timeout":
            return float(value)
        return value

    def merge_configs(self, *configs: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge multiple configurations with priority.
        Later configs override earlier ones; None values never override.
        """
        result: Dict[str, Any] = {}

        for config in configs:
            result.update({k: v for k, v in config.items() if v is not None})

        return result

    def load(
        self,
        toml_path: Optional[Path] = None,
        cli_overrides: Optional[Dict[str, Any]] = None,
        use_env: bool = True,
        environ: Optional[Dict[str, str]] = None,
        defaults: Optional[Dict[str, Any]] = None,
    ) -> SftpConfig:
        """
        Load and validate configuration with priority: CLI > env > TOML > defaults

        Args:
            toml_path: Path to TOML configuration file
            cli_overrides: CLI parameter overrides
            use_env: Whether to load from environment variables
            environ: Environment to read instead of os.environ
            defaults: Lowest-priority values, used when no other source sets them

        Returns:
            Validated SftpConfig

        Raises:
            SftpTransfersError: CONFIGURATION kind for unreadable or invalid settings
        """
        configs = [defaults or {}]

        # 1. Load TOML if provided
        if toml_path:
            configs.append(self.load_toml(toml_path))

        # 2. Load environment variables
        if use_env:
            env_config = self.load_env(environ)
            if env_config:
                configs.append(env_config)

        # 3. Apply CLI overrides (highest priority)
        if cli_overrides:
            configs.append(cli_overrides)

        merged = self.merge_configs(*configs)
        # ssh_config names a ~/.ssh/config Host whose settings fill the gaps
        alias = merged.pop("ssh_config", None)

        try:
            if alias:
                config = SftpConfig.from_ssh_config(alias, **merged)
            else:
                config = SftpConfig.from_dict(merged)
        except (TypeError, ValueError) as e:
            raise SftpTransfersError(
                f"Invalid SFTP configuration: {e}", kind=ErrorKind.CONFIGURATION
            ) from e
        return config.validate()
