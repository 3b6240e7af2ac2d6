"""Tests for the layered configuration loader."""

import textwrap

import pytest

from remote_sftp.adapters.config.loader import ConfigLoader
from remote_sftp.core.exceptions import ErrorKind, SftpTransfersError


@pytest.fixture
def loader():
    return ConfigLoader()


@pytest.fixture
def toml_path(tmp_path):
    path = tmp_path / "sftp.toml"
    path.write_text(textwrap.dedent("""\
        [sftp]
        host = "sftp.example.com"
        user = "alice"
        port = 2222
        known_hosts_file = "/etc/ssh/known_hosts"
        private_key_file_path = "/keys/id_ed25519"
    """))
    return path


class TestLoadToml:
    def test_reads_sftp_table(self, loader, toml_path):
        config = loader.load(toml_path=toml_path, environ={})
        assert config.host == "sftp.example.com"
        assert config.port == 2222
        assert config.private_key_file_path == "/keys/id_ed25519"

    def test_table_optional(self, loader, tmp_path):
        path = tmp_path / "flat.toml"
        path.write_text('host = "h"\nuser = "u"\nknown_hosts_file = "kh"\n')
        assert loader.load(toml_path=path, environ={}).host == "h"

    def test_missing_file(self, loader, tmp_path):
        with pytest.raises(SftpTransfersError, match="not found") as exc_info:
            loader.load_toml(tmp_path / "missing.toml")
        assert exc_info.value.kind == ErrorKind.CONFIGURATION

    def test_invalid_toml(self, loader, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("host = \n")
        with pytest.raises(SftpTransfersError) as exc_info:
            loader.load_toml(path)
        assert exc_info.value.kind == ErrorKind.CONFIGURATION


class TestLoadEnv:
    def test_converts_by_field(self, loader):
        env = loader.load_env({
            "REMOTE_SFTP_PORT": "2200",
            "REMOTE_SFTP_TIMEOUT": "0.5",
            "REMOTE_SFTP_DISABLE_STRICT_HOST_CHECKING": "yes",
            "REMOTE_SFTP_PASSWORD": "1234",
            "OTHER": "ignored",
        })
        assert env == {
            "port": 2200,
            "timeout": 0.5,
            "disable_strict_host_checking": True,
            "password": "1234",
        }

    def test_invalid_number(self, loader):
        with pytest.raises(SftpTransfersError, match="REMOTE_SFTP_PORT") as exc_info:
            loader.load_env({"REMOTE_SFTP_PORT": "twenty-two"})
        assert exc_info.value.kind == ErrorKind.CONFIGURATION

    def test_custom_prefix(self):
        assert ConfigLoader(env_prefix="APP_").load_env({"APP_HOST": "h"}) == {"host": "h"}


class TestPriority:
    def test_env_overrides_toml(self, loader, toml_path):
        config = loader.load(toml_path=toml_path, environ={"REMOTE_SFTP_USER": "bob"})
        assert config.user == "bob"

    def test_cli_overrides_env(self, loader, toml_path):
        config = loader.load(
            toml_path=toml_path,
            cli_overrides={"user": "carol", "port": None},
            environ={"REMOTE_SFTP_USER": "bob"},
        )
        assert config.user == "carol"
        assert config.port == 2222

    def test_defaults_lowest(self, loader, toml_path):
        config = loader.load(
            toml_path=toml_path,
            environ={},
            defaults={"known_hosts_file": "~/.ssh/known_hosts", "timeout": 9.0},
        )
        assert config.known_hosts_file == "/etc/ssh/known_hosts"
        assert config.timeout == 9.0

    def test_env_ignored_when_disabled(self, loader, toml_path):
        config = loader.load(toml_path=toml_path, use_env=False, environ={"REMOTE_SFTP_USER": "bob"})
        assert config.user == "alice"


class TestValidation:
    def test_invalid_result_rejected(self, loader):
        with pytest.raises(SftpTransfersError, match="host must not be blank") as exc_info:
            loader.load(cli_overrides={"user": "u", "known_hosts_file": "kh"}, environ={})
        assert exc_info.value.kind == ErrorKind.CONFIGURATION

    def test_bad_port_type_rejected(self, loader):
        with pytest.raises(SftpTransfersError) as exc_info:
            loader.load(cli_overrides={"host": "h", "user": "u", "known_hosts_file": "kh", "port": "abc"}, environ={})
        assert exc_info.value.kind == ErrorKind.CONFIGURATION

    def test_ssh_config_alias(self, loader, tmp_path, monkeypatch):
        ssh_dir = tmp_path / ".ssh"
        ssh_dir.mkdir()
        (ssh_dir / "config").write_text("Host box\n    HostName box.example.com\n    User dave\n")
        monkeypatch.setenv("HOME", str(tmp_path))

        config = loader.load(cli_overrides={"ssh_config": "box", "known_hosts_file": "kh"}, environ={})

        assert config.host == "box.example.com"
        assert config.user == "dave"
