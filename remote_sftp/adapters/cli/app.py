"""
Main CLI application
"""
import typer
from pathlib import Path
from typing import Optional

from ...core.logging import setup_logging
from .sftp import ConnectionOptions, register_sftp_commands

# Create main app
app = typer.Typer(
    name="remote-sftp",
    add_completion=False,
    help="SFTP file transfer tool",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Register sftp commands directly (not as subcommands)
register_sftp_commands(app)


@app.callback()
def main(
    ctx: typer.Context,
    log_level: str = typer.Option(
        "INFO",
        "--log-level",
        "-l",
        help="Logging level (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        help="Log file path",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="TOML configuration file ([sftp] table)",
    ),
    host: Optional[str] = typer.Option(None, "--host", "-H", help="SFTP server host"),
    user: Optional[str] = typer.Option(None, "--user", "-u", help="Login user"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="SSH port (default: 22)"),
    password: Optional[str] = typer.Option(None, "--password", help="Login password"),
    key: Optional[str] = typer.Option(None, "--key", "-i", help="Private key file"),
    known_hosts: Optional[str] = typer.Option(
        None, "--known-hosts", help="known_hosts file (default: ~/.ssh/known_hosts)"
    ),
    timeout: Optional[float] = typer.Option(None, "--timeout", "-t", help="Timeout in seconds"),
    no_strict_host_checking: bool = typer.Option(
        False,
        "--no-strict-host-checking",
        help="Accept unknown host keys (testing only)",
    ),
    ssh_config: Optional[str] = typer.Option(
        None, "--ssh-config", help="Take host, user, port and key from this ~/.ssh/config Host"
    ),
):
    """
    Remote SFTP - transfer files over SFTP

    Settings come from --config, REMOTE_SFTP_* environment variables and
    the options below, later sources winning.
    """
    # Setup logging
    setup_logging(level=log_level, log_file=log_file)

    ctx.obj = ConnectionOptions(
        config_path=config,
        overrides={
            "host": host,
            "user": user,
            "port": port,
            "password": password,
            "private_key_file_path": key,
            "known_hosts_file": known_hosts,
            "timeout": timeout,
            "disable_strict_host_checking": True if no_strict_host_checking else None,
            "ssh_config": ssh_config,
        },
    )


def run():
    """CLI entry point"""
    app()


if __name__ == "__main__":
    run()
