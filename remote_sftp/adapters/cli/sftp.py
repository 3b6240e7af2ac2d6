"""
SFTP CLI commands
"""
import typer
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Iterator, NoReturn, Optional

from ...core.constants import DEFAULT_KNOWN_HOSTS_FILE
from ...core.exceptions import ErrorKind, RemoteError
from ...core.logging import get_logger, get_stdout_console, get_stderr_console
from ...core.utils import is_blank
from ...domain.sftp import SftpConfig, SftpTransfers
from ..config.loader import ConfigLoader
from .connection import SftpConnectionFactory
from .prompts import RichPromptProvider

logger = get_logger(__name__)
stdout_console = get_stdout_console()
stderr_console = get_stderr_console()
prompt_provider = RichPromptProvider()
connection_factory = SftpConnectionFactory()
config_loader = ConfigLoader()


@dataclass
class ConnectionOptions:
    """Connection settings collected by the app callback"""
    config_path: Optional[Path] = None
    overrides: Dict[str, Any] = field(default_factory=dict)


def register_sftp_commands(app: typer.Typer) -> None:
    """Register sftp commands directly on the main app"""
    app.command(name="ls")(sftp_ls)
    app.command(name="cat")(sftp_cat)
    app.command(name="get")(sftp_get)
    app.command(name="put")(sftp_put)
    app.command(name="rm")(sftp_rm)
    app.command(name="mirror")(sftp_mirror)


# --------------------
# Connection handling
# --------------------
def load_config(options: ConnectionOptions) -> SftpConfig:
    """Resolve settings and ask for a password if no credential is configured"""
    config = config_loader.load(
        toml_path=options.config_path,
        cli_overrides=options.overrides,
        defaults={"known_hosts_file": DEFAULT_KNOWN_HOSTS_FILE},
    )
    if is_blank(config.private_key_file_path) and is_blank(config.password):
        password = prompt_provider.prompt(f"Password for {config.user}@{config.host}", password=True, default="")
        config.password = password or None
    return config


def _fail(error: RemoteError) -> NoReturn:
    label = "Config Error" if getattr(error, "kind", None) == ErrorKind.CONFIGURATION else "Error"
    logger.debug("SFTP command failed", exc_info=error)
    stderr_console.print(f"[red]{label}:[/red] {error}", markup=True, highlight=False)
    if error.__cause__ is not None:
        stderr_console.print(f"  caused by: {error.__cause__}", markup=False, highlight=False)
    raise typer.Exit(1)


@contextmanager
def open_transfers(ctx: typer.Context) -> Iterator[SftpTransfers]:
    """Connect for one command; always disconnects"""
    options: ConnectionOptions = ctx.obj or ConnectionOptions()
    try:
        transfers = connection_factory.create(load_config(options))
    except RemoteError as e:
        _fail(e)

    try:
        yield transfers
    except RemoteError as e:
        _fail(e)
    finally:
        transfers.disconnect()


def _split_remote_file(remote_file: str) -> tuple[PurePosixPath, str]:
    path = PurePosixPath(remote_file)
    if not path.name:
        stderr_console.print(f"[red]Error:[/red] Not a file path: {remote_file}")
        raise typer.Exit(1)
    return path.parent, path.name


# --------------------
# Commands
# --------------------
def sftp_ls(
    ctx: typer.Context,
    remote_path: str = typer.Argument(..., help="Remote directory"),
    files_only: bool = typer.Option(False, "--files", help="Only list files"),
    dirs_only: bool = typer.Option(False, "--dirs", help="Only list directories"),
):
    """
    List a remote directory. Directories are shown with a trailing '/'.

    Examples:
        remote-sftp --host sftp.example.com --user alice ls /outbox
        remote-sftp --config sftp.toml ls /outbox --dirs
    """
    with open_transfers(ctx) as transfers:
        if not dirs_only:
            for name in transfers.list_files(remote_path):
                stdout_console.print(name, markup=False, highlight=False)
        if not files_only:
            for name in transfers.list_directories(remote_path):
                stdout_console.print(f"{name}/", markup=False, highlight=False)


def sftp_cat(
    ctx: typer.Context,
    remote_file: str = typer.Argument(..., help="Remote file path"),
):
    """Print a remote text file (UTF-8)."""
    remote_dir, filename = _split_remote_file(remote_file)
    with open_transfers(ctx) as transfers:
        content = transfers.get_file_content(remote_dir, filename)
    typer.echo(content, nl=False)


def sftp_get(
    ctx: typer.Context,
    remote_file: str = typer.Argument(..., help="Remote file path"),
    local_dir: Path = typer.Argument(Path("."), help="Local directory (created if missing)"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Local file name (default: remote name)"),
):
    """Download one remote file, replacing any local file of the same name."""
    remote_dir, filename = _split_remote_file(remote_file)
    with open_transfers(ctx) as transfers:
        transfers.get_and_store_file(remote_dir, local_dir, filename, name)
    stdout_console.print(f"[green]✓[/green] {remote_file} → {local_dir / (name or filename)}")


def sftp_put(
    ctx: typer.Context,
    local_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Local file"),
    remote_dir: str = typer.Argument(..., help="Remote directory (created if missing)"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Remote file name (default: local name)"),
):
    """Upload one local file into a remote directory."""
    filename = name or local_file.name
    with open_transfers(ctx) as transfers, open(local_file, "rb") as data:
        transfers.put_file(remote_dir, filename, data)
    stdout_console.print(f"[green]✓[/green] {local_file} → {PurePosixPath(remote_dir) / filename}")


def sftp_rm(
    ctx: typer.Context,
    remote_file: str = typer.Argument(..., help="Remote file path"),
):
    """Delete one remote file."""
    remote_dir, filename = _split_remote_file(remote_file)
    with open_transfers(ctx) as transfers:
        transfers.delete_remote_file(remote_dir, filename)
    stdout_console.print(f"[green]✓[/green] Removed {remote_file}")


def sftp_mirror(
    ctx: typer.Context,
    remote_dir: str = typer.Argument(..., help="Remote directory to copy"),
    local_dir: Path = typer.Argument(..., help="Local directory to copy into"),
):
    """
    Copy a remote directory tree to a local directory.

    Remote symlink loops are followed forever; only mirror trees you trust.
    """
    root = PurePosixPath(remote_dir)

    def local_path_fn(remote_path: PurePosixPath, remote_filename: str) -> Path:
        return local_dir.joinpath(*remote_path.relative_to(root).parts)

    with open_transfers(ctx) as transfers:
        transfers.get_and_store_all_files(root, local_path_fn, lambda remote_path, remote_filename: remote_filename)
    stdout_console.print(f"[green]✓[/green] Mirrored {remote_dir} → {local_dir}")
