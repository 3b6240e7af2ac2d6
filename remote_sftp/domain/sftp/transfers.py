"""
SFTP file operations

Uploads, downloads, listings and deletes, each run through an SftpConnector.
"""
import shutil
from pathlib import Path, PurePosixPath
from typing import IO, Callable, List, Union

import paramiko

from ...core.client import RemotePath, SftpChannel, SftpEntry
from ...core.logging import get_logger
from .connector import SftpConnector

logger = get_logger(__name__)

LocalPathFn = Callable[[PurePosixPath, str], Path]
LocalFilenameFn = Callable[[PurePosixPath, str], str]


class SftpTransfers:
    """
    Basic SFTP operations against one connector.

    Every operation changes into the remote directory first, so filenames are
    always relative to ``remote_path``. Failures surface as SftpTransfersError.
    """

    def __init__(self, connector: SftpConnector) -> None:
        self.connector = connector

    def connect(self) -> None:
        """Delegates to SftpConnector.connect()"""
        self.connector.connect()

    def disconnect(self) -> None:
        """Delegates to SftpConnector.disconnect()"""
        self.connector.disconnect()

    def __enter__(self) -> "SftpTransfers":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.disconnect()

    # --------------------
    # Upload
    # --------------------
    def put_file(self, remote_path: RemotePath, filename: str, data: IO[bytes]) -> None:
        """
        Write ``data`` to ``filename`` in ``remote_path``, creating the
        directory if it does not exist yet.
        """
        def put(channel: SftpChannel) -> None:
            _change_or_create_remote_directory(channel, remote_path)
            channel.put(data, filename)

        self.connector.run_command(put)

    # --------------------
    # Download
    # --------------------
    def get_and_store_all_files(
        self,
        remote_path: RemotePath,
        local_path_fn: LocalPathFn,
        local_filename_fn: LocalFilenameFn,
    ) -> None:
        """
        Mirror the tree under ``remote_path`` locally.

        Stores the files of each directory before descending into its
        subdirectories. Both callables receive the remote directory and the
        remote filename of each file found.

        Note: there is no cycle detection; a remote symlink loop recurses
        until the interpreter gives up.
        """
        remote_path = PurePosixPath(remote_path)

        for filename in self.list_files(remote_path):
            self.get_and_store_file(remote_path, local_path_fn, filename, local_filename_fn)

        for directory in self.list_directories(remote_path):
            self.get_and_store_all_files(remote_path / directory, local_path_fn, local_filename_fn)

    def get_and_store_file(
        self,
        remote_path: RemotePath,
        local_path: Union[Path, str, LocalPathFn],
        remote_filename: str,
        local_filename: Union[str, LocalFilenameFn, None] = None,
    ) -> None:
        """
        Fetch ``remote_filename`` from ``remote_path`` and write it locally,
        replacing any existing file.

        Args:
            remote_path: Remote directory holding the file
            local_path: Local directory, or a callable computing it from
                (remote_path, remote_filename); created if missing
            remote_filename: Name of the remote file
            local_filename: Local file name, or a callable computing it;
                defaults to the remote name
        """
        remote_path = PurePosixPath(remote_path)
        local_path_fn = _as_function(local_path, Path)
        local_filename_fn = _as_function(
            local_filename if local_filename is not None else remote_filename, str
        )

        def get(channel: SftpChannel) -> None:
            _change_to_remote_directory(channel, remote_path)

            target_dir = Path(local_path_fn(remote_path, remote_filename))
            _ensure_local_directory_exists(target_dir)

            target = target_dir / local_filename_fn(remote_path, remote_filename)
            with channel.get(remote_filename) as remote_file, open(target, "wb") as local_file:
                shutil.copyfileobj(remote_file, local_file)
            logger.debug("Stored %s/%s as %s", remote_path, remote_filename, target)

        self.connector.run_command(get)

    def get_file_content(self, remote_path: RemotePath, remote_filename: str) -> str:
        """Return the UTF-8 text of ``remote_filename`` in ``remote_path``"""
        def read(channel: SftpChannel) -> str:
            _change_to_remote_directory(channel, remote_path)
            with channel.get(remote_filename) as remote_file:
                return remote_file.read().decode("utf-8")

        return self.connector.run_command_with_response(read)

    # --------------------
    # Listing
    # --------------------
    def list_files(self, remote_path: RemotePath) -> List[str]:
        """Names of the non-directory entries in ``remote_path``"""
        return self._list_remote_items(remote_path, lambda entry: not entry.is_dir)

    def list_directories(self, remote_path: RemotePath) -> List[str]:
        """Names of the directory entries in ``remote_path``"""
        return self._list_remote_items(remote_path, lambda entry: entry.is_dir)

    def _list_remote_items(
        self,
        remote_path: RemotePath,
        predicate: Callable[[SftpEntry], bool],
    ) -> List[str]:
        return self.connector.run_command_with_response(
            lambda channel: [entry.filename for entry in channel.ls(remote_path) if predicate(entry)]
        )

    # --------------------
    # Delete
    # --------------------
    def delete_remote_file(self, remote_path: RemotePath, remote_filename: str) -> None:
        def delete(channel: SftpChannel) -> None:
            _change_to_remote_directory(channel, remote_path)
            logger.debug("Removing %s from %s on the remote host", remote_filename, remote_path)
            channel.rm(remote_filename)

        self.connector.run_command(delete)


# --------------------
# Helpers
# --------------------
def _as_function(value, convert) -> Callable[[PurePosixPath, str], object]:
    if callable(value):
        return value
    fixed = convert(value)
    return lambda remote_path, remote_filename: fixed


def _change_to_remote_directory(channel: SftpChannel, path: RemotePath) -> None:
    logger.debug("Attempting to change to %s on the remote host", path)
    channel.cd(path)
    logger.debug("Successfully changed directory on the remote host")


def _change_or_create_remote_directory(channel: SftpChannel, path: RemotePath) -> None:
    """
    Change into ``path``, creating it first if the change fails.

    SFTP has no cheap existence check, so a failed cd is taken to mean the
    directory is missing.
    """
    try:
        _change_to_remote_directory(channel, path)
    except (OSError, paramiko.SSHException) as e:
        logger.debug("Directory %s did not exist. Will create it (%s)", path, e)
        channel.mkdir(path)
        _change_to_remote_directory(channel, path)


def _ensure_local_directory_exists(path: Path) -> None:
    if not path.exists():
        logger.debug("Local storage directory %s doesn't exist. Creating.", path)
        path.mkdir(parents=True, exist_ok=True)
