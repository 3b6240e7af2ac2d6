"""
SFTP connection lifecycle

SftpConnector owns one SSH session and the SFTP channel opened on it, and
runs remote operations against that channel.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, TypeVar, Union

import paramiko

from ...core.client import Channel, SftpChannel, SshSession, SshTransport
from ...core.constants import (
    PARAMIKO_LOG_CHANNEL,
    PREFERRED_AUTHENTICATIONS,
    SFTP_CHANNEL,
    STRICT_HOST_KEY_CHECKING,
)
from ...core.exceptions import ErrorKind, SftpTransfersError
from ...core.logging import TRACE, get_logger
from ...core.utils import is_not_blank
from .config import SftpConfig
from .known_hosts import detect_key_exchange_type_for_host, set_session_key_exchange_type

logger = get_logger(__name__)

T = TypeVar("T")

SFTP_NOT_CONNECTED = "Sftp is not connected. Call connect first"
MISSING_CREDENTIALS = "Missing a private key and a password; cannot authenticate to the SFTP server"


@dataclass(frozen=True)
class Disconnected:
    pass


@dataclass(frozen=True)
class Connected:
    session: SshSession
    channel: SftpChannel


ConnectorState = Union[Disconnected, Connected]

DISCONNECTED = Disconnected()


class SftpConnector:
    """
    Connects to and disconnects from an SFTP server as described by an
    SftpConfig.

    A new connector is disconnected; call connect() to open the session and
    channel. Instances are not thread-safe: use one connector per unit of work.

    Example:
        connector = SftpConnector(config)
        connector.connect()
        try:
            names = connector.run_command_with_response(lambda channel: channel.ls("/tmp"))
        finally:
            connector.disconnect()
    """

    def __init__(self, config: SftpConfig, transport: Optional[SshTransport] = None) -> None:
        if config is None:
            raise ValueError("SftpConfig is required")
        self.config = config
        self.transport = transport or SshTransport(logger=get_logger(PARAMIKO_LOG_CHANNEL))
        self._state: ConnectorState = DISCONNECTED

    @classmethod
    def setup_and_open_connection(
        cls,
        config: SftpConfig,
        transport: Optional[SshTransport] = None,
    ) -> SftpConnector:
        """Create a connector and connect it straight away"""
        connector = cls(config, transport)
        connector.connect()
        return connector

    @property
    def state(self) -> ConnectorState:
        return self._state

    @property
    def is_connected(self) -> bool:
        state = self._state
        return isinstance(state, Connected) and state.channel.is_connected()

    # --------------------
    # Connection management
    # --------------------
    def connect(self) -> None:
        """
        Open a connection to the remote SFTP server.

        Applies, in order: known hosts, user/host/port, session timeout,
        preferred authentications, key exchange type (configured or detected
        from known hosts), private key or password, and the strict host key
        checking override.

        Raises:
            SftpTransfersError: CONFIGURATION kind when there are no
                credentials, CONNECTION kind for any transport failure
        """
        if self.is_connected:
            logger.debug("Already connected to %s", self.config.host)
            return
        # Drop whatever is left of a dead connection
        self.disconnect()

        config = self.config
        session: Optional[SshSession] = None
        channel: Optional[Channel] = None
        try:
            logger.log(TRACE, "Entering connect()")

            logger.log(TRACE, "Setting known hosts to %s", config.known_hosts_file)
            self.transport.set_known_hosts(config.known_hosts_file)

            logger.log(TRACE, "Creating SSH session; connecting to: %s@%s:%s",
                       config.user, config.host, config.port)
            session = self.transport.get_session(config.user, config.host, config.port)

            logger.log(TRACE, "Setting timeout to %s seconds", config.timeout)
            session.set_timeout(config.timeout)

            logger.log(TRACE, "Setting preferred authentications to: %s", config.preferred_authentications)
            session.set_config(PREFERRED_AUTHENTICATIONS, config.preferred_authentications)

            self.set_key_exchange_type_if_configured_or_detected(session)

            self.add_auth_to_session(config, self.transport, session)

            self.disable_strict_host_key_checking_if_configured(config, session)

            logger.debug("Attempt session connect using timeout: %s seconds", session.get_timeout())
            session.connect(config.timeout)
            logger.debug("Session connected: %s", session.is_connected())

            channel = session.open_channel(SFTP_CHANNEL)
            logger.debug("Attempt openChannel using timeout: %s seconds", config.timeout)
            channel.connect(config.timeout)
            logger.debug("Channel connected: %s", channel.is_connected())

            if not isinstance(channel, SftpChannel):
                raise SftpTransfersError(
                    f"Error occurred connecting to {config.host}: expected channel to be a "
                    f"SftpChannel, but was a: {type(channel).__name__}",
                    kind=ErrorKind.CONNECTION,
                )
        except SftpTransfersError:
            self._release(session, channel)
            raise
        except (paramiko.SSHException, OSError) as e:
            self._release(session, channel)
            logger.error("Error occurred connecting to %s: %s", config.host, e)
            raise SftpTransfersError(
                f"Error occurred connecting to {config.host}", kind=ErrorKind.CONNECTION
            ) from e

        self._state = Connected(session=session, channel=channel)
        logger.log(TRACE, "Ready sftp channel: %r", channel)

    @staticmethod
    def _release(session: Optional[SshSession], channel: Optional[Channel]) -> None:
        """Close handles left over from a failed connect()"""
        for handle in (channel, session):
            if handle is None:
                continue
            try:
                handle.disconnect()
            except (paramiko.SSHException, OSError) as e:
                logger.debug("Ignoring error while releasing %r: %s", handle, e)

    def disconnect(self) -> None:
        """
        Close the channel, then the session.

        Calling this again, or before connect(), does nothing.
        """
        state = self._state
        if not isinstance(state, Connected):
            return
        try:
            state.channel.disconnect()
        finally:
            try:
                state.session.disconnect()
            finally:
                self._state = DISCONNECTED
        logger.debug("Disconnected from %s", self.config.host)

    def __enter__(self) -> SftpConnector:
        self.connect()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.disconnect()

    # --------------------
    # Session setup steps
    # --------------------
    def get_or_detect_key_exchange_type(self) -> Optional[str]:
        if is_not_blank(self.config.key_exchange_type):
            return self.config.key_exchange_type

        logger.log(TRACE, "Detecting key exchange type with host")
        return detect_key_exchange_type_for_host(self.config.host, self.transport.get_host_keys())

    def set_key_exchange_type_if_configured_or_detected(self, session: SshSession) -> None:
        key_exchange_type = self.get_or_detect_key_exchange_type()
        if key_exchange_type is None:
            logger.log(TRACE, "Did not detect key exchange type for host: %s", self.config.host)
            return

        set_session_key_exchange_type(session, key_exchange_type)
        logger.debug("Set key exchange type [%s] for host %s", key_exchange_type, self.config.host)

    @staticmethod
    def add_auth_to_session(config: SftpConfig, transport: SshTransport, session: SshSession) -> None:
        """
        Register the private key if there is one, else set the password.

        Raises:
            SftpTransfersError: CONFIGURATION kind if neither is configured
        """
        if is_not_blank(config.private_key_file_path):
            logger.debug("Using private key '%s' to connect", config.private_key_file_path)
            transport.add_identity(config.private_key_file_path)

        elif is_not_blank(config.password):
            logger.debug("Using password to connect")
            session.set_password(config.password)

        else:
            raise SftpTransfersError(MISSING_CREDENTIALS, kind=ErrorKind.CONFIGURATION)

    @staticmethod
    def disable_strict_host_key_checking_if_configured(config: SftpConfig, session: SshSession) -> None:
        if config.disable_strict_host_checking:
            logger.warning("Disabling strict host checking - This should only be used for testing purposes!")
            session.set_config(STRICT_HOST_KEY_CHECKING, "no")

    # --------------------
    # Command execution
    # --------------------
    def run_command(self, command: Callable[[SftpChannel], object]) -> None:
        """
        Run ``command`` against the live channel.

        Raises:
            SftpTransfersError: NOT_CONNECTED kind before running anything if
                there is no connected channel, OPERATION kind wrapping whatever
                ``command`` raised
        """
        channel = self._validate_sftp_is_connected()
        try:
            command(channel)
        except Exception as e:
            raise SftpTransfersError.wrap(e) from e

    def run_command_with_response(self, command: Callable[[SftpChannel], T]) -> T:
        """Like run_command(), returning what ``command`` returns"""
        channel = self._validate_sftp_is_connected()
        try:
            return command(channel)
        except Exception as e:
            raise SftpTransfersError.wrap(e) from e

    def _validate_sftp_is_connected(self) -> SftpChannel:
        state = self._state
        if not isinstance(state, Connected) or not state.channel.is_connected():
            raise SftpTransfersError(SFTP_NOT_CONNECTED, kind=ErrorKind.NOT_CONNECTED)
        return state.channel
