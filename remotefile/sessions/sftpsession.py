from pathlib import PurePath
from types import TracebackType
from typing import BinaryIO, Optional
from typing_extensions import Self
from datetime import datetime
import logging

import paramiko
from paramiko.ssh_exception import AuthenticationException, SSHException

from remotefile.sessions.session import TransferSession
from remotefile.exceptions import (
    AuthenticationError,
    ClientConnectionError,
    NotFoundError,
    TransportError,
)

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 32768


class SftpSession(TransferSession):
    def __init__(
        self,
        host: str,
        *,
        port: int = 22,
        username: Optional[str] = None,
        password: Optional[str] = None,
        key_filename: Optional[str] = None,
        name: Optional[str] = None,
        timeout: float = 10,
    ) -> None:
        """
        Initialize the SFTP session.

        Args:
            host: The hostname or IP address of the SFTP server
            port: The port number for the SFTP server (default: 22)
            username: The username for authentication
            password: The password for authentication
            key_filename: Path to the private key file for authentication
            name: Optional human-readable name for this session
            timeout: Connection timeout in seconds
        """
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.key_filename = key_filename
        self.timeout = timeout
        self._name = name if name else f"SFTP:{host}"

        # These will be initialized in __enter__
        self.ssh_client: Optional[paramiko.SSHClient] = None
        self.sftp_client: Optional[paramiko.SFTPClient] = None

    def __enter__(self) -> Self:
        connect_kwargs = {
            "hostname": self.host,
            "port": self.port,
            "timeout": self.timeout,
        }

        if self.username:
            connect_kwargs["username"] = self.username

        if self.password:
            connect_kwargs["password"] = self.password

        if self.key_filename:
            connect_kwargs["key_filename"] = self.key_filename
        else:
            connect_kwargs["look_for_keys"] = False
            connect_kwargs["allow_agent"] = False

        try:
            self.ssh_client = paramiko.SSHClient()
            self.ssh_client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
            self.ssh_client.connect(**connect_kwargs)
            self.sftp_client = self.ssh_client.open_sftp()
        except AuthenticationException as e:
            self._close()
            raise AuthenticationError(f"Authentication failed: {e}")
        except (SSHException, OSError) as e:
            self._close()
            raise ClientConnectionError(f"Failed to connect to SFTP server: {e}")

        logger.debug("Connected to SFTP server %s:%s", self.host, self.port)
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self._close()

    def _close(self) -> None:
        if self.sftp_client:
            self.sftp_client.close()
            self.sftp_client = None

        if self.ssh_client:
            self.ssh_client.close()
            self.ssh_client = None

    def name(self) -> str:
        return self._name

    def retrieve_from(self, remote: PurePath, offset: int) -> BinaryIO:
        assert self.sftp_client is not None, "Client not connected"
        try:
            fp = self.sftp_client.open(self._format_path(remote), "rb")
            fp.seek(offset)
        except FileNotFoundError as e:
            raise NotFoundError(f"File '{remote}' not found") from e
        except (SSHException, IOError) as e:
            raise TransportError(f"SFTP error on '{remote}': {e}") from e
        return fp  # type: ignore[return-value]

    def store_from(self, remote: PurePath, stream: BinaryIO, offset: int) -> None:
        assert self.sftp_client is not None, "Client not connected"
        try:
            # Offset 0 replaces the file, like a plain STOR
            with self.sftp_client.open(
                self._format_path(remote), "wb" if offset == 0 else "r+b"
            ) as fp:
                fp.seek(offset)
                while buf := stream.read(_CHUNK_SIZE):
                    fp.write(buf)
        except FileNotFoundError as e:
            raise NotFoundError(f"File '{remote}' not found") from e
        except (SSHException, IOError) as e:
            raise TransportError(f"SFTP error on '{remote}': {e}") from e

    def file_size(self, remote: PurePath) -> int:
        attr = self._stat(remote)
        return attr.st_size if attr.st_size is not None else 0

    def modification_time(self, remote: PurePath) -> datetime:
        attr = self._stat(remote)
        if attr.st_mtime is None:
            raise TransportError(f"Server did not report a modification time for '{remote}'")
        return datetime.fromtimestamp(attr.st_mtime)

    def remove(self, remote: PurePath) -> None:
        assert self.sftp_client is not None, "Client not connected"
        try:
            self.sftp_client.remove(self._format_path(remote))
        except FileNotFoundError as e:
            raise NotFoundError(f"File '{remote}' not found") from e
        except (SSHException, IOError) as e:
            raise TransportError(f"SFTP error on '{remote}': {e}") from e

    def _stat(self, remote: PurePath) -> paramiko.SFTPAttributes:
        assert self.sftp_client is not None, "Client not connected"
        try:
            return self.sftp_client.stat(self._format_path(remote))
        except FileNotFoundError as e:
            raise NotFoundError(f"File '{remote}' not found") from e
        except (SSHException, IOError) as e:
            raise TransportError(f"SFTP error on '{remote}': {e}") from e

    def _format_path(self, path: PurePath) -> str:
        return path.as_posix()
