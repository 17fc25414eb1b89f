from ftplib import FTP, FTP_TLS, error_perm, error_temp, error_reply
from datetime import datetime
from pathlib import PurePath
from types import TracebackType
from typing import BinaryIO, Optional, Union
from typing_extensions import Self
import io
import logging
import socket

from remotefile.sessions.session import TransferSession
from remotefile.exceptions import (
    AuthenticationError,
    ClientConnectionError,
    ClientError,
    NotFoundError,
    TransportError,
)

logger = logging.getLogger(__name__)

FTP_ERRORS = (error_perm, error_temp, error_reply, OSError, EOFError)

_CHUNK_SIZE = 8192


class _DataStream(io.RawIOBase):
    """Data connection of a single RETR; closing it completes the transfer."""

    def __init__(self, ftp: FTP, conn: socket.socket, remote: PurePath) -> None:
        self._ftp = ftp
        self._conn = conn
        self._remote = remote

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:  # type: ignore[override]
        try:
            return self._conn.recv_into(b)
        except OSError as e:
            raise TransportError(f"Failed to read '{self._remote}': {e}") from e

    def close(self) -> None:
        if self.closed:
            return
        try:
            self._conn.close()
            self._ftp.voidresp()
        except error_temp as e:
            # 426 is expected when the stream is closed before the transfer ends
            if not str(e).startswith("426"):
                raise TransportError(f"FTP error on '{self._remote}': {e}") from e
            logger.debug("Transfer of %s aborted early: %s", self._remote, e)
        except (error_perm, error_reply, OSError, EOFError) as e:
            raise TransportError(f"FTP error on '{self._remote}': {e}") from e
        finally:
            super().close()


class FtpSession(TransferSession):
    def __init__(
        self,
        host: str,
        *,
        port: int = 21,
        tls: bool = True,
        username: str = "",
        password: str = "",
        name: str = "",
        timeout: float = 5,
    ) -> None:
        self.host = host
        self.port = port
        self.tls = tls
        self.username = username
        self.password = password
        self.timeout = timeout
        self.ftp_client: Optional[Union[FTP, FTP_TLS]] = None
        self._name = name if name else host

    def __enter__(self) -> Self:
        try:
            self.ftp_client = FTP_TLS() if self.tls else FTP()
            self.ftp_client.connect(self.host, self.port, timeout=self.timeout)
            self._login()
        except error_perm as e:
            error_str = str(e)
            if "530" in error_str:
                raise AuthenticationError(f"Authentication failed: {error_str}")
            raise ClientConnectionError(f"FTP error: {error_str}")
        except (socket.gaierror, socket.timeout, OSError) as e:
            raise ClientConnectionError(f"Failed to connect to {self.host}: {e}")
        except (error_temp, error_reply) as e:
            raise ClientConnectionError(f"FTP error: {e}")
        logger.debug("Connected to FTP server %s:%s", self.host, self.port)
        return self

    def _login(self) -> None:
        """Authenticate and enable TLS protection if applicable."""
        assert self.ftp_client is not None, "Client not created"
        if self.tls:
            self.ftp_client.auth()  # type: ignore[union-attr]
        self.ftp_client.login(user=self.username, passwd=self.password)
        if self.tls:
            self.ftp_client.prot_p()  # type: ignore[union-attr]

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        if self.ftp_client:
            try:
                self.ftp_client.quit()
            except FTP_ERRORS:
                # If quit fails (e.g., connection already closed), force close
                self.ftp_client.close()
            self.ftp_client = None

    def name(self) -> str:
        return self._name

    def retrieve_from(self, remote: PurePath, offset: int) -> BinaryIO:
        assert self.ftp_client is not None, "Client not connected"
        try:
            self.ftp_client.voidcmd("TYPE I")
            conn = self.ftp_client.transfercmd(f"RETR {remote.as_posix()}", offset or None)
        except FTP_ERRORS as e:
            raise self._translate(remote, e) from e
        return io.BufferedReader(_DataStream(self.ftp_client, conn, remote))

    def store_from(self, remote: PurePath, stream: BinaryIO, offset: int) -> None:
        assert self.ftp_client is not None, "Client not connected"
        cmd = f"STOR {remote.as_posix()}"
        try:
            self.ftp_client.voidcmd("TYPE I")
            with self.ftp_client.transfercmd(cmd, offset or None) as conn:
                while buf := stream.read(_CHUNK_SIZE):
                    conn.sendall(buf)
            self.ftp_client.voidresp()
        except FTP_ERRORS as e:
            raise self._translate(remote, e) from e

    def file_size(self, remote: PurePath) -> int:
        assert self.ftp_client is not None, "Client not connected"
        try:
            # SIZE is only reliable in binary mode
            self.ftp_client.voidcmd("TYPE I")
            size = self.ftp_client.size(remote.as_posix())
        except FTP_ERRORS as e:
            raise self._translate(remote, e) from e
        if size is None:
            raise TransportError(f"Server did not report a size for '{remote}'")
        return size

    def modification_time(self, remote: PurePath) -> datetime:
        assert self.ftp_client is not None, "Client not connected"
        try:
            resp = self.ftp_client.voidcmd(f"MDTM {remote.as_posix()}")
        except FTP_ERRORS as e:
            raise self._translate(remote, e) from e

        # MDTM reply: 213 YYYYMMDDHHMMSS or YYYYMMDDHHMMSS.sss
        try:
            return datetime.strptime(resp[4:].strip().split(".")[0], "%Y%m%d%H%M%S")
        except ValueError as e:
            raise TransportError(f"Unexpected MDTM reply for '{remote}': {resp}") from e

    def remove(self, remote: PurePath) -> None:
        assert self.ftp_client is not None, "Client not connected"
        try:
            self.ftp_client.delete(remote.as_posix())
        except FTP_ERRORS as e:
            raise self._translate(remote, e) from e

    @staticmethod
    def _translate(remote: PurePath, e: BaseException) -> ClientError:
        if isinstance(e, error_perm) and str(e).startswith("550"):
            return NotFoundError(f"File '{remote}' not found: {e}")
        return TransportError(f"FTP error on '{remote}': {e}")
