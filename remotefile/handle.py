"""Random-access file handle over a transfer session.

A :class:`RemoteFileHandle` keeps a path and a logical offset and turns every
read and write into a single retrieve or store call on its session, starting
at that offset. No stream is kept open between calls.

Example:
    with FtpSession("ftp.example.com", username="user", password="pass") as session:
        with RemoteFileHandle(session, "/data/report.csv") as handle:
            handle.seek(-10, Whence.END)
            tail = handle.read(10)
"""

import io
import logging
import operator
import os
from datetime import datetime
from enum import IntEnum
from pathlib import PurePath, PurePosixPath
from typing import BinaryIO, Optional, Union, TYPE_CHECKING

from remotefile.exceptions import InvalidArgumentError, OutOfRangeError
from remotefile.instrumentation import Instrumentation, default_instrumentation
from remotefile.readers import open_reader
from remotefile.sessions.session import TransferSession

if TYPE_CHECKING:
    from remotefile.readers import SequentialReader

logger = logging.getLogger(__name__)


class Whence(IntEnum):
    START = os.SEEK_SET
    CURRENT = os.SEEK_CUR
    END = os.SEEK_END


class RemoteFileHandle(io.RawIOBase):
    def __init__(
        self,
        session: TransferSession,
        path: Union[str, PurePath],
        *,
        instrumentation: Optional[Instrumentation] = None,
    ) -> None:
        """
        Initialize a handle over an existing remote path.

        Args:
            session: Connected session the handle issues its operations on.
                The handle does not own it and never closes it.
            path: The remote path of the file
            instrumentation: Receives an event for every operation; defaults
                to logging instrumentation
        """
        super().__init__()
        self._session = session
        self._path = path if isinstance(path, PurePath) else PurePosixPath(path)
        self._offset = 0
        self._instrumentation = (
            instrumentation if instrumentation is not None else default_instrumentation
        )
        self.modified_time: Optional[datetime] = None

    @property
    def path(self) -> PurePath:
        return self._path

    @property
    def name(self) -> str:
        return self._path.as_posix()

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def session(self) -> TransferSession:
        return self._session

    @property
    def instrumentation(self) -> Instrumentation:
        return self._instrumentation

    def readable(self) -> bool:
        return not self.closed

    def writable(self) -> bool:
        return not self.closed

    def seekable(self) -> bool:
        return not self.closed

    def tell(self) -> int:
        self._check_open()
        return self._offset

    def readinto(self, buffer) -> int:  # type: ignore[override]
        """Read up to len(buffer) bytes at the current offset and advance past them."""
        self._check_open()
        with self._instrumentation.track("read", self._path):
            n = self._retrieve(buffer, self._offset)
            self._offset += n
        return n

    def read_at(self, buffer, offset: int) -> int:
        """Read up to len(buffer) bytes at offset, leaving the stored offset alone."""
        self._check_open()
        with self._instrumentation.track("read_at", self._path):
            offset = self._check_offset(offset)
            return self._retrieve(buffer, offset)

    def write(self, data) -> int:  # type: ignore[override]
        """Store all of data at the current offset and advance past it."""
        self._check_open()
        with self._instrumentation.track("write", self._path):
            n = self._store(data, self._offset)
            self._offset += n
        return n

    def write_at(self, data, offset: int) -> int:
        """Store all of data at offset, leaving the stored offset alone."""
        self._check_open()
        with self._instrumentation.track("write_at", self._path):
            offset = self._check_offset(offset)
            return self._store(data, offset)

    def seek(self, offset: int, whence: int = Whence.START) -> int:
        """
        Move the stored offset, validating the target against the remote size.

        The size is queried on every call. A target outside ``[0, size]`` is
        rejected, never clamped. On failure the stored offset is unchanged
        and the raised error reports position 0.

        Raises:
            InvalidArgumentError: If offset is not an integer or whence is
                not START, CURRENT or END
            OutOfRangeError: If the target falls outside the file
        """
        self._check_open()
        with self._instrumentation.track("seek", self._path):
            offset = self._as_offset(offset)
            try:
                reference = Whence(whence)
            except ValueError:
                raise InvalidArgumentError(f"Invalid whence value: {whence}") from None

            size = self._session.file_size(self._path)

            if reference == Whence.START:
                target = offset
            elif reference == Whence.CURRENT:
                target = self._offset + offset
            else:
                target = size + offset

            if target < 0 or target > size:
                raise OutOfRangeError(
                    f"Seek target {target} outside [0, {size}] for '{self._path}'"
                )

            self._offset = target
            return target

    def open_stream(self, offset: Optional[int] = None) -> BinaryIO:
        """Open a fresh stream at offset, or at the stored offset. The caller closes it."""
        self._check_open()
        with self._instrumentation.track("open_stream", self._path):
            start = self._offset if offset is None else offset
            start = self._check_offset(start)
            return self._session.retrieve_from(self._path, start)

    def read_all(self) -> "SequentialReader":
        """Open the sequential reader matching this file's format."""
        self._check_open()
        return open_reader(self)

    def close(self) -> None:
        if self.closed:
            return
        with self._instrumentation.track("close", self._path):
            super().close()

    def _retrieve(self, buffer, offset: int) -> int:
        view = memoryview(buffer).cast("B")
        with self._session.retrieve_from(self._path, offset) as stream:
            data = stream.read(len(view))
        n = len(data)
        view[:n] = data
        return n

    def _store(self, data, offset: int) -> int:
        payload = bytes(data)
        self._session.store_from(self._path, io.BytesIO(payload), offset)
        self.modified_time = self._session.modification_time(self._path)
        return len(payload)

    def _check_open(self) -> None:
        if self.closed:
            raise ValueError("I/O operation on closed file.")

    @staticmethod
    def _as_offset(offset) -> int:
        try:
            return operator.index(offset)
        except TypeError:
            raise InvalidArgumentError(
                f"Offset must be an integer, not {type(offset).__name__}"
            ) from None

    @classmethod
    def _check_offset(cls, offset) -> int:
        offset = cls._as_offset(offset)
        if offset < 0:
            raise InvalidArgumentError(f"Negative offset: {offset}")
        return offset

    def __repr__(self) -> str:
        return (
            f"<RemoteFileHandle path={self._path.as_posix()!r} "
            f"offset={self._offset} session={self._session.name()!r}>"
        )
