"""Filesystem facade handing out file handles over one transfer session."""

import io
import logging
from contextlib import AbstractContextManager
from pathlib import PurePath, PurePosixPath
from types import TracebackType
from typing import Optional, Union
from typing_extensions import Self

from remotefile.filedescriptor import FileDescriptor, FileType
from remotefile.handle import RemoteFileHandle
from remotefile.instrumentation import Instrumentation, default_instrumentation
from remotefile.sessions.session import TransferSession

logger = logging.getLogger(__name__)


class RemoteFileSystem(AbstractContextManager):
    """Opens, creates, removes and stats files through a transfer session.

    Entering the filesystem enters its session; handles it returns share that
    session and must not be used after the filesystem exits.

    Example:
        with RemoteFileSystem(FtpSession("ftp.example.com"), "/pub") as fs:
            with fs.create("notes.txt") as handle:
                handle.write(b"hello")
    """

    def __init__(
        self,
        session: TransferSession,
        base_path: Union[str, PurePath] = "/",
        instrumentation: Optional[Instrumentation] = None,
    ) -> None:
        self._session = session
        self._base_path = PurePosixPath(base_path)
        self._instrumentation = (
            instrumentation if instrumentation is not None else default_instrumentation
        )
        self._entered = False

    def __enter__(self) -> Self:
        self._session.__enter__()
        self._entered = True
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        if self._entered:
            self._session.__exit__(exc_type, exc_val, exc_tb)
            self._entered = False

    @property
    def name(self) -> str:
        """Human-readable name for this filesystem."""
        return self._session.name()

    @property
    def session(self) -> TransferSession:
        return self._session

    def open(self, path: Union[str, PurePath]) -> RemoteFileHandle:
        """Open an existing file. Raises NotFoundError for missing paths."""
        resolved = self._resolve_path(path)
        with self._instrumentation.track("open", resolved):
            self._session.file_size(resolved)
            return self._handle(resolved)

    def create(self, path: Union[str, PurePath]) -> RemoteFileHandle:
        """Create an empty file, truncating any existing one, and open it."""
        resolved = self._resolve_path(path)
        with self._instrumentation.track("create", resolved):
            self._session.store_from(resolved, io.BytesIO(b""), 0)
            return self._handle(resolved)

    def remove(self, path: Union[str, PurePath]) -> None:
        resolved = self._resolve_path(path)
        with self._instrumentation.track("remove", resolved):
            self._session.remove(resolved)

    def stat(self, path: Union[str, PurePath]) -> FileDescriptor:
        resolved = self._resolve_path(path)
        with self._instrumentation.track("stat", resolved):
            return FileDescriptor(
                path=resolved,
                filetype=FileType.FILE,
                size=self._session.file_size(resolved),
                modified_time=self._session.modification_time(resolved),
            )

    def _handle(self, path: PurePath) -> RemoteFileHandle:
        return RemoteFileHandle(
            self._session, path, instrumentation=self._instrumentation
        )

    def _resolve_path(self, path: Union[str, PurePath]) -> PurePath:
        """Resolve a path relative to the base path."""
        if isinstance(path, str):
            path = PurePosixPath(path)
        if path.is_absolute():
            return path
        return self._base_path / path
