import os
from datetime import datetime
from pathlib import Path, PurePath
from types import TracebackType
from typing import BinaryIO, Optional, Union
from typing_extensions import Self

from remotefile.sessions.session import TransferSession
from remotefile.exceptions import NotFoundError, TransportError

_CHUNK_SIZE = 8192


class LocalSession(TransferSession):
    """Session over the local filesystem, rooted at an optional directory."""

    def __init__(self, root: Union[str, Path, None] = None) -> None:
        self.root = Path(root) if root is not None else None

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        pass

    def name(self) -> str:
        return f"Local Storage:{self.root}" if self.root else "Local Storage"

    def retrieve_from(self, remote: PurePath, offset: int) -> BinaryIO:
        path = self._resolve(remote)
        try:
            fp = open(path, "rb")
        except FileNotFoundError as e:
            raise NotFoundError(f"File '{remote}' not found") from e
        except OSError as e:
            raise TransportError(f"Failed to open '{remote}': {e}") from e
        fp.seek(offset)
        return fp

    def store_from(self, remote: PurePath, stream: BinaryIO, offset: int) -> None:
        path = self._resolve(remote)
        try:
            # Offset 0 replaces the file, like a plain STOR
            with open(path, "wb" if offset == 0 else "r+b") as fp:
                fp.seek(offset)
                while buf := stream.read(_CHUNK_SIZE):
                    fp.write(buf)
        except FileNotFoundError as e:
            raise NotFoundError(f"File '{remote}' not found") from e
        except OSError as e:
            raise TransportError(f"Failed to write '{remote}': {e}") from e

    def file_size(self, remote: PurePath) -> int:
        return self._stat(remote).st_size

    def modification_time(self, remote: PurePath) -> datetime:
        return datetime.fromtimestamp(self._stat(remote).st_mtime)

    def remove(self, remote: PurePath) -> None:
        try:
            os.remove(self._resolve(remote))
        except FileNotFoundError as e:
            raise NotFoundError(f"File '{remote}' not found") from e
        except OSError as e:
            raise TransportError(f"Failed to remove '{remote}': {e}") from e

    def _stat(self, remote: PurePath) -> os.stat_result:
        try:
            return os.stat(self._resolve(remote))
        except FileNotFoundError as e:
            raise NotFoundError(f"File '{remote}' not found") from e
        except OSError as e:
            raise TransportError(f"Failed to stat '{remote}': {e}") from e

    def _resolve(self, remote: PurePath) -> Path:
        if self.root is None:
            return Path(remote)
        if remote.is_absolute():
            remote = remote.relative_to(remote.anchor)
        return self.root / remote
