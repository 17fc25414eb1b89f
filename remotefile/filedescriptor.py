from dataclasses import dataclass
from datetime import datetime
from pathlib import PurePath
from enum import Enum, auto
from typing import Optional

from remotefile.readers import STRUCTURED_SUFFIXES


class FileType(Enum):
    FILE = auto()
    DIRECTORY = auto()


@dataclass(frozen=True)
class FileDescriptor:
    """Snapshot of a remote object's metadata, as reported by its session."""

    path: PurePath
    filetype: FileType = FileType.FILE
    size: Optional[int] = None
    modified_time: Optional[datetime] = None

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def is_directory(self) -> bool:
        return self.filetype == FileType.DIRECTORY

    @property
    def is_file(self) -> bool:
        return self.filetype == FileType.FILE

    @property
    def is_json(self) -> bool:
        """Whether read_all() will treat the file as structured JSON."""
        return self.path.suffix.lower() in STRUCTURED_SUFFIXES

    def __str__(self) -> str:
        details = []
        if self.size is not None:
            details.append(f"{self.size} bytes")
        if self.modified_time is not None:
            details.append(f"modified {self.modified_time:%Y-%m-%d %H:%M:%S}")
        suffix = f" ({', '.join(details)})" if details else ""
        return f"{self.path.as_posix()}{suffix}"
