"""Sequential readers for remote files.

:func:`open_reader` picks a reader from a file's name and leading content:

* files without a ``.json`` suffix are read line by line (:class:`LineReader`)
* ``.json`` files holding an array are read element by element
  (:class:`JSONArrayReader`)
* any other ``.json`` file is decoded as a single value (:class:`JSONObjectReader`)

All three share the same loop::

    reader = handle.read_all()
    while reader.next():
        user = User(name="", age=0)
        reader.scan(user)

Text files scan into a :class:`collections.UserString`::

    line = UserString("")
    while reader.next():
        reader.scan(line)

``next()`` never raises. Decoding errors surface from ``scan()``, and failures
while classifying a ``.json`` file surface from :func:`open_reader` itself.
"""

import dataclasses
import io
import logging
from abc import ABCMeta, abstractmethod
from collections import UserString
from collections.abc import MutableMapping, MutableSequence
from enum import Enum, auto
from types import TracebackType
from typing import Any, BinaryIO, Dict, Iterator, List, Optional, TYPE_CHECKING
from typing_extensions import Self

import ijson

from remotefile.exceptions import ClientError, DecodeError, InvalidArgumentError

if TYPE_CHECKING:
    from remotefile.handle import RemoteFileHandle

logger = logging.getLogger(__name__)

STRUCTURED_SUFFIXES = (".json",)

# First bytes that can open a JSON value
_JSON_VALUE_START = frozenset(b'[{"-0123456789tfn')

_NOTHING = object()


class FormatToken(Enum):
    ARRAY = auto()
    OBJECT = auto()
    TEXT = auto()


class _RawStream(io.RawIOBase):
    """Exposes a session stream through the raw interface BufferedReader wraps."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:  # type: ignore[override]
        data = self._stream.read(len(b))
        n = len(data)
        b[:n] = data
        return n

    def close(self) -> None:
        if self.closed:
            return
        try:
            self._stream.close()
        finally:
            super().close()


def _buffered(stream: BinaryIO) -> io.BufferedReader:
    return io.BufferedReader(_RawStream(stream))


class SequentialReader(metaclass=ABCMeta):
    format: FormatToken

    def __init__(self, stream: io.BufferedReader) -> None:
        self._stream = stream

    @abstractmethod
    def next(self) -> bool:
        """
        Report whether another value is available. Never raises.
        """

    @abstractmethod
    def _take(self) -> Any:
        """
        Consume the current value and return it.
        """

    def scan(self, target: Any) -> None:
        """
        Bind the current value into target.

        Args:
            target: A dict, a list, a dataclass instance or any object
                accepting attributes

        Raises:
            DecodeError: If the content is malformed or does not fit the target
            InvalidArgumentError: If the target cannot be written into
        """
        bind(self._take(), target)

    def __iter__(self) -> Iterator[Any]:
        while self.next():
            yield self._take()

    def close(self) -> None:
        self._stream.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.close()


class LineReader(SequentialReader):
    format = FormatToken.TEXT

    def __init__(self, stream: io.BufferedReader) -> None:
        super().__init__(stream)
        self._line: Optional[str] = None
        self._done = False
        # Set when a read fails mid-stream; iteration stops at that point
        self.error: Optional[BaseException] = None

    def next(self) -> bool:
        if self._done:
            return False
        try:
            raw = self._stream.readline()
        except (ClientError, OSError) as e:
            logger.error("Failed to read next line: %s", e)
            self.error = e
            raw = b""
        if not raw:
            self._done = True
            self._line = None
            return False
        if raw.endswith(b"\n"):
            raw = raw[:-1]
        if raw.endswith(b"\r"):
            raw = raw[:-1]
        self._line = raw.decode("utf-8", errors="surrogateescape")
        return True

    def _take(self) -> str:
        return self._line if self._line is not None else ""

    def scan(self, target: Any) -> None:
        """
        Copy the current line into target.

        Raises:
            InvalidArgumentError: If target is not a UserString; target is left untouched
        """
        if not isinstance(target, UserString):
            raise InvalidArgumentError(
                f"Text lines scan into a UserString, not {type(target).__name__}"
            )
        target.data = self._take()


class JSONArrayReader(SequentialReader):
    format = FormatToken.ARRAY

    def __init__(self, stream: io.BufferedReader) -> None:
        super().__init__(stream)
        self._items = ijson.items(stream, "item", use_float=True)
        self._pending: Any = _NOTHING
        self._error: Optional[BaseException] = None
        self._done = False

    def next(self) -> bool:
        if self._pending is not _NOTHING or self._error is not None:
            return True
        if self._done:
            return False
        try:
            self._pending = next(self._items)
        except StopIteration:
            self._done = True
            return False
        except (ijson.JSONError, ClientError, OSError) as e:
            # Reported by the following scan()
            self._error = e
            self._done = True
        return True

    def _take(self) -> Any:
        if not self.next():
            raise DecodeError("No more elements in JSON array")
        if self._error is not None:
            error, self._error = self._error, None
            if isinstance(error, ijson.JSONError):
                raise DecodeError(f"Malformed JSON array element: {error}") from error
            raise error
        value, self._pending = self._pending, _NOTHING
        return value


class JSONObjectReader(SequentialReader):
    format = FormatToken.OBJECT

    def __init__(self, stream: io.BufferedReader) -> None:
        super().__init__(stream)
        self._scanned = False

    def next(self) -> bool:
        return not self._scanned

    def _take(self) -> Any:
        if self._scanned:
            raise DecodeError("JSON document already decoded")
        # Single shot, whether or not decoding succeeds
        self._scanned = True
        try:
            return next(ijson.items(self._stream, "", use_float=True))
        except StopIteration:
            raise DecodeError("Unexpected end of JSON input") from None
        except ijson.JSONError as e:
            raise DecodeError(f"Malformed JSON document: {e}") from e


def bind(value: Any, target: Any) -> None:
    """Copy a decoded JSON value into a mutable target."""
    if isinstance(target, UserString):
        if not isinstance(value, str):
            raise DecodeError(f"Cannot bind JSON {_kind(value)} to a string")
        target.data = value
    elif isinstance(target, MutableMapping):
        if not isinstance(value, dict):
            raise DecodeError(f"Cannot bind JSON {_kind(value)} to a mapping")
        target.clear()
        target.update(value)
    elif isinstance(target, MutableSequence):
        if not isinstance(value, list):
            raise DecodeError(f"Cannot bind JSON {_kind(value)} to a sequence")
        target[:] = value
    elif (
        isinstance(target, type)
        or _is_frozen_dataclass(target)
        or not (dataclasses.is_dataclass(target) or hasattr(target, "__dict__"))
    ):
        raise InvalidArgumentError(
            f"Cannot scan into {type(target).__name__}; pass a mutable target"
        )
    else:
        if not isinstance(value, dict):
            raise DecodeError(
                f"Cannot bind JSON {_kind(value)} to {type(target).__name__}"
            )
        _bind_attributes(value, target)


def _is_frozen_dataclass(target: Any) -> bool:
    return dataclasses.is_dataclass(target) and target.__dataclass_params__.frozen


def _attribute_names(target: Any) -> List[str]:
    """Fields a decoded object may set: instance attributes, then class-level ones."""
    if dataclasses.is_dataclass(target):
        return [f.name for f in dataclasses.fields(target)]

    names = dict.fromkeys(vars(target))
    for cls in type(target).__mro__[:-1]:
        namespace = vars(cls)
        names.update(dict.fromkeys(namespace.get("__annotations__", {})))
        for name, member in namespace.items():
            if name.startswith("_") or callable(member):
                continue
            if isinstance(member, (property, classmethod, staticmethod)):
                continue
            names[name] = None
    return list(names)


def _bind_attributes(value: Dict[str, Any], target: Any) -> None:
    # Keys match attribute names exactly first, then case-insensitively
    names = _attribute_names(target)
    folded = {name.casefold(): name for name in reversed(names)}

    try:
        for key, item in value.items():
            if key in names:
                setattr(target, key, item)
            elif key.casefold() in folded:
                setattr(target, folded[key.casefold()], item)
            elif not dataclasses.is_dataclass(target):
                setattr(target, key, item)
    except AttributeError as e:
        raise InvalidArgumentError(
            f"Cannot scan into {type(target).__name__}: {e}"
        ) from e


def _kind(value: Any) -> str:
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    if isinstance(value, str):
        return "string"
    if value is None:
        return "null"
    return type(value).__name__


def _peek_token(stream: io.BufferedReader) -> bytes:
    """Return the first non-whitespace byte without consuming it."""
    while True:
        chunk = stream.peek(1)
        if not chunk:
            raise DecodeError("Unexpected end of JSON input")
        stripped = chunk.lstrip()
        if stripped:
            token = stripped[:1]
            if token[0] not in _JSON_VALUE_START:
                raise DecodeError(
                    f"Invalid character {token!r} looking for beginning of value"
                )
            return token
        # Leading whitespace carries no content
        stream.read(len(chunk))


def classify(handle: "RemoteFileHandle", stream: io.BufferedReader) -> FormatToken:
    """Decide the format of a file from its name and the stream's first token."""
    if handle.path.suffix.lower() not in STRUCTURED_SUFFIXES:
        return FormatToken.TEXT
    if _peek_token(stream) == b"[":
        return FormatToken.ARRAY
    return FormatToken.OBJECT


def open_reader(handle: "RemoteFileHandle") -> SequentialReader:
    """
    Open the sequential reader matching the content of a file.

    Text and array readers continue from the handle's current offset. The
    object reader always decodes from the start of the file, on a stream
    reopened at offset 0.

    Args:
        handle: Open handle of the file to read

    Returns:
        A LineReader, JSONArrayReader or JSONObjectReader

    Raises:
        DecodeError: If a .json file is empty or does not start with a JSON value
        NotFoundError: If the file does not exist
        TransportError: If the session fails while opening or peeking
    """
    with handle.instrumentation.track("read_all", handle.path):
        stream = _buffered(handle.open_stream())
        try:
            token = classify(handle, stream)
        except (ClientError, OSError) as e:
            logger.error("Failed to decode JSON token of %s: %s", handle.path, e)
            stream.close()
            raise

        if token == FormatToken.TEXT:
            return LineReader(stream)
        if token == FormatToken.ARRAY:
            return JSONArrayReader(stream)

        # A single value is decoded whole, so start over from the first byte
        stream.close()
        return JSONObjectReader(_buffered(handle.open_stream(0)))
