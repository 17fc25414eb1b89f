"""Exception hierarchy for remotefile.

Session adapters translate protocol library errors into these types and keep
the original error as ``__cause__``.
"""


class RemoteFileError(Exception):
    """Root of every error raised by remotefile."""


# Configuration Exceptions


class ConfigError(RemoteFileError):
    """The remotes file is missing or unreadable."""


class RemoteNotFoundError(ConfigError):
    """No remote with the requested name is defined."""


class ValidationError(ConfigError):
    """A remote definition holds an unusable value."""


# Session Exceptions


class ClientError(RemoteFileError):
    """A session or file operation failed."""


class ClientConnectionError(ClientError):
    """The server could not be reached or refused the session."""


class AuthenticationError(ClientError):
    """The server rejected the credentials."""


class NotFoundError(ClientError):
    """The remote path does not exist."""


class TransportError(ClientError):
    """A protocol command or data transfer failed mid-operation."""


# File Handle and Reader Exceptions


class OutOfRangeError(ClientError):
    """Seek target falls outside the remote object."""

    # A failed seek reports position 0, never the prior or requested offset
    position = 0


class InvalidArgumentError(ClientError, ValueError):
    """Unrecognized whence, negative offset, or a scan target of the wrong kind."""

    position = 0


class DecodeError(ClientError, ValueError):
    """Malformed structured content, or content that does not fit the target."""


# Storage Exceptions


class StorageError(RemoteFileError):
    """A filesystem could not be built from a URL or remote definition."""


class UnsupportedProtocolError(StorageError):
    """The URL scheme or remote type has no session adapter."""


class MissingDependencyError(StorageError):
    """The session adapter needs an optional package that is not installed."""
