from dataclasses import dataclass, fields
from typing import Any, ClassVar, Dict, Optional, Tuple
from urllib.parse import SplitResult, urlsplit

from .base import BaseRemoteConfig, ValidationError


def _table_values(cls: type, data: Dict[str, Any]) -> Dict[str, Any]:
    """Pick the keys of a TOML table that name fields of cls."""
    names = {f.name for f in fields(cls)} - {"name", "type"}
    return {key: value for key, value in data.items() if key in names}


def _split_url(url: str) -> SplitResult:
    # A bare host ("ftp.example.com") parses as a network location
    return urlsplit(url if "://" in url else f"//{url}")


@dataclass
class LocalConfig(BaseRemoteConfig):
    root: Optional[str] = None

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "LocalConfig":
        return cls(name=name, type="local", **_table_values(cls, data))

    def validate(self) -> None:
        if self.type != "local":
            raise ValidationError(f"Expected type 'local', got '{self.type}'")

        if self.root is not None and not isinstance(self.root, str):
            raise ValidationError("Local root must be a string")


@dataclass
class ServerConfig(BaseRemoteConfig):
    """A remote reached over the network at ``url``, rooted at ``base_path``.

    A port or path carried by the URL fills ``port`` and ``base_path`` unless
    the table sets them explicitly.
    """

    url: str
    port: int = 0
    username: Optional[str] = None
    password: Optional[str] = None
    base_path: str = "/"

    remote_type: ClassVar[str]
    schemes: ClassVar[Tuple[str, ...]]

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "ServerConfig":
        kind = cls.remote_type.upper()
        if "url" not in data:
            raise ValidationError(f"{kind} configuration requires 'url' field")
        if not isinstance(data["url"], str):
            raise ValidationError(f"{kind} URL must be a string")

        values = _table_values(cls, data)
        parts = _split_url(data["url"])
        if parts.scheme and parts.scheme not in cls.schemes:
            raise ValidationError(
                f"{kind} URL scheme must be one of: {', '.join(cls.schemes)}"
            )
        try:
            port = parts.port
        except ValueError:
            raise ValidationError(f"{kind} URL has an invalid port")

        if port is not None:
            values.setdefault("port", port)
        if parts.path not in ("", "/"):
            values.setdefault("base_path", parts.path)
        return cls(name=name, type=cls.remote_type, **values)

    def validate(self) -> None:
        kind = self.remote_type.upper()
        if self.type != self.remote_type:
            raise ValidationError(f"Expected type '{self.remote_type}', got '{self.type}'")

        if not self.url:
            raise ValidationError(f"{kind} URL cannot be empty")

        port = self.port
        if not isinstance(port, int) or isinstance(port, bool) or not 1 <= port <= 65535:
            raise ValidationError(f"{kind} port must be an integer between 1 and 65535")

        if not isinstance(self.base_path, str) or not self.base_path.startswith("/"):
            raise ValidationError(f"{kind} base_path must be an absolute path")

    @property
    def host(self) -> str:
        """The server host, without scheme, credentials, port or path."""
        return _split_url(self.url).hostname or self.url


@dataclass
class FtpConfig(ServerConfig):
    port: int = 21
    username: Optional[str] = "anonymous"
    password: Optional[str] = "anonymous@"
    tls: bool = False

    remote_type = "ftp"
    schemes = ("ftp", "ftps")

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "FtpConfig":
        config = super().from_dict(name, data)
        # An ftps:// URL turns TLS on unless the table says otherwise
        if "tls" not in data and _split_url(config.url).scheme == "ftps":
            config.tls = True
        return config  # type: ignore[return-value]

    def validate(self) -> None:
        super().validate()

        if not isinstance(self.tls, bool):
            raise ValidationError("TLS setting must be a boolean")


@dataclass
class SftpConfig(ServerConfig):
    port: int = 22
    key_filename: Optional[str] = None

    remote_type = "sftp"
    schemes = ("sftp",)

    def validate(self) -> None:
        super().validate()

        if not self.password and not self.key_filename:
            raise ValidationError(
                "SFTP configuration requires either 'password' or 'key_filename'"
            )
