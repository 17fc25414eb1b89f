"""Remote definitions loaded from a TOML file.

Each top-level table names one remote and picks its kind with ``type``::

    [backup]
    type = "sftp"
    url = "sftp://backup.example.com"
    username = "ops"
    key_filename = "~/.ssh/id_ed25519"

    [scratch]
    type = "local"
    root = "/var/tmp/remotefile"
"""

import logging
import os
import tomllib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Any, Type, Optional, IO, List, Union, TYPE_CHECKING

from remotefile.exceptions import ConfigError, RemoteNotFoundError, ValidationError

if TYPE_CHECKING:
    from remotefile.filesystem import RemoteFileSystem
    from remotefile.instrumentation import Instrumentation

__all__ = ["ConfigError", "RemoteNotFoundError", "ValidationError", "BaseRemoteConfig", "Config"]

logger = logging.getLogger(__name__)


@dataclass
class BaseRemoteConfig(ABC):
    name: str
    type: str

    @classmethod
    @abstractmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "BaseRemoteConfig":
        """Build the remote from its TOML table.

        Raises:
            ValidationError: If a required key is missing
        """

    @abstractmethod
    def validate(self) -> None:
        """Check field values.

        Raises:
            ValidationError: If a field holds an unusable value
        """


def _remote_types() -> Dict[str, Type[BaseRemoteConfig]]:
    from .remotes import LocalConfig, FtpConfig, SftpConfig

    return {"local": LocalConfig, "ftp": FtpConfig, "sftp": SftpConfig}


@dataclass
class Config:
    remotes: Dict[str, BaseRemoteConfig]
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def load(cls, path: Union[str, os.PathLike]) -> "Config":
        """Read remote definitions from a TOML file on disk."""
        try:
            with open(path, "rb") as fp:
                return cls.from_file(fp)
        except FileNotFoundError:
            raise ConfigError(f"Configuration file '{path}' does not exist")

    @classmethod
    def from_file(cls, config_file: Optional[IO[bytes]]) -> "Config":
        """Read remote definitions from an open binary TOML file.

        Tables that cannot become a remote are skipped, logged and kept in
        ``warnings``.

        Raises:
            ConfigError: If no file is given or it is not valid TOML
            ValidationError: If no usable remote remains
        """
        if config_file is None:
            raise ConfigError("Configuration file not provided")

        try:
            data = tomllib.load(config_file)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Failed to parse TOML configuration: {e}")

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        config = cls(remotes={})
        for remote_name, table in data.items():
            try:
                config.remotes[remote_name] = cls._load_remote(remote_name, table)
            except ValidationError as e:
                message = f"Remote '{remote_name}': {e} - skipping"
                logger.warning(message)
                config.warnings.append(message)

        config.validate()
        return config

    @staticmethod
    def _load_remote(remote_name: str, table: Any) -> BaseRemoteConfig:
        if not isinstance(table, dict):
            raise ValidationError("configuration must be a table")
        if "type" not in table:
            raise ValidationError("missing required 'type' field")

        config_class = _remote_types().get(table["type"])
        if config_class is None:
            raise ValidationError(f"unknown remote type '{table['type']}'")

        remote = config_class.from_dict(remote_name, table)
        remote.validate()
        return remote

    def get_remote(self, name: str) -> BaseRemoteConfig:
        """
        Raises:
            RemoteNotFoundError: If no remote has that name
        """
        try:
            return self.remotes[name]
        except KeyError:
            available = ", ".join(self.remotes) or "none"
            raise RemoteNotFoundError(
                f"Remote '{name}' not found in configuration. "
                f"Available remotes: {available}"
            ) from None

    def connect(
        self, name: str, instrumentation: Optional["Instrumentation"] = None
    ) -> "RemoteFileSystem":
        """Build the filesystem for a named remote. Enter it to connect."""
        from remotefile.storage import from_config

        return from_config(self.get_remote(name), instrumentation)

    def validate(self) -> None:
        if not self.remotes:
            raise ValidationError("Configuration must contain at least one remote")

        for remote_name, remote_config in self.remotes.items():
            try:
                remote_config.validate()
            except ValidationError as e:
                raise ValidationError(f"Remote '{remote_name}': {e}")

    def list_remotes(self) -> Dict[str, str]:
        return {name: config.type for name, config in self.remotes.items()}

    def get_warnings(self) -> List[str]:
        return list(self.warnings)
