"""Remote definitions for remotefile, loaded from TOML."""

from .base import Config, BaseRemoteConfig, ConfigError, RemoteNotFoundError, ValidationError
from .remotes import LocalConfig, ServerConfig, FtpConfig, SftpConfig

__all__ = [
    "Config",
    "BaseRemoteConfig",
    "ConfigError",
    "RemoteNotFoundError",
    "ValidationError",
    "LocalConfig",
    "ServerConfig",
    "FtpConfig",
    "SftpConfig",
]
