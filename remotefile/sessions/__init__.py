"""Transfer session plugins for remotefile."""

from typing import List, Type

from remotefile.sessions.session import TransferSession
from remotefile.sessions.localsession import LocalSession
from remotefile.sessions.ftpsession import FtpSession

_session_classes: List[Type[TransferSession]] = [
    LocalSession,
    FtpSession,
]

# Try to import SFTP session
try:
    from remotefile.sessions.sftpsession import SftpSession
    _session_classes.append(SftpSession)
except ImportError:
    pass

__all__ = (
    ['TransferSession']
    + [cls.__name__ for cls in _session_classes]
)
