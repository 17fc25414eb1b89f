from abc import abstractmethod, ABCMeta
from contextlib import AbstractContextManager
from datetime import datetime
from pathlib import PurePath
from typing import BinaryIO


class TransferSession(AbstractContextManager, metaclass=ABCMeta):
    @abstractmethod
    def name(self) -> str:
        """
        Name of the resource represented by the session.

        :return:
            A string representing a human-readable name.
        """

    @abstractmethod
    def retrieve_from(self, remote: PurePath, offset: int) -> BinaryIO:
        """
        Open a stream over the remote file starting at the given byte offset.

        The caller owns the returned stream and must close it.

        Args:
            remote: The remote path to the file to read
            offset: The byte offset the stream starts at

        Returns:
            A readable binary stream

        Raises:
            NotFoundError: If the remote file does not exist
            TransportError: If the underlying protocol operation fails
        """

    @abstractmethod
    def store_from(self, remote: PurePath, stream: BinaryIO, offset: int) -> None:
        """
        Write the whole of a stream into the remote file starting at the given offset.

        Args:
            remote: The remote path to the file to write
            stream: Binary stream supplying the bytes to store
            offset: The byte offset writing starts at

        Raises:
            NotFoundError: If the remote file or its directory does not exist
            TransportError: If the underlying protocol operation fails
        """

    @abstractmethod
    def file_size(self, remote: PurePath) -> int:
        """
        Query the current size of a remote file in bytes.
        """

    @abstractmethod
    def modification_time(self, remote: PurePath) -> datetime:
        """
        Query the last modification time of a remote file.
        """

    @abstractmethod
    def remove(self, remote: PurePath) -> None:
        """
        Delete a file at the specified remote path.

        Raises:
            NotFoundError: If the remote file does not exist
        """
