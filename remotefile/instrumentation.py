"""Operation instrumentation for file handles, readers and filesystems.

Every public operation runs inside :meth:`Instrumentation.track`, which records
an :class:`OperationEvent` on both the success and the failure path.

Example:
    stats = StatsInstrumentation(chain=LoggingInstrumentation())
    handle = RemoteFileHandle(session, "/data/file.txt", instrumentation=stats)
    handle.read(10)
    stats.count("read", STATUS_SUCCESS)
"""

import logging
import time
from abc import ABCMeta, abstractmethod
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)

STATUS_SUCCESS = "SUCCESS"
STATUS_ERROR = "ERROR"


@dataclass(frozen=True)
class OperationEvent:
    operation: str
    path: str
    status: str
    duration: float
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.status == STATUS_SUCCESS


class Instrumentation(metaclass=ABCMeta):
    @abstractmethod
    def record(self, event: OperationEvent) -> None:
        """
        Receive the outcome of one operation.

        Args:
            event: The operation identifier, path, status and duration
        """

    @contextmanager
    def track(self, operation: str, path: object) -> Iterator[None]:
        """Time the enclosed block and record its outcome, re-raising any error."""
        start = time.perf_counter()
        try:
            yield
        except BaseException as e:
            self.record(
                OperationEvent(
                    operation=operation,
                    path=str(path),
                    status=STATUS_ERROR,
                    duration=time.perf_counter() - start,
                    error=e,
                )
            )
            raise
        self.record(
            OperationEvent(
                operation=operation,
                path=str(path),
                status=STATUS_SUCCESS,
                duration=time.perf_counter() - start,
            )
        )


class LoggingInstrumentation(Instrumentation):
    """Logs every event at DEBUG and failures at ERROR."""

    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self._log = log if log is not None else logger

    def record(self, event: OperationEvent) -> None:
        self._log.debug(
            "%s %s %s in %.3fms",
            event.operation,
            event.path,
            event.status,
            event.duration * 1000,
        )
        if event.error is not None:
            self._log.error(
                "%s failed for %s: %s", event.operation, event.path, event.error
            )


class StatsInstrumentation(Instrumentation):
    """In-memory duration histogram keyed by operation and status."""

    def __init__(self, chain: Optional[Instrumentation] = None) -> None:
        self._chain = chain
        self._durations: Dict[Tuple[str, str], List[float]] = defaultdict(list)

    def record(self, event: OperationEvent) -> None:
        self._durations[(event.operation, event.status)].append(event.duration)
        if self._chain is not None:
            self._chain.record(event)

    def count(self, operation: str, status: str = STATUS_SUCCESS) -> int:
        return len(self._durations.get((operation, status), []))

    def durations(self, operation: str, status: str = STATUS_SUCCESS) -> List[float]:
        return list(self._durations.get((operation, status), []))

    def operations(self) -> List[Tuple[str, str]]:
        return sorted(self._durations)


default_instrumentation: Instrumentation = LoggingInstrumentation()
