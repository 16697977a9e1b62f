"""
Structured concurrency on threads: a group of tasks sharing one cancel token.
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, List, Optional

from ..MODELS.errors import OperationCancelledError
from ..settings import settings

logger = logging.getLogger(__name__)


class CancelToken:
    """
    A cancellation signal shared by every task of an operation scope.
    Cancelling a token cancels all tokens derived from it, never its parent.
    """

    def __init__(self, parent: Optional["CancelToken"] = None):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._children: List["CancelToken"] = []
        if parent is not None:
            parent._adopt(self)

    def _adopt(self, child: "CancelToken") -> None:
        with self._lock:
            if not self._event.is_set():
                self._children.append(child)
                return
        child.cancel()

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            children = list(self._children)
        for child in children:
            child.cancel()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float]) -> bool:
        """
        Sleeps up to `timeout` seconds, returning early with True once cancelled.
        """
        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError()


class TaskGroup:
    """
    Runs tasks concurrently and joins them once.

    The first task to fail cancels the group's token; tasks that have not
    started by then are skipped, tasks already running are left to finish.
    `wait()` re-raises the first failure.
    """

    def __init__(self, parent: Optional[CancelToken] = None, max_workers: Optional[int] = None):
        """
        :param parent: Token of the enclosing scope. Cancelling it cancels this group.
        :param max_workers: Thread limit, defaults to the configured concurrency.
        """
        self.token = CancelToken(parent)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or settings.max_concurrency,
            thread_name_prefix="dconverge",
        )
        self._futures: List[Future] = []
        self._lock = threading.Lock()
        self._error: Optional[BaseException] = None
        self._skipped = 0

    def go(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        self._futures.append(self._executor.submit(self._run, fn, args, kwargs))

    def _run(self, fn: Callable[..., Any], args: tuple, kwargs: dict) -> None:
        if self.token.cancelled:
            with self._lock:
                self._skipped += 1
            return
        try:
            fn(*args, **kwargs)
        except Exception as exc:
            with self._lock:
                first = self._error is None
                if first:
                    self._error = exc
            if first:
                logger.debug("task %s failed, cancelling group: %s", getattr(fn, "__name__", fn), exc)
            self.token.cancel()

    def wait(self) -> None:
        """
        Blocks until every spawned task has returned.

        :raises Exception: The first error raised by a task.
        :raises OperationCancelledError: If tasks were skipped because the parent scope was cancelled.
        """
        try:
            for future in list(self._futures):
                future.result()
        finally:
            self._executor.shutdown(wait=True)
        if self._error is not None:
            raise self._error
        if self._skipped:
            raise OperationCancelledError()
