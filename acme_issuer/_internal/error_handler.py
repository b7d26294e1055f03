"""Release a provisioned challenge artifact however its block ends."""
import functools
import logging
import os
import signal
from types import TracebackType
from typing import Any
from typing import Callable
from typing import Dict
from typing import List
from typing import Optional
from typing import Type

from acme_issuer import errors

logger = logging.getLogger(__name__)


def terminating_signals() -> List[int]:
    """Signals that would end the process while an artifact is live."""
    if os.name == "nt":
        return []
    return [signum for signum in (signal.SIGTERM, signal.SIGHUP, signal.SIGQUIT,
                                  signal.SIGXCPU, signal.SIGXFSZ)
            if signal.getsignal(signum) != signal.SIG_IGN]


class ExitHandler:
    """Call ``release`` exactly once when the ``with`` block is left.

    Usage::

        with ExitHandler(fulfiller.cleanup, handle):
            fulfiller.provision(handle)
            ...

    The block may end normally, raise, or be cut short by one of
    `terminating_signals`. A signal turns into `.errors.SignalExit` inside
    the block; that exception is suppressed, and the signal is delivered to
    the previous handler once ``release`` has run. Signals arriving during
    ``release`` are deferred the same way. ``SystemExit`` leaves without
    releasing. A failing ``release`` is logged and never replaces the
    exception raised by the block.

    """
    def __init__(self, release: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        self._release: Optional[Callable[[], Any]] = functools.partial(
            release, *args, **kwargs)
        self._previous_handlers: Dict[int, Any] = {}
        self._deferred: List[int] = []
        self._in_block = False

    def __enter__(self) -> 'ExitHandler':
        self._in_block = True
        for signum in terminating_signals():
            previous = signal.getsignal(signum)
            # None: the current handler was not installed from Python
            if previous is not None:
                self._previous_handlers[signum] = previous
                signal.signal(signum, self._on_signal)
        return self

    def __exit__(self, exc_type: Optional[Type[BaseException]],
                 exc_value: Optional[BaseException],
                 trace: Optional[TracebackType]) -> bool:
        self._in_block = False
        if exc_type is not SystemExit:
            if exc_type is not None:
                logger.debug("Releasing after %s", exc_type.__name__,
                             exc_info=(exc_type, exc_value, trace))
            self._run_release()
        self._restore_signal_handlers()
        deferred, self._deferred = self._deferred, []
        for signum in deferred:
            logger.debug("Delivering deferred signal %s", signum)
            os.kill(os.getpid(), signum)
        return exc_type is errors.SignalExit

    def _run_release(self) -> None:
        release, self._release = self._release, None
        if release is None:
            return
        try:
            release()
        except Exception as error:  # pylint: disable=broad-except
            logger.error("Encountered exception during cleanup: %s", error)

    def _restore_signal_handlers(self) -> None:
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()

    def _on_signal(self, signum: int, unused_frame: Any) -> None:
        self._deferred.append(signum)
        if self._in_block:
            raise errors.SignalExit
