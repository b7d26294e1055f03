"""Logging for the acme-issuer command.

The log file lives in ``--logs-dir``, which is only known once the command
line is parsed. Until then `pre_arg_parse_setup` keeps every record in a
`StartupBuffer` and lets only warnings through to the terminal.
`post_arg_parse_setup` opens the log file, replays the buffer into it and
applies ``-v``/``-q`` to the terminal.

Both steps install a `sys.excepthook` built on `report_fatal`: the user
sees one line per failure, the log file gets the traceback.

"""
import functools
import logging
import logging.handlers
import os
import sys
import tempfile
import traceback
from types import TracebackType
from typing import IO
from typing import Optional
from typing import Tuple
from typing import Type
from typing import TypeVar

from acme import messages
from acme_issuer import configuration
from acme_issuer import errors
from acme_issuer import util
from acme_issuer._internal import constants

CLI_FMT = "%(message)s"
FILE_FMT = "%(asctime)s:%(levelname)s:%(name)s:%(message)s"

LOG_FILE_MAX_BYTES = 2 ** 20
"""Size of one log file. A run is not expected to write more."""

HandlerT = TypeVar("HandlerT", bound=logging.Handler)

logger = logging.getLogger(__name__)


class TerminalHandler(logging.StreamHandler):
    """Log to stderr, with warnings and errors in red on a terminal."""

    def __init__(self, stream: Optional[IO] = None) -> None:
        super().__init__(stream)
        self.colored = self.stream.isatty()

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        if self.colored and record.levelno >= logging.WARNING:
            return f"{util.ANSI_SGR_RED}{line}{util.ANSI_SGR_RESET}"
        return line


class StartupBuffer(logging.handlers.BufferingHandler):
    """Hold every record until it can be written to a log file."""

    def __init__(self) -> None:
        super().__init__(capacity=0)

    def shouldFlush(self, record: logging.LogRecord) -> bool:
        return False

    def replay(self, handler: logging.Handler) -> None:
        """Hand the held records to ``handler`` and forget them."""
        self.acquire()
        try:
            for record in self.buffer:
                handler.handle(record)
            self.buffer = []
        finally:
            self.release()

    def dump(self) -> Optional[str]:
        """Write the held records to a new private temporary file.

        :returns: path of the file, or ``None`` when nothing was logged
        :rtype: str

        """
        if not self.buffer:
            return None
        fd, path = tempfile.mkstemp(prefix="acme-issuer-", suffix=".log")
        handler = logging.StreamHandler(os.fdopen(fd, "w"))
        handler.setFormatter(logging.Formatter(FILE_FMT))
        try:
            self.replay(handler)
        finally:
            handler.stream.close()
            handler.close()
        return path


def pre_arg_parse_setup() -> None:
    """Buffer all records and show only warnings until arguments are parsed."""
    terminal = TerminalHandler()
    terminal.setFormatter(logging.Formatter(CLI_FMT))
    terminal.setLevel(constants.QUIET_LOGGING_LEVEL)
    buffer = StartupBuffer()

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(buffer)
    root_logger.addHandler(terminal)

    util.atexit_register(logging.shutdown)
    sys.excepthook = functools.partial(
        startup_except_hook, buffer,
        debug="--debug" in sys.argv,
        quiet="--quiet" in sys.argv or "-q" in sys.argv)


def post_arg_parse_setup(config: configuration.NamespaceConfig) -> None:
    """Move logging to the log file and apply the requested verbosity.

    :param acme_issuer.configuration.NamespaceConfig config: Configuration object

    """
    root_logger = logging.getLogger()
    buffer = _find_handler(root_logger, StartupBuffer)
    terminal = _find_handler(root_logger, TerminalHandler)

    file_handler, log_path = open_log_file(config)
    root_logger.addHandler(file_handler)
    root_logger.removeHandler(buffer)
    buffer.replay(file_handler)
    buffer.close()

    if config.quiet:
        level = constants.QUIET_LOGGING_LEVEL
    else:
        level = constants.DEFAULT_LOGGING_LEVEL - config.verbose_count * 10
    terminal.setLevel(level)
    logger.debug("Terminal logging level set at %d", level)

    if not config.quiet:
        print(f"Saving debug log to {log_path}", file=sys.stderr)
    sys.excepthook = functools.partial(
        except_hook, debug=config.debug, quiet=config.quiet, log_path=log_path)


def open_log_file(config: configuration.NamespaceConfig) -> Tuple[logging.Handler, str]:
    """Open ``acme-issuer.log`` in ``config.logs_dir``, one file per run.

    The previous file is rotated away unless ``config.max_log_backups``
    is 0, in which case the same file keeps growing.

    :returns: file handler and absolute path to the log file
    :rtype: tuple

    :raises .errors.Error: if the log directory is not writable

    """
    path = os.path.join(config.logs_dir, constants.LOG_FILE)
    try:
        util.make_or_verify_dir(config.logs_dir, 0o700)
        handler = logging.handlers.RotatingFileHandler(
            path, maxBytes=LOG_FILE_MAX_BYTES, backupCount=config.max_log_backups)
    except OSError as error:
        raise errors.Error(util.PERM_ERR_FMT.format(error))
    if config.max_log_backups:
        handler.doRollover()
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_FMT))
    return handler, path


def _find_handler(root_logger: logging.Logger, handler_type: Type[HandlerT]) -> HandlerT:
    for handler in root_logger.handlers:
        if isinstance(handler, handler_type):
            return handler
    raise errors.Error(
        f"No {handler_type.__name__} installed, was pre_arg_parse_setup called?")


def describe_error(error: BaseException) -> str:
    """One line summary of an exception acme-issuer does not define."""
    if messages.is_acme_error(error):
        # the type URN namespace means nothing to the user
        return str(error).replace(messages.ERROR_PREFIX, "")
    return "".join(traceback.format_exception_only(type(error), error)).rstrip()


def report_fatal(exc_type: Type[BaseException], exc_value: BaseException,
                 trace: Optional[TracebackType], debug: bool) -> None:
    """Log the exception that ends the run.

    An `errors.Error` is shown as its message. Other exceptions are shown
    as unexpected, with their one line summary. The traceback reaches the
    terminal only with ``debug`` or for exceptions outside `Exception`.

    """
    exc_info = (exc_type, exc_value, trace)
    if issubclass(exc_type, KeyboardInterrupt):
        logger.error("Exiting due to user request.")
    elif debug or not issubclass(exc_type, Exception):
        logger.error("Exiting abnormally:", exc_info=exc_info)
    else:
        logger.debug("Exiting abnormally:", exc_info=exc_info)
        if issubclass(exc_type, errors.Error):
            logger.error(str(exc_value))
        else:
            logger.error("An unexpected error occurred:")
            logger.error(describe_error(exc_value))


def except_hook(exc_type: Type[BaseException], exc_value: BaseException,
                trace: Optional[TracebackType], debug: bool, quiet: bool,
                log_path: Optional[str]) -> None:
    """Report the exception and exit with a nonzero status.

    Outside quiet mode, the exit message points at ``log_path``.

    """
    report_fatal(exc_type, exc_value, trace, debug)
    _exit(exc_type, quiet, log_path)


def startup_except_hook(buffer: StartupBuffer, exc_type: Type[BaseException],
                        exc_value: BaseException, trace: Optional[TracebackType],
                        debug: bool, quiet: bool) -> None:
    """`except_hook` for a run that died before the log file was opened.

    The buffered records, the report included, go to a temporary file.
    ``--help`` and argument errors raise `SystemExit`, which never reaches
    `sys.excepthook`, so they leave no such file behind.

    """
    report_fatal(exc_type, exc_value, trace, debug)
    _exit(exc_type, quiet, buffer.dump())


def _exit(exc_type: Type[BaseException], quiet: bool, log_path: Optional[str]) -> None:
    if quiet or log_path is None or issubclass(exc_type, KeyboardInterrupt):
        sys.exit(1)
    exit_with_advice(log_path)


def exit_with_advice(log_path: str) -> None:
    """Exit with a message pointing at the debug log.

    :param str log_path: path to file or directory containing the log

    """
    where = (f"logfiles in {log_path}" if os.path.isdir(log_path)
             else f"logfile {log_path}")
    sys.exit(f"See the {where} or re-run acme-issuer with -v for more details.")
