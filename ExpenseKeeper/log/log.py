"""Logging setup for ExpenseKeeper.

All modules log through the root logger. :func:`setup_logging` attaches a stdout handler and
a :class:`TankHandler` that keeps the most recent formatted records in memory, so they can be
shown to the user or attached to a bug report. Qt's own diagnostics are forwarded into the
same root logger.
"""
import collections
import logging
import sys
from typing import Deque, Dict, List, Optional, Tuple

from PySide6.QtCore import QtMsgType, qInstallMessageHandler

from ..signals import signals

LOG_LEVEL = logging.DEBUG
LOG_FORMAT = '[%(asctime)s] <%(module)s> %(levelname)s:  %(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'
TANK_SIZE = 10_000

STANDARD_LEVELS = (logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL)

QT_LEVELS: Dict[QtMsgType, int] = {
    QtMsgType.QtDebugMsg: logging.DEBUG,
    QtMsgType.QtInfoMsg: logging.INFO,
    QtMsgType.QtWarningMsg: logging.WARNING,
    QtMsgType.QtCriticalMsg: logging.ERROR,
    QtMsgType.QtFatalMsg: logging.CRITICAL,
}

tank_handler: Optional['TankHandler'] = None


def set_logging_level(level: int) -> None:
    """Apply ``level`` to the root logger and every handler attached to it.

    Raises:
        ValueError: If ``level`` is not one of the standard logging levels.
    """
    if not isinstance(level, int) or isinstance(level, bool) or level not in STANDARD_LEVELS:
        raise ValueError(f'Expected one of the standard logging levels, got {level!r}.')

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers:
        handler.setLevel(level)


def qt_message_handler(mode, context, message):
    """Forward a Qt diagnostic message to the ``Qt`` logger."""
    level = QT_LEVELS.get(mode, logging.WARNING)
    logging.getLogger('Qt').log(level, message.strip())
    if mode == QtMsgType.QtFatalMsg:
        sys.exit(1)


def setup_logging(enable_stream_handler=True, enable_qt_handler=True, log_level=LOG_LEVEL):
    """Replace the root logger's handlers with the ExpenseKeeper ones.

    Args:
        enable_stream_handler (bool): Also write records to stdout.
        enable_qt_handler (bool): Install :func:`qt_message_handler` for Qt messages.
        log_level (int): Level for the root logger and the new handlers.

    Returns:
        TankHandler: The new in-memory handler.
    """
    global tank_handler

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    handlers: List[logging.Handler] = []
    if enable_stream_handler:
        handlers.append(logging.StreamHandler(sys.stdout))

    tank_handler = TankHandler()
    handlers.append(tank_handler)

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(log_level)
        root_logger.addHandler(handler)

    if enable_qt_handler:
        qInstallMessageHandler(qt_message_handler)

    return tank_handler


class TankHandler(logging.Handler):
    """Keeps the last ``capacity`` formatted records as ``(levelno, message)`` pairs.

    Records at ERROR or above also emit :attr:`Signals.errorLogged`.
    """

    def __init__(self, capacity: int = TANK_SIZE) -> None:
        super().__init__()
        self.tank: Deque[Tuple[int, str]] = collections.deque(maxlen=capacity)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.tank.append((record.levelno, self.format(record)))
        except Exception:
            self.handleError(record)
            return
        if record.levelno >= logging.ERROR:
            signals.errorLogged.emit()

    def get_logs(self, level: int = logging.NOTSET) -> List[str]:
        """Return the stored messages at or above ``level``, oldest first."""
        return [message for levelno, message in self.tank if levelno >= level]

    def clear_logs(self) -> None:
        self.tank.clear()
