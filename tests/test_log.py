"""Tests for ExpenseKeeper.log.log."""
import logging
import time

from PySide6.QtCore import QtMsgType

from ExpenseKeeper.log.log import (
    TankHandler,
    qt_message_handler,
    set_logging_level,
    setup_logging,
)
from ExpenseKeeper.signals import signals
from tests.base import BaseTestCase


class LogModuleTests(BaseTestCase):
    """
    Each test starts with a fresh root logger configured by
    setup_logging(enable_stream_handler=False).
    """

    def setUp(self) -> None:
        super().setUp()
        logging.disable(logging.NOTSET)

        self.tank = setup_logging(enable_stream_handler=False,
                                  enable_qt_handler=False,
                                  log_level=logging.DEBUG)
        self.root_logger = logging.getLogger()

    def tearDown(self) -> None:
        self.tank.clear_logs()
        super().tearDown()

    def test_setup_installs_single_tank(self):
        tanks = [h for h in self.root_logger.handlers if isinstance(h, TankHandler)]
        self.assertEqual(tanks, [self.tank])
        self.assertFalse(
            any(isinstance(h, logging.StreamHandler) and not isinstance(h, TankHandler)
                for h in self.root_logger.handlers)
        )

        again = setup_logging(enable_stream_handler=True, enable_qt_handler=False)
        self.assertEqual(len(self.root_logger.handlers), 2)
        self.assertIn(again, self.root_logger.handlers)
        self.assertNotIn(self.tank, self.root_logger.handlers)
        self.tank = again

    def test_tank_filters_by_level(self):
        self.tank.clear_logs()
        logging.debug('debug message')
        logging.info('info message')
        logging.warning('warning message')

        self.assertEqual(len(self.tank.get_logs()), 3)
        warnings = self.tank.get_logs(logging.WARNING)
        self.assertEqual(len(warnings), 1)
        self.assertIn('warning message', warnings[0])
        self.assertIn('WARNING', warnings[0])

        self.tank.clear_logs()
        self.assertEqual(self.tank.get_logs(), [])

    def test_error_records_emit_signal(self):
        calls = []

        def on_error_logged():
            calls.append(True)

        signals.errorLogged.connect(on_error_logged)
        try:
            logging.warning('not yet')
            self.assertEqual(calls, [])
            logging.error('broken')
        finally:
            signals.errorLogged.disconnect(on_error_logged)
        self.assertEqual(calls, [True])

    def test_set_logging_level(self):
        set_logging_level(logging.WARNING)
        self.assertEqual(self.root_logger.level, logging.WARNING)
        self.assertEqual(self.tank.level, logging.WARNING)

        self.tank.clear_logs()
        logging.info('hidden')
        self.assertEqual(self.tank.get_logs(), [])

    def test_set_logging_level_rejects_invalid_values(self):
        with self.assertRaises(ValueError):
            set_logging_level('DEBUG')
        with self.assertRaises(ValueError):
            set_logging_level(15)

    def test_qt_messages_are_forwarded(self):
        self.tank.clear_logs()
        qt_message_handler(QtMsgType.QtInfoMsg, None, '  qt info  ')
        qt_message_handler(QtMsgType.QtWarningMsg, None, 'qt warning')
        qt_message_handler(QtMsgType.QtCriticalMsg, None, 'qt critical')

        logs = self.tank.get_logs()
        self.assertEqual(len(logs), 3)
        self.assertTrue(logs[0].endswith('qt info'))
        self.assertEqual(len(self.tank.get_logs(logging.ERROR)), 1)

    def test_tank_bulk_append_speed(self):
        self.tank.clear_logs()
        n = 10_000
        t0 = time.perf_counter()
        for i in range(n):
            logging.debug('bulk-%05d', i)
        elapsed = time.perf_counter() - t0

        self.assertEqual(len(self.tank.get_logs()), n)
        self.assertLessEqual(elapsed, 2.0)
