"""
ExpenseKeeper: local-first personal expense tracking with CSV backups to Google Drive.

This package provides:

- :mod:`ExpenseKeeper.core` – SQLite storage, schema migrations, repositories, validation and Google authentication.
- :mod:`ExpenseKeeper.export` – CSV generation, local export files and the Google Drive upload queue.
- :mod:`ExpenseKeeper.app` – The reducer-driven application store, filters, totals and the biometric lock.
- :mod:`ExpenseKeeper.settings` – Application paths, config.json management and currency data.
- :mod:`ExpenseKeeper.log` – Logging setup with an in-memory log tank.

"""

import sys

# Fail on Python < 3.11
if not (sys.version_info.major == 3 and sys.version_info.minor >= 11):
    raise RuntimeError('ExpenseKeeper requires Python 3.11 or higher.')

__version__ = '0.0.0'
__author__ = 'Gergely Wootsch'
__license__ = 'GPL-3.0'
__copyright__ = 'Copyright (C) 2025 Gergely Wootsch'
__description__ = 'ExpenseKeeper: local-first personal expense tracking with CSV backups to Google Drive.'
__url__ = 'https://github.com/wgergely/ExpenseTracker'
__email__ = 'hello+ExpenseTracker@gergely-wootsch.com'

from .log import log

log.setup_logging()
