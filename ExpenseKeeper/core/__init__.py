"""
Core package for ExpenseKeeper providing storage and platform services.

This package includes:

- :mod:`ExpenseKeeper.core.money` – Banker's rounding, summation and amount formatting.
- :mod:`ExpenseKeeper.core.dates` – ISO timestamps, date range presets and British date display.
- :mod:`ExpenseKeeper.core.validation` – Field validation for expenses and categories.
- :mod:`ExpenseKeeper.core.models` – Immutable domain records.
- :mod:`ExpenseKeeper.core.migrations` – Versioned, transactional schema migrations.
- :mod:`ExpenseKeeper.core.seeding` – Idempotent baseline rows.
- :mod:`ExpenseKeeper.core.database` – Lifecycle of the single SQLite connection.
- :mod:`ExpenseKeeper.core.repositories` – Typed access to expenses, categories, settings and the export queue.
- :mod:`ExpenseKeeper.core.auth` – Google OAuth2 credentials and bearer tokens.
- :mod:`ExpenseKeeper.core.network` – Network reachability notifications.
"""
