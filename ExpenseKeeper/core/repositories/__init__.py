"""
Repositories translating between database rows and domain records.

- :mod:`ExpenseKeeper.core.repositories.expenses` – Expense CRUD and filtered listing.
- :mod:`ExpenseKeeper.core.repositories.categories` – Category CRUD with case-insensitive uniqueness.
- :mod:`ExpenseKeeper.core.repositories.app_settings` – Key/value application settings.
- :mod:`ExpenseKeeper.core.repositories.export_queue` – Export queue items and their sparse updates.

Each repository borrows the connection of a :class:`~ExpenseKeeper.core.database.Database`
per call and never caches rows.
"""
