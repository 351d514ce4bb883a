"""
Export package for ExpenseKeeper.

- :mod:`ExpenseKeeper.export.csvbuilder` – CSV documents of expenses.
- :mod:`ExpenseKeeper.export.manager` – Local export files.
- :mod:`ExpenseKeeper.export.drive` – Uploads of queued exports to Google Drive.
"""
