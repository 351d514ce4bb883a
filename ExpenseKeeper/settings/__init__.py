"""
Settings package: application paths, configuration and currency data.

This package provides:

- :mod:`ExpenseKeeper.settings.lib` – Application paths, config.json management and schema validation.
- :mod:`ExpenseKeeper.settings.locale` – ISO-4217 currency data and locale-aware formatting.
"""
