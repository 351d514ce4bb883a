"""
Logging subsystem.

Modules:

- :mod:`ExpenseKeeper.log.log` – Root logger configuration, Qt message routing and the in-memory log tank.
"""
