"""
Application data orchestration for ExpenseKeeper.

- :mod:`ExpenseKeeper.app.state` – Immutable state snapshot, actions and the reducer.
- :mod:`ExpenseKeeper.app.selectors` – Filtered expenses and totals.
- :mod:`ExpenseKeeper.app.lock` – Idle lock timer and the credential gate interface.
- :mod:`ExpenseKeeper.app.store` – The store that drives storage calls and dispatches actions.
"""
