"""Application-wide Qt signals.

The :data:`signals` singleton is the hub components use to announce errors, log events,
export queue changes, upload results and lock state changes without importing each other.
"""
from PySide6 import QtCore


class Signals(QtCore.QObject):
    """Centralized Qt signals for storage, export and lock events."""
    error = QtCore.Signal(str)
    errorLogged = QtCore.Signal()

    authenticationRequested = QtCore.Signal()

    exportQueueChanged = QtCore.Signal()
    uploadFinished = QtCore.Signal(object)  # UploadSummary

    lockStateChanged = QtCore.Signal(bool)  # Locked
    onlineChanged = QtCore.Signal(bool)


signals = Signals()
