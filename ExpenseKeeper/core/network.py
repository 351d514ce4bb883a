"""Network reachability backed by Qt's QNetworkInformation."""
import logging
from typing import Optional

from PySide6 import QtCore, QtNetwork

from ..signals import signals

Reachability = QtNetwork.QNetworkInformation.Reachability


def is_reachable(reachability: Reachability) -> bool:
    """Map a Qt reachability value to online/offline.

    ``Unknown`` counts as online so platforms without a reachability backend still upload.
    """
    return reachability in (Reachability.Online, Reachability.Unknown)


class NetworkMonitor(QtCore.QObject):
    """Emits :attr:`onlineChanged` when internet reachability flips.

    Signals:
        onlineChanged (bool): The new online state.
    """
    onlineChanged = QtCore.Signal(bool)

    def __init__(self, parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent=parent)
        self._online = True
        self._info: Optional[QtNetwork.QNetworkInformation] = None

    @property
    def online(self) -> bool:
        return self._online

    def start(self) -> bool:
        """Load the platform backend and start listening.

        Returns:
            bool: False if no reachability backend is available. The monitor then reports online.
        """
        if not QtNetwork.QNetworkInformation.loadDefaultBackend():
            logging.warning('No network information backend available, assuming online.')
            return False

        self._info = QtNetwork.QNetworkInformation.instance()
        self._info.reachabilityChanged.connect(self.on_reachability_changed)
        self.on_reachability_changed(self._info.reachability())
        logging.debug(f'Network monitor using backend "{self._info.backendName()}"')
        return True

    @QtCore.Slot(object)
    def on_reachability_changed(self, reachability: Reachability) -> None:
        online = is_reachable(reachability)
        if online == self._online:
            return

        self._online = online
        logging.info(f'Network is {"online" if online else "offline"}')
        self.onlineChanged.emit(online)
        signals.onlineChanged.emit(online)
