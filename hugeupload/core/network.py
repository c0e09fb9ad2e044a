"""
Network status notifications.

The package performs no probing of its own: the caller reports
connectivity changes and they are fanned out to every registered
session.
"""
from enum import Enum
from typing import List, Protocol

from .logging import get_logger

logger = get_logger('network')


class NetworkStatus(Enum):
    """Connectivity as last reported by the caller."""
    ONLINE = 'online'
    OFFLINE = 'offline'


class NetworkStatusObserver(Protocol):
    """Anything that reacts to online/offline notifications."""

    def set_network_status(self, online: bool) -> None: ...


class NetworkMonitor:
    """
    Fan-out of online/offline notifications.

    Example:
        >>> monitor = NetworkMonitor()
        >>> monitor.subscribe(session)
        >>> monitor.set_offline()   # session halts before its next chunk
        >>> monitor.set_online()    # session resumes where it stopped
    """

    def __init__(self, online: bool = True):
        self._status = NetworkStatus.ONLINE if online else NetworkStatus.OFFLINE
        self._observers: List[NetworkStatusObserver] = []

    @property
    def status(self) -> NetworkStatus:
        return self._status

    @property
    def is_online(self) -> bool:
        return self._status is NetworkStatus.ONLINE

    def subscribe(self, observer: NetworkStatusObserver) -> 'NetworkMonitor':
        """Register an observer and bring it up to date with the current status."""
        if observer not in self._observers:
            self._observers.append(observer)
            if not self.is_online:
                observer.set_network_status(False)
        return self

    def unsubscribe(self, observer: NetworkStatusObserver) -> 'NetworkMonitor':
        """Stop notifying an observer."""
        self._observers = [o for o in self._observers if o is not observer]
        return self

    def set_online(self) -> None:
        self._update(NetworkStatus.ONLINE)

    def set_offline(self) -> None:
        self._update(NetworkStatus.OFFLINE)

    def _update(self, status: NetworkStatus) -> None:
        if status is self._status:
            return
        self._status = status
        logger.info(f"Network is {status.value}, notifying {len(self._observers)} observer(s)")
        for observer in list(self._observers):
            observer.set_network_status(status is NetworkStatus.ONLINE)
