# FinSync Connectivity
# Network reachability probe used to gate sync runs

import logging
import socket
from collections.abc import Callable
from typing import Optional
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)


class ConnectivityChecker:
    """
    Reports whether the API is reachable.

    A TCP connection to the host and port of ``base_url`` is tried first.
    When ``ping`` is given (normally ``ApiClient.ping``), the server must also
    answer ``GET /ping``.
    """

    def __init__(self, base_url: str, timeout: float = 3.0, ping: Optional[Callable[[], bool]] = None):
        parts = urlsplit(base_url)
        self.host = parts.hostname or ""
        self.port = parts.port or (443 if parts.scheme == "https" else 80)
        self.timeout = timeout
        self._ping = ping
        self.last_error: Optional[str] = None

    def is_online(self) -> bool:
        if not self.host:
            self.last_error = "no host configured"
            return False
        try:
            with socket.create_connection((self.host, self.port), timeout=self.timeout):
                pass
        except OSError as e:
            self.last_error = str(e)
            logger.debug("Host %s:%s unreachable: %s", self.host, self.port, e)
            return False
        if self._ping is not None and not self._ping():
            self.last_error = "ping failed"
            logger.debug("Host %s:%s reachable but /ping failed", self.host, self.port)
            return False
        self.last_error = None
        return True

    __call__ = is_online
