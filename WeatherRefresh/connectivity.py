"""Connectivity probes - answer "is the network believed unavailable?"."""
import logging
import socket
from abc import ABC, abstractmethod


class ConnectivityProbe(ABC):
    """Polled once per tick by the scheduler."""

    @abstractmethod
    def is_offline(self) -> bool:
        pass


class SocketConnectivityProbe(ConnectivityProbe):
    """
    Treat the network as available when a TCP connection to a well-known
    host succeeds within a short timeout.

    Args:
        host: Host to connect to (default: Cloudflare DNS)
        port: TCP port
        timeout: Connect timeout in seconds
    """

    def __init__(self, host: str = "1.1.1.1", port: int = 53, timeout: float = 1.5):
        self.host = host
        self.port = port
        self.timeout = timeout

    def is_offline(self) -> bool:
        try:
            with socket.create_connection((self.host, self.port), timeout=self.timeout):
                return False
        except OSError as e:
            logging.info(f"Connectivity check to {self.host}:{self.port} failed: {e}")
            return True


class StaticConnectivityProbe(ConnectivityProbe):
    """Fixed answer, flippable at runtime (airplane-mode switch, tests)."""

    def __init__(self, offline: bool = False):
        self.offline = offline

    def is_offline(self) -> bool:
        return self.offline
