"""
Long-lived connections to the services the gateway depends on.

Each configured service gets one transport (an httpx.Client bound to the
service's base address) and a typed client built on top of it.
"""

import logging
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Dict, Iterable, List, Optional

import httpx

logger = logging.getLogger(__name__)


class ConnectionPoolError(Exception):
    """A service connection could not be opened."""


TransportFactory = Callable[[str], httpx.Client]


def default_transport(address: str) -> httpx.Client:
    return httpx.Client(base_url=address, timeout=5.0)


@dataclass
class ServiceConfig:
    """How to reach one service and how to wrap its transport."""

    name: str
    address: str
    client_factory: Callable[[httpx.Client], Any] = lambda transport: transport


@dataclass
class ServiceConnection:
    name: str
    transport: httpx.Client
    client: Any


class ConnectionPool:
    """
    Named set of service connections with typed lookup and orderly teardown.
    """

    def __init__(self) -> None:
        self._services: Dict[str, ServiceConnection] = {}
        self._lock = Lock()
        self._closed = False

    @classmethod
    def build(
        cls,
        configs: Iterable[ServiceConfig],
        transport_factory: Optional[TransportFactory] = None,
    ) -> "ConnectionPool":
        """
        Open one connection per config. If any of them fails, everything
        opened so far is closed again before the error is raised.
        """
        make_transport = transport_factory or default_transport
        pool = cls()

        for config in configs:
            if config.name in pool._services:
                pool.close()
                raise ConnectionPoolError(f"duplicate service name: {config.name}")
            try:
                transport = make_transport(config.address)
            except Exception as e:
                pool.close()
                raise ConnectionPoolError(f"failed to connect to {config.name} server: {e}") from e
            try:
                client = config.client_factory(transport)
            except Exception as e:
                transport.close()
                pool.close()
                raise ConnectionPoolError(f"failed to build client for {config.name}: {e}") from e

            pool._services[config.name] = ServiceConnection(
                name=config.name,
                transport=transport,
                client=client,
            )
            logger.info("Opened connection to %s at %s", config.name, config.address)

        return pool

    def get(self, name: str) -> Optional[ServiceConnection]:
        with self._lock:
            return self._services.get(name)

    def get_client(self, name: str) -> Any:
        """Typed client for `name`, or None if no such service is configured."""
        conn = self.get(name)
        return conn.client if conn is not None else None

    def names(self) -> List[str]:
        with self._lock:
            return list(self._services)

    def connections(self) -> List[ServiceConnection]:
        with self._lock:
            return list(self._services.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._services)

    def close(self) -> None:
        """Close every connection. Safe to call repeatedly."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            services = list(self._services.values())

        for conn in services:
            try:
                conn.transport.close()
            except Exception:
                logger.exception("Error closing connection to %s", conn.name)

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def __enter__(self) -> "ConnectionPool":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
