"""
Readiness gate: block until every service in a ConnectionPool reports
SERVING, or fail once the deadline has passed.

One poller thread per service; results are joined and failures reported
together in a single ReadinessError.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, List, Optional

from .connections import ConnectionPool, ServiceConnection
from .models import HealthCheckResponse, HealthOutcome, HealthStatus

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.5
MIN_CHECK_TIMEOUT = 0.01
DEADLINE_GRACE = 0.1


class ReadinessError(Exception):
    """One or more services did not become healthy in time."""

    def __init__(self, failures: List[HealthOutcome]):
        details = "; ".join(f"{f.service}: {f.error}" for f in failures)
        super().__init__(f"health check failed: {details}")
        self.failures = list(failures)

    @property
    def services(self) -> List[str]:
        return [f.service for f in self.failures]


class HealthProbe(ABC):
    @abstractmethod
    def check(self, connection: ServiceConnection, timeout: float) -> HealthCheckResponse:
        """
        Ask the service behind `connection` whether it is serving.

        `timeout` is the time left before the readiness deadline; a check
        must not block longer than that.
        """


class HttpHealthProbe(HealthProbe):
    """GET <path> on the service's transport and read {"status": ...}."""

    def __init__(self, path: str = "/health", timeout: float = 2.0):
        self.path = path
        self.timeout = timeout

    def check(self, connection: ServiceConnection, timeout: float) -> HealthCheckResponse:
        # httpx treats 0 as "fail immediately"; keep a tiny floor
        limit = max(min(self.timeout, timeout), MIN_CHECK_TIMEOUT)
        resp = connection.transport.get(self.path, timeout=limit)
        resp.raise_for_status()
        return HealthCheckResponse.model_validate(resp.json())


class ReadinessGate:
    def __init__(
        self,
        probe: Optional[HealthProbe] = None,
        interval: float = DEFAULT_POLL_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.probe = probe or HttpHealthProbe()
        self.interval = interval
        self.clock = clock

    def await_healthy(
        self,
        pool: ConnectionPool,
        timeout: float,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[HealthOutcome]:
        """
        Poll every connection concurrently until all are SERVING.

        Returns the per-service outcomes on success.

        Raises:
            ReadinessError: listing every service that timed out (or was
            still polling when cancel_event fired).
        """
        connections = pool.connections()
        if not connections:
            return []

        stop = cancel_event or threading.Event()
        deadline = self.clock() + timeout

        executor = ThreadPoolExecutor(
            max_workers=len(connections),
            thread_name_prefix="readiness",
        )
        try:
            futures = {
                executor.submit(self._poll, conn, deadline, stop): conn
                for conn in connections
            }
            # a check that ignores its timeout must not hold the gate open
            wait(futures, timeout=max(0.0, deadline - self.clock()) + DEADLINE_GRACE)
        finally:
            executor.shutdown(wait=False)

        outcomes = []
        for future, conn in futures.items():
            if future.done():
                outcomes.append(future.result())
                continue
            logger.warning("Health check for %s still running at the deadline", conn.name)
            outcomes.append(
                HealthOutcome(
                    service=conn.name,
                    healthy=False,
                    error=f"health check timeout for {conn.name}",
                )
            )

        failures = [o for o in outcomes if not o.healthy]
        if failures:
            logger.error(
                "Services not healthy after %.1fs: %s",
                timeout,
                ", ".join(f.service for f in failures),
            )
            raise ReadinessError(failures)
        return outcomes

    def _poll(
        self,
        conn: ServiceConnection,
        deadline: float,
        stop: threading.Event,
    ) -> HealthOutcome:
        attempts = 0
        while True:
            if stop.is_set():
                return HealthOutcome(
                    service=conn.name,
                    healthy=False,
                    error=f"health check cancelled for {conn.name}",
                    attempts=attempts,
                )

            attempts += 1
            try:
                resp = self.probe.check(conn, max(0.0, deadline - self.clock()))
            except Exception as e:
                logger.warning("Health check error for %s: %s", conn.name, e)
            else:
                if resp.status == HealthStatus.SERVING:
                    logger.info("Service %s is serving", conn.name)
                    return HealthOutcome(service=conn.name, healthy=True, attempts=attempts)
                logger.debug("Service %s reported %s", conn.name, resp.status.value)

            remaining = deadline - self.clock()
            if remaining <= 0:
                return HealthOutcome(
                    service=conn.name,
                    healthy=False,
                    error=f"health check timeout for {conn.name}",
                    attempts=attempts,
                )
            stop.wait(min(self.interval, remaining))


def await_healthy(
    pool: ConnectionPool,
    timeout: float,
    probe: Optional[HealthProbe] = None,
    interval: float = DEFAULT_POLL_INTERVAL,
) -> List[HealthOutcome]:
    return ReadinessGate(probe=probe, interval=interval).await_healthy(pool, timeout)
