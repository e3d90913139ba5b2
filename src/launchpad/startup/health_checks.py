"""Launchpad Dependency Health Checks.

TCP readiness probing for the backing database with an explicit retry
policy. The default policy never gives up; orchestrators that need a bound
set ``max_attempts`` or ``deadline`` and get a ``DependencyTimeout``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum
import ipaddress
import logging
import time
from typing import Any

from launchpad.core.exceptions import DependencyTimeout

logger = logging.getLogger(__name__)

LOOPBACK_NAMES = frozenset({"localhost", "localhost.localdomain", "ip6-localhost"})

ProbeFn = Callable[[str, int, float], Awaitable[bool]]
SleepFn = Callable[[float], Awaitable[None]]


class ServiceStatus(StrEnum):
    """Dependency health status."""

    HEALTHY = "healthy"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class DependencyEndpoint:
    """Network address of a required backing service."""

    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class RetryPolicy:
    """How long to keep probing a dependency.

    ``max_attempts`` and ``deadline`` both default to ``None`` which means
    the wait is unbounded.
    """

    interval: float = 1.0
    max_attempts: int | None = None
    deadline: float | None = None
    probe_timeout: float | None = None

    @property
    def is_unbounded(self) -> bool:
        return self.max_attempts is None and self.deadline is None

    @property
    def effective_probe_timeout(self) -> float:
        return self.probe_timeout if self.probe_timeout is not None else self.interval

    def describe(self) -> str:
        """Human-readable summary for reports."""
        limits = []
        if self.max_attempts is not None:
            limits.append(f"max {self.max_attempts} attempts")
        if self.deadline is not None:
            limits.append(f"deadline {self.deadline:g}s")
        bound = ", ".join(limits) if limits else "unbounded"
        return f"every {self.interval:g}s ({bound})"


@dataclass
class HealthCheckResult:
    """Result of a dependency wait."""

    service_name: str
    status: ServiceStatus
    message: str
    attempts: int = 0
    details: dict[str, Any] = field(default_factory=dict)

    def is_healthy(self) -> bool:
        """Check if the dependency is reachable."""
        return self.status == ServiceStatus.HEALTHY


def is_loopback(host: str) -> bool:
    """Return True when ``host`` names the local machine."""
    name = host.strip().strip("[]").lower()
    if name in LOOPBACK_NAMES:
        return True
    try:
        return ipaddress.ip_address(name).is_loopback
    except ValueError:
        return False


async def probe_tcp(host: str, port: int, timeout: float) -> bool:
    """Attempt one TCP connection; True when the peer accepted it."""
    try:
        _reader, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port), timeout=timeout
        )
    except (OSError, TimeoutError) as e:
        logger.debug("Probe %s:%s failed: %s", host, port, e)
        return False

    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        # Peer reset during close still proves it accepted
        pass
    return True


class DependencyWaiter:
    """Blocks until a dependency endpoint accepts TCP connections."""

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        *,
        probe: ProbeFn = probe_tcp,
        sleep: SleepFn = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.policy = policy or RetryPolicy()
        self._probe = probe
        self._sleep = sleep
        self._clock = clock

    async def wait(
        self, endpoint: DependencyEndpoint, service_name: str = "database"
    ) -> HealthCheckResult:
        """Wait for ``endpoint`` according to the retry policy.

        Loopback endpoints are skipped without probing. Probes are issued on
        a fixed cadence measured from the first attempt, so a slow probe does
        not push later attempts back.

        Raises:
            DependencyTimeout: the policy is bounded and was exhausted.
        """
        if is_loopback(endpoint.host):
            logger.info("Dependency %s is local, skipping wait", endpoint)
            return HealthCheckResult(
                service_name=service_name,
                status=ServiceStatus.SKIPPED,
                message=f"{endpoint.host} is a loopback address",
            )

        policy = self.policy
        start = self._clock()
        attempts = 0

        while True:
            attempts += 1
            if await self._probe(
                endpoint.host, endpoint.port, policy.effective_probe_timeout
            ):
                logger.info(
                    "Dependency %s reachable after %d attempt(s)", endpoint, attempts
                )
                return HealthCheckResult(
                    service_name=service_name,
                    status=ServiceStatus.HEALTHY,
                    message=f"{endpoint} is accepting connections",
                    attempts=attempts,
                    details={"host": endpoint.host, "port": endpoint.port},
                )

            if attempts == 1:
                logger.info("Waiting for %s %s ...", service_name, endpoint)
            else:
                logger.debug("Attempt %d: %s not ready", attempts, endpoint)

            if policy.max_attempts is not None and attempts >= policy.max_attempts:
                raise DependencyTimeout(
                    endpoint.host, endpoint.port, attempts, self._clock() - start
                )

            next_tick = start + attempts * policy.interval
            if policy.deadline is not None and next_tick - start > policy.deadline:
                raise DependencyTimeout(
                    endpoint.host, endpoint.port, attempts, self._clock() - start
                )

            await self._sleep(max(0.0, next_tick - self._clock()))
