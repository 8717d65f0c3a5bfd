"""Status waiter.

Polls an instance or snapshot until its status becomes ``available`` or a
fixed timeout elapses. Each wait runs on its own worker thread and delivers a
single WaitResult through a ``concurrent.futures.Future``.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from ..aws.gateway import RDSGateway
from ..models.resource import AVAILABLE, DBInstance, DBSnapshot, RDSResource, resource_kind

POLL_INTERVAL_SECONDS = 30.0
TIMEOUT_SECONDS = 30 * 60.0


class WaitStatus(Enum):
    """Terminal outcome of a wait."""

    READY = "ready"
    TIMED_OUT = "timed_out"
    ERROR = "error"


@dataclass(frozen=True)
class WaitResult:
    """Outcome delivered once per wait.

    Attributes:
        status: READY, TIMED_OUT or ERROR
        identifier: Identifier of the resource waited on
        polls: Number of describe calls issued
        last_status: Last status string read from the API
        cause: Exception raised by the describe call for ERROR
    """

    status: WaitStatus
    identifier: str
    polls: int = 0
    last_status: Optional[str] = None
    cause: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.status == WaitStatus.READY


class StatusWaiter:
    """Bounded poller for RDS resource status.

    Attributes:
        gateway: RDS gateway used to re-describe the resource
        interval: Seconds between describe calls
        timeout: Seconds after which the wait ends as TIMED_OUT
    """

    def __init__(
        self,
        gateway: RDSGateway,
        interval: float = POLL_INTERVAL_SECONDS,
        timeout: float = TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """Initialize status waiter.

        Args:
            gateway: RDS gateway
            interval: Poll interval in seconds (default: 30)
            timeout: Overall timeout in seconds (default: 1800)
            clock: Monotonic clock, replaceable for tests
            sleep: Sleep function, replaceable for tests
            logger: Logger (default: module logger)
        """
        self.gateway = gateway
        self.interval = interval
        self.timeout = timeout
        self._clock = clock
        self._sleep = sleep
        self.logger = logger or logging.getLogger(__name__)

    def wait(self, resource: RDSResource) -> "Future[WaitResult]":
        """Start waiting for a resource in the background.

        Args:
            resource: DBInstance or DBSnapshot to wait for

        Returns:
            Future resolved with the WaitResult

        Raises:
            TypeError: If resource is neither a DBInstance nor a DBSnapshot
        """
        describe = self._describer(resource)

        future: "Future[WaitResult]" = Future()
        future.set_running_or_notify_cancel()

        # Must not hold the interpreter open at exit
        worker = threading.Thread(
            target=self._resolve,
            args=(future, resource, describe),
            name=f"rdstry-wait-{resource.identifier}",
            daemon=True,
        )
        worker.start()
        return future

    def wait_for(self, resource: RDSResource) -> WaitResult:
        """Block until the resource is available, the wait fails or times out."""
        return self.wait(resource).result()

    def _resolve(
        self, future: "Future[WaitResult]", resource: RDSResource, describe: Callable[[str], RDSResource]
    ) -> None:
        try:
            future.set_result(self._poll(resource, describe))
        except BaseException as e:
            future.set_exception(e)

    def _describer(self, resource: RDSResource) -> Callable[[str], RDSResource]:
        if isinstance(resource, DBInstance):
            return self.gateway.describe_db_instance
        if isinstance(resource, DBSnapshot):
            return self.gateway.describe_db_snapshot
        raise TypeError(f"Cannot wait for {type(resource).__name__}")

    def _poll(self, resource: RDSResource, describe: Callable[[str], RDSResource]) -> WaitResult:
        kind = resource_kind(resource)
        identifier = resource.identifier
        deadline = self._clock() + self.timeout
        polls = 0
        last_status: Optional[str] = None

        while True:
            remaining = deadline - self._clock()
            if remaining > 0:
                self._sleep(min(self.interval, remaining))

            if self._clock() >= deadline:
                self.logger.info(f"Timed out after {self.timeout:.0f}s waiting for {kind} {identifier}")
                return WaitResult(WaitStatus.TIMED_OUT, identifier, polls, last_status)

            polls += 1
            try:
                current = describe(identifier)
            except Exception as e:
                self.logger.error(f"Failed to describe {kind} {identifier}: {e}")
                return WaitResult(WaitStatus.ERROR, identifier, polls, last_status, cause=e)

            last_status = current.status
            self.logger.info(f"{kind} Status: {last_status}")

            if last_status == AVAILABLE:
                return WaitResult(WaitStatus.READY, identifier, polls, last_status)
