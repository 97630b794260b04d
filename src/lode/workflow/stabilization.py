"""Control-plane stabilization gate.

Right after provisioning, the API endpoint may resolve and accept connections
before it serves requests. No workload is submitted until the gate returns.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from lode.core.exceptions import ProviderUnavailableError
from lode.utils.logging import get_logger
from lode.utils.retry import poll_until

logger = get_logger(__name__)

DEFAULT_FIXED_DELAY = 30.0


class StabilizationGate:
    """Holds the workflow until the control plane is serving."""

    def __init__(
        self,
        fixed_delay: float = DEFAULT_FIXED_DELAY,
        settle_seconds: float = 0.0,
        max_attempts: int = 8,
        min_wait: float = 2.0,
        max_wait: float = 60.0,
    ):
        """Initialize the gate.

        Args:
            fixed_delay: Default duration for ``wait``
            settle_seconds: Delay before the first probe in ``wait_until_ready``
            max_attempts: Probe attempts before giving up
            min_wait: Minimum backoff between probes (seconds)
            max_wait: Maximum backoff between probes (seconds)
        """
        self.fixed_delay = fixed_delay
        self.settle_seconds = settle_seconds
        self.max_attempts = max_attempts
        self.min_wait = min_wait
        self.max_wait = max_wait

    async def wait(self, duration: float | None = None) -> None:
        """Suspend for a fixed duration, without probing anything."""
        delay = self.fixed_delay if duration is None else duration
        logger.info("stabilization_fixed_delay", seconds=delay)
        await asyncio.sleep(delay)

    async def wait_until_ready(self, probe: Callable[[], Awaitable[Any]]) -> Any:
        """Repeat a health probe with exponential backoff until it succeeds.

        The probe succeeds when it returns a truthy value. Transient provider
        errors (unreachable, 5xx) count as "not ready"; anything else, such as
        an AuthError, propagates at once.

        Args:
            probe: Coroutine function, e.g. a control-plane version query

        Returns:
            The probe's first successful result

        Raises:
            ReadinessTimeoutError: If every attempt fails
        """
        if self.settle_seconds > 0:
            await self.wait(self.settle_seconds)

        logger.info("stabilization_polling", max_attempts=self.max_attempts)
        result = await poll_until(
            probe,
            "control plane to serve requests",
            max_attempts=self.max_attempts,
            min_wait=self.min_wait,
            max_wait=self.max_wait,
            retry_on=(ProviderUnavailableError,),
        )
        logger.info("control_plane_stable", probe_result=str(result))
        return result
