"""Bounded health verification of a candidate environment.

``HealthVerifier.run_health_checks`` polls ``<candidate>``'s health endpoint
up to ``health_check_retries`` times.  An attempt succeeds only on HTTP 200
with a JSON body whose ``status`` is ``"healthy"``; anything else (other
status codes, malformed bodies, transport errors, timeouts) counts as an
unhealthy attempt.  Attempts are separated by a fixed
``health_check_interval`` -- there is no backoff, so total verification time
stays predictable.

Each attempt is published as a ``HealthCheckAttempted`` event.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from bluegreen.domain.enums import HealthOutcome
from bluegreen.domain.events import HealthCheckAttempted
from bluegreen.domain.values import HealthCheckAttempt
from bluegreen.infrastructure.config import DeploymentConfig
from bluegreen.infrastructure.event_bus import AsyncEventBus

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


class HealthVerifier:
    """Polls a candidate environment until it is healthy or attempts run out.

    Parameters
    ----------
    config:
        Supplies the URL template, per-attempt timeout, retry count and
        inter-attempt interval.
    event_bus:
        Optional bus receiving one ``HealthCheckAttempted`` per attempt.
    client:
        Optional ``httpx.AsyncClient``.  When omitted a client is opened and
        closed around each ``run_health_checks`` call.
    sleep:
        Awaitable sleep used between attempts (injectable for tests).
    """

    def __init__(
        self,
        config: DeploymentConfig,
        event_bus: AsyncEventBus | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: SleepFn | None = None,
    ) -> None:
        self._config = config
        self._event_bus = event_bus
        self._client = client
        self._sleep = sleep or asyncio.sleep

    def health_check_url(self, environment: str) -> str:
        return self._config.health_check_url(environment)

    async def run_health_checks(self, candidate_environment: str, deployment_id: str = "") -> bool:
        """Return ``True`` on the first healthy attempt, ``False`` once all fail."""
        url = self.health_check_url(candidate_environment)
        retries = self._config.health_check_retries
        logger.info(
            "Running health checks against %s (deployment=%s, attempts=%d)",
            url, deployment_id, retries,
        )

        if self._client is not None:
            return await self._run(self._client, candidate_environment, url, deployment_id)
        async with httpx.AsyncClient(follow_redirects=False) as client:
            return await self._run(client, candidate_environment, url, deployment_id)

    async def _run(
        self,
        client: httpx.AsyncClient,
        environment: str,
        url: str,
        deployment_id: str,
    ) -> bool:
        retries = self._config.health_check_retries
        for number in range(1, retries + 1):
            attempt = await self._check_once(client, environment, url, number)
            await self._publish(attempt, deployment_id)

            if attempt.healthy:
                logger.info(
                    "Health check passed (deployment=%s, attempt=%d/%d)",
                    deployment_id, number, retries,
                )
                return True

            logger.warning(
                "Health check failed (deployment=%s, attempt=%d/%d): %s",
                deployment_id, number, retries, attempt.detail,
            )
            if number < retries:
                await self._sleep(self._config.health_check_interval)

        logger.error(
            "All %d health checks failed for %s (deployment=%s)",
            retries, environment, deployment_id,
        )
        return False

    async def _check_once(
        self,
        client: httpx.AsyncClient,
        environment: str,
        url: str,
        number: int,
    ) -> HealthCheckAttempt:
        def attempt(outcome: HealthOutcome, status_code: int | None = None, detail: str = "") -> HealthCheckAttempt:
            return HealthCheckAttempt(
                attempt_number=number,
                outcome=outcome,
                environment=environment,
                url=url,
                status_code=status_code,
                detail=detail,
            )

        timeout = self._config.health_check_timeout
        try:
            # httpx times each read separately; cap the attempt as a whole.
            response = await asyncio.wait_for(client.get(url, timeout=timeout), timeout)
        except asyncio.TimeoutError:
            return attempt(HealthOutcome.ERROR, detail=f"timeout: no response within {timeout}s")
        except httpx.TimeoutException as exc:
            return attempt(HealthOutcome.ERROR, detail=f"timeout: {exc!r}")
        except httpx.HTTPError as exc:
            return attempt(HealthOutcome.ERROR, detail=f"request error: {exc!r}")

        if response.status_code != 200:
            return attempt(
                HealthOutcome.UNHEALTHY,
                status_code=response.status_code,
                detail=f"HTTP {response.status_code}",
            )

        try:
            body: Any = response.json()
        except ValueError as exc:
            return attempt(
                HealthOutcome.ERROR,
                status_code=response.status_code,
                detail=f"malformed body: {exc}",
            )

        status = body.get("status") if isinstance(body, dict) else None
        if status != "healthy":
            return attempt(
                HealthOutcome.UNHEALTHY,
                status_code=response.status_code,
                detail=f"reported status {status!r}",
            )
        return attempt(HealthOutcome.HEALTHY, status_code=response.status_code)

    async def _publish(self, attempt: HealthCheckAttempt, deployment_id: str) -> None:
        if self._event_bus is None:
            return
        await self._event_bus.publish(
            HealthCheckAttempted(
                source_id="health-verifier",
                deployment_id=deployment_id,
                attempt=attempt,
                max_attempts=self._config.health_check_retries,
            )
        )
