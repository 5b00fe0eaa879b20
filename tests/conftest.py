"""Shared fixtures for the blue-green coordinator test suite."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from bluegreen.infrastructure.artifacts import ArtifactPusher
from bluegreen.infrastructure.config import DeploymentConfig
from bluegreen.infrastructure.event_bus import AsyncEventBus
from bluegreen.infrastructure.pointer_store import InMemoryPointerStore
from bluegreen.services.coordinator import DeploymentCoordinator
from bluegreen.services.health import HealthVerifier
from bluegreen.services.recorder import DeploymentRecorder

HEALTHY = (200, {"status": "healthy"})
DEGRADED = (200, {"status": "degraded"})
UNAVAILABLE = (503, {"status": "unavailable"})


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class RecordingSleep:
    """Awaitable stand-in for ``asyncio.sleep`` that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakePusher(ArtifactPusher):
    """Records pushes; raises *error* instead when one is set."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[tuple[str, str, str]] = []

    async def push(self, environment: str, version: str, deployment_id: str = "") -> None:
        self.calls.append((environment, version, deployment_id))
        if self.error is not None:
            raise self.error


class ScriptedHealthEndpoint:
    """``httpx.MockTransport`` handler replaying a script of responses.

    Each step is ``(status_code, body)`` or an exception to raise.  The last
    step repeats once the script is exhausted.
    """

    def __init__(self, script: list[Any]) -> None:
        self.script = list(script)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        step = self.script[min(len(self.requests), len(self.script)) - 1]
        if isinstance(step, Exception):
            raise step
        status, body = step
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        return httpx.Response(status, text=body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def config() -> DeploymentConfig:
    """Three quick attempts against ``*.shop.test``."""
    return DeploymentConfig(
        base_domain="shop.test",
        health_check_timeout=2.0,
        health_check_retries=3,
        health_check_interval=5.0,
        switch_delay=10.0,
        auto_rollback=True,
    )


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def bus() -> AsyncEventBus:
    return AsyncEventBus()


@pytest.fixture
def recorder(bus: AsyncEventBus) -> DeploymentRecorder:
    return DeploymentRecorder(bus)


@pytest.fixture
def store(config: DeploymentConfig) -> InMemoryPointerStore:
    """Pointer store starting on the blue role."""
    return InMemoryPointerStore(config.environments, active="blue")


@pytest.fixture
def pusher() -> FakePusher:
    return FakePusher()


@pytest.fixture
def make_endpoint() -> Callable[..., ScriptedHealthEndpoint]:
    return ScriptedHealthEndpoint


@pytest.fixture
def make_coordinator(
    config: DeploymentConfig,
    store: InMemoryPointerStore,
    pusher: FakePusher,
    bus: AsyncEventBus,
    sleep: RecordingSleep,
) -> Callable[..., DeploymentCoordinator]:
    """Factory building a coordinator around a scripted health endpoint.

    ``script`` defaults to an always-healthy endpoint; keyword overrides are
    applied to the config with ``dataclasses.replace`` semantics.
    """

    def _make(script: list[Any] | None = None, **config_overrides: Any) -> DeploymentCoordinator:
        cfg = DeploymentConfig.from_dict({**config.to_dict(), **config_overrides})
        endpoint = ScriptedHealthEndpoint(script or [HEALTHY])
        verifier = HealthVerifier(cfg, event_bus=bus, client=endpoint.client(), sleep=sleep)
        coordinator = DeploymentCoordinator(
            cfg,
            pointer_store=store,
            verifier=verifier,
            pusher=pusher,
            event_bus=bus,
            sleep=sleep,
        )
        coordinator.endpoint = endpoint  # type: ignore[attr-defined]
        return coordinator

    return _make
