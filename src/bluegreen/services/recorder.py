"""Deployment recorder -- serializable audit history of deployment sessions.

Subscribes to the coordinator's event bus and keeps every lifecycle and
health-check event, queryable per deployment and exportable as JSON for the
audit / metrics pipeline.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from bluegreen.domain.enums import DeploymentStatus
from bluegreen.domain.events import (
    DeploymentFailed,
    DeploymentStatusChanged,
    DomainEvent,
    HealthCheckAttempted,
)
from bluegreen.domain.values import HealthCheckAttempt
from bluegreen.infrastructure.event_bus import AsyncEventBus, EventStore
from bluegreen.infrastructure.serialization import event_to_dict


class DeploymentRecorder:
    """Append-only audit history fed from an ``AsyncEventBus``.

    Parameters
    ----------
    event_bus:
        If given, the recorder subscribes to every event on it.
    max_events:
        Cap on retained events (0 = unlimited).
    """

    def __init__(self, event_bus: AsyncEventBus | None = None, max_events: int = 0) -> None:
        self._store = EventStore(max_size=max_events)
        if event_bus is not None:
            self.attach(event_bus)

    def attach(self, event_bus: AsyncEventBus) -> None:
        event_bus.subscribe_all(self.record)

    def record(self, event: DomainEvent) -> None:
        self._store.append(event)

    # -- queries ------------------------------------------------------------

    def query(
        self,
        deployment_id: str | None = None,
        event_type: type[DomainEvent] | None = None,
        limit: int = 0,
    ) -> list[DomainEvent]:
        return list(self._store.query(event_type=event_type, deployment_id=deployment_id, limit=limit))

    def status_timeline(self, deployment_id: str) -> list[DeploymentStatus]:
        """Statuses the deployment moved through, in order (excluding ``created``)."""
        return [
            e.status
            for e in self.query(deployment_id, DeploymentStatusChanged)
            if isinstance(e, DeploymentStatusChanged) and e.status is not None
        ]

    def health_attempts(self, deployment_id: str) -> list[HealthCheckAttempt]:
        return [
            e.attempt
            for e in self.query(deployment_id, HealthCheckAttempted)
            if isinstance(e, HealthCheckAttempted) and e.attempt is not None
        ]

    def failures(self, deployment_id: str | None = None) -> list[DeploymentFailed]:
        return [
            e for e in self.query(deployment_id, DeploymentFailed)
            if isinstance(e, DeploymentFailed)
        ]

    @property
    def events(self) -> list[DomainEvent]:
        return self.query()

    def __len__(self) -> int:
        return len(self._store)

    # -- export -------------------------------------------------------------

    def to_dict(self) -> list[dict[str, Any]]:
        return [event_to_dict(e) for e in self.events]

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    def write(self, path: str | Path) -> Path:
        """Write the JSON history to *path* and return it."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.to_json(), encoding="utf-8")
        return target
