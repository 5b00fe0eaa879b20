"""Domain events for the blue-green deployment coordinator.

Every event is a frozen dataclass inheriting from ``DomainEvent``.  The
coordinator and the health verifier publish them on an event bus injected
by the caller; recorders, audit pipelines and console renderers subscribe.

All events carry a ``timestamp`` and a ``source_id`` identifying the
originating component.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from .enums import DeploymentStatus, Phase
from .values import HealthCheckAttempt

# ---------------------------------------------------------------------------
# Base event
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events."""

    timestamp: float = field(default_factory=time.time)
    source_id: str = ""


# ---------------------------------------------------------------------------
# Session lifecycle events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DeploymentCreated(DomainEvent):
    """A deployment session was started."""

    deployment_id: str = ""
    active_environment: str = ""
    inactive_environment: str = ""


@dataclass(frozen=True)
class DeploymentStatusChanged(DomainEvent):
    """A session moved along the state machine."""

    deployment_id: str = ""
    previous_status: DeploymentStatus | None = None
    status: DeploymentStatus | None = None
    version: str | None = None


@dataclass(frozen=True)
class DeploymentFailed(DomainEvent):
    """A phase failed; the session is in that phase's ``*_failed`` status."""

    deployment_id: str = ""
    phase: Phase | None = None
    status: DeploymentStatus | None = None
    error_message: str = ""


@dataclass(frozen=True)
class DeploymentReleased(DomainEvent):
    """A session reached a lock-releasing status; the coordinator is idle."""

    deployment_id: str = ""
    final_status: DeploymentStatus | None = None
    active_environment: str = ""


# ---------------------------------------------------------------------------
# Cutover events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TrafficSwitched(DomainEvent):
    """The environment pointer was written.

    Emitted for the cutover and for a post-cutover revert (``revert=True``).
    """

    deployment_id: str = ""
    from_environment: str = ""
    to_environment: str = ""
    revert: bool = False


# ---------------------------------------------------------------------------
# Verification events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HealthCheckAttempted(DomainEvent):
    """One health-check attempt against a candidate environment completed."""

    deployment_id: str = ""
    attempt: HealthCheckAttempt | None = None
    max_attempts: int = 0
