"""Domain exceptions for the blue-green deployment coordinator.

All domain-specific exceptions inherit from ``BlueGreenError`` so callers
(the CLI in particular) can catch the full family with a single ``except``
clause.  Phase errors carry the deployment id and phase name so they can be
logged and surfaced without extra lookups.

Verification failure is deliberately *not* an exception: ``verify_deployment``
reports it as a ``False`` return.
"""

from __future__ import annotations

from typing import Any


class BlueGreenError(Exception):
    """Base exception for all coordinator errors."""

    def __init__(self, message: str = "", details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = details or {}


# ---------------------------------------------------------------------------
# Session / ordering errors
# ---------------------------------------------------------------------------

class ConcurrencyError(BlueGreenError):
    """Raised when a session is already in progress (or never was)."""

    def __init__(
        self,
        message: str = "A deployment is already in progress",
        deployment_id: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.deployment_id = deployment_id


class NoDeploymentInProgress(ConcurrencyError):
    """Raised when a phase is called without a session or out of order."""

    def __init__(
        self,
        message: str = "No deployment in progress",
        deployment_id: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, deployment_id, details)


class InvalidTransitionError(BlueGreenError):
    """Raised when a ``Deployment`` is asked to leave the state machine."""

    def __init__(
        self,
        message: str = "Invalid status transition",
        current: str = "",
        requested: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.current = current
        self.requested = requested


# ---------------------------------------------------------------------------
# Phase execution errors
# ---------------------------------------------------------------------------

class PhaseError(BlueGreenError):
    """Common base for errors raised at a coordinator phase boundary."""

    def __init__(
        self,
        message: str = "Deployment phase failed",
        deployment_id: str = "",
        phase: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.deployment_id = deployment_id
        self.phase = phase


class DeploymentExecutionError(PhaseError):
    """Raised when pushing an artifact to the inactive environment fails."""


class SwitchError(PhaseError):
    """Raised when the traffic cutover (pointer write) fails."""


class FinalizationError(PhaseError):
    """Raised when a switched deployment cannot be finalized."""


class RollbackError(PhaseError):
    """Raised when restoring the pre-cutover pointer fails."""


# ---------------------------------------------------------------------------
# Pointer errors
# ---------------------------------------------------------------------------

class InvalidEnvironmentError(BlueGreenError):
    """Raised when a name outside the configured blue/green pair is used."""

    def __init__(
        self,
        message: str = "Unknown environment",
        environment: str = "",
        allowed: tuple[str, ...] = (),
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.environment = environment
        self.allowed = allowed


class PointerStoreError(BlueGreenError):
    """Raised when the persisted environment pointer cannot be read or written.

    A *missing* record is not an error (it is bootstrapped); an unreadable
    or corrupted one is.
    """

    def __init__(
        self,
        message: str = "Environment pointer store failure",
        location: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.location = location
