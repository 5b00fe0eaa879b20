"""Domain layer: enums, value objects, the ``Deployment`` entity, events and errors."""

from bluegreen.domain.entities import ALLOWED_TRANSITIONS, Deployment
from bluegreen.domain.enums import DeploymentStatus, HealthOutcome, Phase
from bluegreen.domain.events import (
    DeploymentCreated,
    DeploymentFailed,
    DeploymentReleased,
    DeploymentStatusChanged,
    DomainEvent,
    HealthCheckAttempted,
    TrafficSwitched,
)
from bluegreen.domain.exceptions import (
    BlueGreenError,
    ConcurrencyError,
    DeploymentExecutionError,
    FinalizationError,
    InvalidEnvironmentError,
    InvalidTransitionError,
    NoDeploymentInProgress,
    PhaseError,
    PointerStoreError,
    RollbackError,
    SwitchError,
)
from bluegreen.domain.values import EnvironmentPair, HealthCheckAttempt

__all__ = [
    # Entities / values
    "ALLOWED_TRANSITIONS",
    "Deployment",
    "EnvironmentPair",
    "HealthCheckAttempt",
    # Enums
    "DeploymentStatus",
    "HealthOutcome",
    "Phase",
    # Events
    "DomainEvent",
    "DeploymentCreated",
    "DeploymentStatusChanged",
    "DeploymentFailed",
    "DeploymentReleased",
    "TrafficSwitched",
    "HealthCheckAttempted",
    # Exceptions
    "BlueGreenError",
    "ConcurrencyError",
    "NoDeploymentInProgress",
    "InvalidTransitionError",
    "PhaseError",
    "DeploymentExecutionError",
    "SwitchError",
    "FinalizationError",
    "RollbackError",
    "InvalidEnvironmentError",
    "PointerStoreError",
]
