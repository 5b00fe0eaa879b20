"""Domain enumerations for the blue-green deployment coordinator.

These enums capture the fixed vocabularies of the domain layer: deployment
lifecycle statuses, the phase that produced a failure, and health-check
attempt outcomes.
"""

from enum import Enum


class DeploymentStatus(Enum):
    """Lifecycle status of a ``Deployment`` session."""

    IDLE = "idle"
    CREATED = "created"
    DEPLOYING = "deploying"
    DEPLOYED = "deployed"
    FAILED = "failed"
    VERIFYING = "verifying"
    VERIFIED = "verified"
    VERIFICATION_FAILED = "verification_failed"
    SWITCHING = "switching"
    SWITCHED = "switched"
    SWITCH_FAILED = "switch_failed"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    FINALIZATION_FAILED = "finalization_failed"
    ROLLING_BACK = "rolling_back"
    ROLLED_BACK = "rolled_back"
    ROLLBACK_FAILED = "rollback_failed"

    @property
    def releases_lock(self) -> bool:
        """``True`` for statuses that end a session and free the coordinator."""
        return self in _RELEASING


_RELEASING = frozenset({
    DeploymentStatus.COMPLETED,
    DeploymentStatus.ROLLED_BACK,
    DeploymentStatus.FINALIZATION_FAILED,
    DeploymentStatus.ROLLBACK_FAILED,
})


class Phase(Enum):
    """Coordinator phase names, used to label failures and log lines."""

    START = "start"
    DEPLOY = "deploy"
    VERIFY = "verify"
    SWITCH = "switch"
    FINALIZE = "finalize"
    ROLLBACK = "rollback"


class HealthOutcome(Enum):
    """Result of a single health-check attempt."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"  # got a response, but not a healthy one
    ERROR = "error"  # transport failure, timeout or undecodable body
