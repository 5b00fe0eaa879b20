"""Domain entities for the blue-green deployment coordinator.

``Deployment`` has identity (``deployment_id``) and a mutable lifecycle.  Its
status only moves along the edges of ``ALLOWED_TRANSITIONS``; the coordinator
checks phase preconditions first, so an ``InvalidTransitionError`` here means
a coordinator bug rather than an operator mistake.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field

from .enums import DeploymentStatus
from .exceptions import InvalidTransitionError

S = DeploymentStatus

# Statuses from which a session may still be rolled back / aborted.
ROLLBACK_SOURCES = frozenset({
    S.CREATED,
    S.DEPLOYING,
    S.DEPLOYED,
    S.FAILED,
    S.VERIFYING,
    S.VERIFIED,
    S.VERIFICATION_FAILED,
    S.SWITCHING,
    S.SWITCHED,
    S.SWITCH_FAILED,
})

ALLOWED_TRANSITIONS: dict[DeploymentStatus, frozenset[DeploymentStatus]] = {
    S.CREATED: frozenset({S.DEPLOYING}),
    S.DEPLOYING: frozenset({S.DEPLOYED, S.FAILED}),
    S.DEPLOYED: frozenset({S.VERIFYING}),
    S.VERIFYING: frozenset({S.VERIFIED, S.VERIFICATION_FAILED}),
    S.VERIFIED: frozenset({S.SWITCHING}),
    S.SWITCHING: frozenset({S.SWITCHED, S.SWITCH_FAILED}),
    S.SWITCHED: frozenset({S.FINALIZING}),
    S.FINALIZING: frozenset({S.COMPLETED, S.FINALIZATION_FAILED}),
    S.ROLLING_BACK: frozenset({S.ROLLED_BACK, S.ROLLBACK_FAILED}),
}

for _source in ROLLBACK_SOURCES:
    ALLOWED_TRANSITIONS[_source] = ALLOWED_TRANSITIONS.get(_source, frozenset()) | {
        S.ROLLING_BACK
    }
del _source


def new_deployment_id() -> str:
    """Return a unique, roughly time-ordered deployment id."""
    return f"deploy-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


@dataclass
class Deployment:
    """A single blue-green deployment session.

    ``active_env_at_start`` / ``inactive_env_at_start`` are fixed when the
    session starts and never change, even after the cutover; the persisted
    pointer is the only place the *current* active role lives.
    """

    active_env_at_start: str
    inactive_env_at_start: str
    deployment_id: str = field(default_factory=new_deployment_id)
    version: str | None = None
    status: DeploymentStatus = S.CREATED
    created_at: float = field(default_factory=time.time)
    updated_at: float = 0.0
    error: str | None = None
    traffic_switched: bool = False
    history: list[tuple[DeploymentStatus, float]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.updated_at:
            self.updated_at = self.created_at
        if not self.history:
            self.history.append((self.status, self.created_at))

    # -- lifecycle ---------------------------------------------------------

    def can_transition_to(self, status: DeploymentStatus) -> bool:
        return status in ALLOWED_TRANSITIONS.get(self.status, frozenset())

    def transition_to(self, status: DeploymentStatus) -> DeploymentStatus:
        """Move to *status* and return the previous status."""
        if not self.can_transition_to(status):
            raise InvalidTransitionError(
                f"Deployment {self.deployment_id} cannot move from "
                f"'{self.status.value}' to '{status.value}'",
                current=self.status.value,
                requested=status.value,
            )
        previous = self.status
        self.status = status
        self.updated_at = time.time()
        self.history.append((status, self.updated_at))
        return previous

    def fail(self, status: DeploymentStatus, error: BaseException | str) -> DeploymentStatus:
        """Record *error* and move to the given ``*_failed`` status."""
        self.error = str(error)
        return self.transition_to(status)

    @property
    def is_released(self) -> bool:
        return self.status.releases_lock

    @property
    def statuses(self) -> list[DeploymentStatus]:
        """Every status the session has held, oldest first."""
        return [status for status, _ in self.history]
