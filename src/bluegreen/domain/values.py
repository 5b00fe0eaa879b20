"""Value objects for the blue-green deployment coordinator.

Value objects are immutable and compared by value.  ``EnvironmentPair``
encodes the two-role model (the inactive role is always derived, never
stored) and ``HealthCheckAttempt`` records one health check of a candidate
environment.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from .enums import HealthOutcome
from .exceptions import InvalidEnvironmentError


@dataclass(frozen=True)
class EnvironmentPair:
    """The two configured environment roles.

    Exactly two roles exist; ``other()`` is the only way the complementary
    role is obtained.
    """

    blue: str = "blue"
    green: str = "green"

    def __post_init__(self) -> None:
        if not self.blue or not self.green:
            raise ValueError("environment names must not be empty")
        if self.blue == self.green:
            raise ValueError(
                f"environment names must differ, got '{self.blue}' twice"
            )

    @property
    def names(self) -> tuple[str, str]:
        return (self.blue, self.green)

    def __contains__(self, name: object) -> bool:
        return name in self.names

    def require(self, name: str) -> str:
        """Return *name* unchanged, or raise if it is not one of the pair."""
        if name not in self.names:
            raise InvalidEnvironmentError(
                f"'{name}' is not one of the configured environments "
                f"{self.names}",
                environment=name,
                allowed=self.names,
            )
        return name

    def other(self, name: str) -> str:
        """Return the complementary role of *name*."""
        self.require(name)
        return self.green if name == self.blue else self.blue


@dataclass(frozen=True)
class HealthCheckAttempt:
    """One health check of a candidate environment's health endpoint.

    Attributes
    ----------
    attempt_number:
        1-based attempt index within a verification run.
    outcome:
        ``HEALTHY`` only for HTTP 200 with ``{"status": "healthy"}``.
    status_code:
        HTTP status of the response, ``None`` when no response arrived.
    detail:
        Short human-readable reason for a non-healthy outcome.
    """

    attempt_number: int
    outcome: HealthOutcome
    environment: str = ""
    url: str = ""
    status_code: int | None = None
    detail: str = ""
    timestamp: float = field(default_factory=time.time)

    @property
    def healthy(self) -> bool:
        return self.outcome is HealthOutcome.HEALTHY
