"""Blue-green deployment coordinator.

Sequences one deployment session at a time through::

    start -> deploy to inactive -> verify -> switch traffic -> finalize

with two distinct ways out before completion:

- ``abort_pending_deployment()`` -- no cutover has happened, so the pointer
  is left alone and the session is simply closed as ``rolled_back``.
- ``revert_completed_switch()`` -- the cutover happened, so the pointer is
  restored to the role that was active when the session started.

The caller picks the one matching the session's history; calling the wrong
one raises ``NoDeploymentInProgress`` and changes nothing.

Mutual exclusion is an in-process flag.  Two coordinator processes sharing
one pointer store are not coordinated with each other.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import NoReturn

from bluegreen.domain.entities import ROLLBACK_SOURCES, Deployment
from bluegreen.domain.enums import DeploymentStatus, Phase
from bluegreen.domain.events import (
    DeploymentCreated,
    DeploymentFailed,
    DeploymentReleased,
    DeploymentStatusChanged,
    DomainEvent,
    TrafficSwitched,
)
from bluegreen.domain.exceptions import (
    ConcurrencyError,
    DeploymentExecutionError,
    FinalizationError,
    NoDeploymentInProgress,
    PhaseError,
    RollbackError,
    SwitchError,
)
from bluegreen.infrastructure.artifacts import ArtifactPusher
from bluegreen.infrastructure.config import DeploymentConfig
from bluegreen.infrastructure.event_bus import AsyncEventBus
from bluegreen.infrastructure.pointer_store import EnvironmentPointerStore
from bluegreen.services.health import HealthVerifier

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]

S = DeploymentStatus

_SOURCE_ID = "deployment-coordinator"

# A running phase owns the session in these; a cancelled phase leaves via its failed status.
_IN_FLIGHT = frozenset({S.DEPLOYING, S.VERIFYING, S.SWITCHING})


class DeploymentCoordinator:
    """Orchestrates blue-green deployment sessions.

    All collaborators are injected; the coordinator owns only the
    in-progress flag and the current ``Deployment``.

    Parameters
    ----------
    config:
        Immutable deployment configuration.
    pointer_store:
        Persisted active-environment pointer.  The coordinator writes it
        only in ``switch_traffic`` and ``revert_completed_switch``.
    verifier:
        Health verifier run against the inactive environment.
    pusher:
        Artifact push mechanism for the inactive environment.
    event_bus:
        Receives every lifecycle event.  A private bus is created when
        omitted, so events are simply dropped.
    sleep:
        Awaitable sleep used for the pre-cutover grace period.
    """

    def __init__(
        self,
        config: DeploymentConfig,
        pointer_store: EnvironmentPointerStore,
        verifier: HealthVerifier,
        pusher: ArtifactPusher,
        event_bus: AsyncEventBus | None = None,
        sleep: SleepFn | None = None,
    ) -> None:
        self._config = config
        self._store = pointer_store
        self._verifier = verifier
        self._pusher = pusher
        self._bus = event_bus if event_bus is not None else AsyncEventBus()
        self._sleep = sleep or asyncio.sleep

        self._in_progress = False
        self._deployment: Deployment | None = None
        self._last_deployment: Deployment | None = None

        logger.info(
            "Blue-green coordinator initialized (environments=%s, auto_rollback=%s)",
            self._config.environments.names, self._config.auto_rollback,
        )

    # -- introspection ------------------------------------------------------

    @property
    def config(self) -> DeploymentConfig:
        return self._config

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    @property
    def deployment(self) -> Deployment | None:
        """The session in progress, or ``None`` when idle."""
        return self._deployment

    @property
    def last_deployment(self) -> Deployment | None:
        """The most recent session, in progress or released."""
        return self._deployment or self._last_deployment

    @property
    def status(self) -> DeploymentStatus:
        if self._deployment is None:
            return S.IDLE
        return self._deployment.status

    def get_current_active_environment(self) -> str:
        return self._store.get_current_active_environment()

    # -- phases -------------------------------------------------------------

    async def start_deployment(self) -> str:
        """Open a new session and return its id."""
        if self._in_progress:
            current = self._deployment.deployment_id if self._deployment else ""
            raise ConcurrencyError(
                f"A deployment is already in progress ({current})",
                deployment_id=current,
            )
        # Claimed before the first await so overlapping calls cannot both pass.
        self._in_progress = True

        try:
            active = self._store.get_current_active_environment()
            inactive = self._config.environments.other(active)
        except Exception:
            self._in_progress = False
            logger.exception("Phase %s failed: cannot read the environment pointer",
                             Phase.START.value)
            raise

        deployment = Deployment(active_env_at_start=active, inactive_env_at_start=inactive)
        self._deployment = deployment
        logger.info(
            "Starting deployment %s (active=%s, inactive=%s)",
            deployment.deployment_id, active, inactive,
        )
        await self._publish(DeploymentCreated(
            source_id=_SOURCE_ID,
            deployment_id=deployment.deployment_id,
            active_environment=active,
            inactive_environment=inactive,
        ))
        return deployment.deployment_id

    async def deploy_to_inactive_environment(self, version: str) -> None:
        """Push *version* to the inactive environment."""
        deployment = self._require(S.CREATED, "deploy to inactive environment")
        deployment.version = version
        target = deployment.inactive_env_at_start

        logger.info(
            "Deploying %s to inactive environment %s (deployment=%s)",
            version, target, deployment.deployment_id,
        )
        await self._set_status(deployment, S.DEPLOYING)
        try:
            await self._pusher.push(target, version, deployment.deployment_id)
        except asyncio.CancelledError:
            await self._fail(deployment, Phase.DEPLOY, S.FAILED, "push cancelled")
            raise
        except Exception as exc:
            await self._fail(deployment, Phase.DEPLOY, S.FAILED, exc)
            self._raise_phase_error(DeploymentExecutionError, deployment, Phase.DEPLOY, exc,
                                    f"Failed to deploy {version} to {target}")

        await self._set_status(deployment, S.DEPLOYED)
        logger.info(
            "Deployment of %s to %s completed (deployment=%s)",
            version, target, deployment.deployment_id,
        )

    async def verify_deployment(self) -> bool:
        """Health-check the inactive environment.

        Returns ``False`` on failure instead of raising.  With
        ``auto_rollback`` the session is aborted before returning.
        """
        deployment = self._require(S.DEPLOYED, "verify deployment")
        target = deployment.inactive_env_at_start
        logger.info("Verifying deployment %s on %s", deployment.deployment_id, target)
        await self._set_status(deployment, S.VERIFYING)

        try:
            healthy = await self._verifier.run_health_checks(target, deployment.deployment_id)
            failure: Exception | str = "health checks did not pass"
        except asyncio.CancelledError:
            await self._fail(deployment, Phase.VERIFY, S.VERIFICATION_FAILED,
                             "verification cancelled")
            raise
        except Exception as exc:
            logger.exception(
                "Health verification raised for deployment %s", deployment.deployment_id
            )
            healthy = False
            failure = exc

        if healthy:
            await self._set_status(deployment, S.VERIFIED)
            logger.info("Deployment %s verified", deployment.deployment_id)
            return True

        await self._fail(deployment, Phase.VERIFY, S.VERIFICATION_FAILED, failure)
        if self._config.auto_rollback:
            await self.abort_pending_deployment(reason="verification failed")
        return False

    async def switch_traffic(self) -> None:
        """Flip the pointer to the verified environment after the grace delay."""
        deployment = self._require(S.VERIFIED, "switch traffic")
        from_env = deployment.active_env_at_start
        to_env = deployment.inactive_env_at_start
        logger.info(
            "Switching traffic from %s to %s (deployment=%s)",
            from_env, to_env, deployment.deployment_id,
        )
        await self._set_status(deployment, S.SWITCHING)

        try:
            await self._sleep(self._config.switch_delay)
            self._store.set_active_environment(to_env)
        except asyncio.CancelledError:
            # The write is synchronous, so a cancellation always lands before it.
            await self._fail(deployment, Phase.SWITCH, S.SWITCH_FAILED, "switch cancelled")
            raise
        except Exception as exc:
            await self._fail(deployment, Phase.SWITCH, S.SWITCH_FAILED, exc)
            self._raise_phase_error(SwitchError, deployment, Phase.SWITCH, exc,
                                    f"Failed to switch traffic to {to_env}")

        deployment.traffic_switched = True
        await self._set_status(deployment, S.SWITCHED)
        await self._publish(TrafficSwitched(
            source_id=_SOURCE_ID,
            deployment_id=deployment.deployment_id,
            from_environment=from_env,
            to_environment=to_env,
        ))
        logger.info("Traffic switched to %s (deployment=%s)", to_env, deployment.deployment_id)

    async def finalize_deployment(self) -> None:
        """Close a switched session as ``completed`` and release the lock."""
        deployment = self._require(S.SWITCHED, "finalize deployment")
        logger.info("Finalizing deployment %s", deployment.deployment_id)
        await self._set_status(deployment, S.FINALIZING)

        expected = deployment.inactive_env_at_start
        try:
            active = self._store.get_current_active_environment()
            if active != expected:
                raise FinalizationError(
                    f"Pointer names '{active}' but this deployment switched to "
                    f"'{expected}'; another writer changed it",
                    deployment_id=deployment.deployment_id,
                    phase=Phase.FINALIZE.value,
                )
        except Exception as exc:
            await self._fail(deployment, Phase.FINALIZE, S.FINALIZATION_FAILED, exc)
            await self._release(deployment)
            self._raise_phase_error(FinalizationError, deployment, Phase.FINALIZE, exc,
                                    "Failed to finalize deployment")

        await self._set_status(deployment, S.COMPLETED)
        logger.info("Deployment %s finalized (active=%s)", deployment.deployment_id, expected)
        await self._release(deployment)

    # -- rollback -----------------------------------------------------------

    async def abort_pending_deployment(self, reason: str = "") -> None:
        """Close a session that never cut over, leaving the pointer untouched."""
        deployment = self._require_rollback_source("abort pending deployment")
        if deployment.traffic_switched:
            raise NoDeploymentInProgress(
                f"Deployment {deployment.deployment_id} already switched traffic; "
                "use revert_completed_switch()",
                deployment_id=deployment.deployment_id,
            )

        logger.info(
            "Aborting deployment %s from status %s%s",
            deployment.deployment_id, deployment.status.value,
            f" ({reason})" if reason else "",
        )
        await self._set_status(deployment, S.ROLLING_BACK)
        await self._set_status(deployment, S.ROLLED_BACK)
        await self._release(deployment)

    async def revert_completed_switch(self) -> None:
        """Restore the pointer to the pre-cutover role and close the session."""
        if self._deployment is None:
            raise NoDeploymentInProgress(
                "No deployment in progress; nothing to revert"
            )
        deployment = self._deployment
        if not deployment.traffic_switched or deployment.status is not S.SWITCHED:
            raise NoDeploymentInProgress(
                f"Deployment {deployment.deployment_id} has not switched traffic "
                f"(status '{deployment.status.value}'); use abort_pending_deployment()",
                deployment_id=deployment.deployment_id,
            )

        restore = deployment.active_env_at_start
        current = deployment.inactive_env_at_start
        logger.info(
            "Reverting deployment %s: pointer %s -> %s",
            deployment.deployment_id, current, restore,
        )
        await self._set_status(deployment, S.ROLLING_BACK)
        try:
            self._store.set_active_environment(restore)
        except Exception as exc:
            await self._fail(deployment, Phase.ROLLBACK, S.ROLLBACK_FAILED, exc)
            await self._release(deployment)
            self._raise_phase_error(RollbackError, deployment, Phase.ROLLBACK, exc,
                                    f"Failed to restore traffic to {restore}")

        await self._publish(TrafficSwitched(
            source_id=_SOURCE_ID,
            deployment_id=deployment.deployment_id,
            from_environment=current,
            to_environment=restore,
            revert=True,
        ))
        await self._set_status(deployment, S.ROLLED_BACK)
        await self._release(deployment)

    # -- helpers ------------------------------------------------------------

    def _require(self, expected: DeploymentStatus, operation: str) -> Deployment:
        deployment = self._deployment
        if deployment is None:
            raise NoDeploymentInProgress(f"Cannot {operation}: no deployment in progress")
        if deployment.status is not expected:
            raise NoDeploymentInProgress(
                f"Cannot {operation}: deployment {deployment.deployment_id} is "
                f"'{deployment.status.value}', expected '{expected.value}'",
                deployment_id=deployment.deployment_id,
            )
        return deployment

    def _require_rollback_source(self, operation: str) -> Deployment:
        deployment = self._deployment
        if deployment is None:
            raise NoDeploymentInProgress(f"Cannot {operation}: no deployment in progress")
        if deployment.status not in ROLLBACK_SOURCES or deployment.status in _IN_FLIGHT:
            raise NoDeploymentInProgress(
                f"Cannot {operation}: deployment {deployment.deployment_id} is "
                f"'{deployment.status.value}'",
                deployment_id=deployment.deployment_id,
            )
        return deployment

    async def _set_status(self, deployment: Deployment, status: DeploymentStatus) -> None:
        previous = deployment.transition_to(status)
        logger.debug(
            "Deployment %s: %s -> %s", deployment.deployment_id, previous.value, status.value
        )
        await self._publish(DeploymentStatusChanged(
            source_id=_SOURCE_ID,
            deployment_id=deployment.deployment_id,
            previous_status=previous,
            status=status,
            version=deployment.version,
        ))

    async def _fail(
        self,
        deployment: Deployment,
        phase: Phase,
        status: DeploymentStatus,
        error: BaseException | str,
    ) -> None:
        previous = deployment.fail(status, error)
        logger.error(
            "Phase %s failed for deployment %s: %s",
            phase.value, deployment.deployment_id, deployment.error,
        )
        await self._publish(DeploymentStatusChanged(
            source_id=_SOURCE_ID,
            deployment_id=deployment.deployment_id,
            previous_status=previous,
            status=status,
            version=deployment.version,
        ))
        await self._publish(DeploymentFailed(
            source_id=_SOURCE_ID,
            deployment_id=deployment.deployment_id,
            phase=phase,
            status=status,
            error_message=deployment.error or "",
        ))

    @staticmethod
    def _raise_phase_error(
        error_type: type[PhaseError],
        deployment: Deployment,
        phase: Phase,
        exc: Exception,
        message: str,
    ) -> NoReturn:
        """Re-raise *exc* as *error_type*; must be called inside ``except``."""
        if isinstance(exc, error_type):
            raise exc
        raise error_type(
            f"{message}: {exc}",
            deployment_id=deployment.deployment_id,
            phase=phase.value,
        ) from exc

    async def _release(self, deployment: Deployment) -> None:
        self._in_progress = False
        self._deployment = None
        self._last_deployment = deployment
        active = ""
        try:
            active = self._store.get_current_active_environment()
        except Exception:
            logger.exception("Could not read pointer while releasing %s", deployment.deployment_id)
        logger.info(
            "Deployment %s released with status %s",
            deployment.deployment_id, deployment.status.value,
        )
        await self._publish(DeploymentReleased(
            source_id=_SOURCE_ID,
            deployment_id=deployment.deployment_id,
            final_status=deployment.status,
            active_environment=active,
        ))

    async def _publish(self, event: DomainEvent) -> None:
        await self._bus.publish(event)
