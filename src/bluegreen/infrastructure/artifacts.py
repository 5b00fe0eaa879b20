"""Artifact push adapters.

The coordinator does not know how a version reaches an environment; it only
calls ``ArtifactPusher.push`` and interprets success or failure.  Two
adapters are provided:

- ``SimulatedArtifactPusher`` waits for a fixed time and succeeds, for
  dry runs without a real target.
- ``CommandArtifactPusher`` runs an external command (CI job trigger, deploy
  script, ``kubectl`` wrapper...) and treats a non-zero exit as failure.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import shlex
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from bluegreen.domain.exceptions import DeploymentExecutionError

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]

# Keep the tail of stderr in error messages readable.
_MAX_STDERR_CHARS = 2000


class ArtifactPusher(ABC):
    """Deploys a version to one environment."""

    @abstractmethod
    async def push(self, environment: str, version: str, deployment_id: str = "") -> None:
        """Ship *version* to *environment*; raise on failure."""


class SimulatedArtifactPusher(ArtifactPusher):
    """Pretends to deploy by sleeping for *duration* seconds."""

    def __init__(self, duration: float = 5.0, sleep: SleepFn | None = None) -> None:
        if duration < 0:
            raise ValueError(f"duration must be >= 0, got {duration}")
        self._duration = duration
        self._sleep = sleep or asyncio.sleep

    async def push(self, environment: str, version: str, deployment_id: str = "") -> None:
        logger.info(
            "Simulating deployment of %s to %s (deployment=%s)",
            version, environment, deployment_id,
        )
        await self._sleep(self._duration)
        logger.info("Deployment simulation completed for %s", environment)


class CommandArtifactPusher(ArtifactPusher):
    """Runs a command to deploy.

    Parameters
    ----------
    command_template:
        Shell-style command line.  ``{environment}``, ``{version}`` and
        ``{deployment_id}`` are substituted per argument after splitting,
        so substituted values are never re-split or shell-interpreted.
    cwd:
        Working directory for the command.
    """

    def __init__(self, command_template: str, cwd: str | None = None) -> None:
        args = shlex.split(command_template)
        if not args:
            raise ValueError("command_template must not be empty")
        self._args = args
        self._cwd = cwd

    def build_command(self, environment: str, version: str, deployment_id: str = "") -> list[str]:
        return [
            arg.format(environment=environment, version=version, deployment_id=deployment_id)
            for arg in self._args
        ]

    async def push(self, environment: str, version: str, deployment_id: str = "") -> None:
        argv = self.build_command(environment, version, deployment_id)
        logger.info("Running deploy command for %s: %s", environment, shlex.join(argv))
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                cwd=self._cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise DeploymentExecutionError(
                f"Cannot start deploy command '{argv[0]}': {exc}",
                deployment_id=deployment_id,
                phase="deploy",
            ) from exc

        try:
            stdout, stderr = await proc.communicate()
        except asyncio.CancelledError:
            if proc.returncode is None:
                logger.warning("Deploy command cancelled; killing pid %s", proc.pid)
                with contextlib.suppress(ProcessLookupError):
                    proc.kill()
                await proc.wait()
            raise
        if stdout:
            logger.debug("deploy command stdout:\n%s", stdout.decode(errors="replace"))
        if proc.returncode != 0:
            err_text = stderr.decode(errors="replace").strip()[-_MAX_STDERR_CHARS:]
            raise DeploymentExecutionError(
                f"Deploy command exited with status {proc.returncode}"
                + (f": {err_text}" if err_text else ""),
                deployment_id=deployment_id,
                phase="deploy",
                details={"returncode": proc.returncode, "command": argv},
            )
