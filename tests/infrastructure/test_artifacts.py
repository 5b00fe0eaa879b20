"""Tests for the artifact push adapters."""

from __future__ import annotations

import asyncio
import shlex
import sys

import pytest

from bluegreen.domain.exceptions import DeploymentExecutionError
from bluegreen.infrastructure.artifacts import CommandArtifactPusher, SimulatedArtifactPusher

PY = shlex.quote(sys.executable)


class TestSimulatedArtifactPusher:
    @pytest.mark.asyncio
    async def test_waits_for_duration(self, sleep) -> None:
        pusher = SimulatedArtifactPusher(duration=5.0, sleep=sleep)
        await pusher.push("green", "v1.2.0", "d1")
        assert sleep.delays == [5.0]

    def test_negative_duration_rejected(self) -> None:
        with pytest.raises(ValueError):
            SimulatedArtifactPusher(duration=-1)


class TestCommandArtifactPusher:
    def test_placeholders_substituted_per_argument(self) -> None:
        pusher = CommandArtifactPusher("./deploy.sh --env {environment} '{version} build' {deployment_id}")
        assert pusher.build_command("green", "v2", "d9") == [
            "./deploy.sh", "--env", "green", "v2 build", "d9",
        ]

    def test_empty_command_rejected(self) -> None:
        with pytest.raises(ValueError):
            CommandArtifactPusher("   ")

    @pytest.mark.asyncio
    async def test_zero_exit_succeeds(self) -> None:
        pusher = CommandArtifactPusher(f"{PY} -c 'import sys; sys.exit(0)' {{environment}}")
        await pusher.push("green", "v1")

    @pytest.mark.asyncio
    async def test_nonzero_exit_raises_with_stderr(self) -> None:
        script = "import sys; sys.stderr.write('registry unreachable'); sys.exit(3)"
        pusher = CommandArtifactPusher(f"{PY} -c {shlex.quote(script)}")
        with pytest.raises(DeploymentExecutionError) as excinfo:
            await pusher.push("green", "v1", "d1")
        err = excinfo.value
        assert "status 3" in str(err)
        assert "registry unreachable" in str(err)
        assert err.details["returncode"] == 3
        assert err.deployment_id == "d1"

    @pytest.mark.asyncio
    async def test_missing_executable_raises(self, tmp_path) -> None:
        pusher = CommandArtifactPusher(str(tmp_path / "no-such-deploy-tool"))
        with pytest.raises(DeploymentExecutionError, match="Cannot start"):
            await pusher.push("green", "v1")


class _HangingProcess:
    """Stand-in for an ``asyncio.subprocess.Process`` that never finishes."""

    pid = 4242

    def __init__(self) -> None:
        self.returncode: int | None = None
        self.killed = False
        self.started = asyncio.Event()

    async def communicate(self) -> tuple[bytes, bytes]:
        self.started.set()
        await asyncio.Event().wait()
        return b"", b""

    def kill(self) -> None:
        self.killed = True
        self.returncode = -9

    async def wait(self) -> int:
        return self.returncode


class TestCommandArtifactPusherCancellation:
    @pytest.mark.asyncio
    async def test_cancel_kills_child(self, monkeypatch) -> None:
        proc = _HangingProcess()

        async def fake_exec(*args, **kwargs):
            return proc

        monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)
        pusher = CommandArtifactPusher("./deploy.sh {environment}")

        task = asyncio.create_task(pusher.push("green", "v1"))
        await proc.started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert proc.killed
        assert proc.returncode == -9
