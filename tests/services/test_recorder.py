"""Tests for DeploymentRecorder."""

from __future__ import annotations

import json

import pytest

from bluegreen.domain.enums import DeploymentStatus, HealthOutcome
from bluegreen.domain.events import DeploymentCreated, HealthCheckAttempted
from bluegreen.services.recorder import DeploymentRecorder

UNAVAILABLE = (503, {"status": "unavailable"})
HEALTHY = (200, {"status": "healthy"})


class TestDeploymentRecorder:
    """Audit history built from coordinator events."""

    @pytest.mark.asyncio
    async def test_records_full_session(self, make_coordinator, recorder) -> None:
        coordinator = make_coordinator([UNAVAILABLE, HEALTHY])
        deployment_id = await coordinator.start_deployment()
        await coordinator.deploy_to_inactive_environment("v7")
        await coordinator.verify_deployment()
        await coordinator.switch_traffic()
        await coordinator.finalize_deployment()

        assert recorder.status_timeline(deployment_id)[-1] is DeploymentStatus.COMPLETED
        attempts = recorder.health_attempts(deployment_id)
        assert [a.outcome for a in attempts] == [HealthOutcome.UNHEALTHY, HealthOutcome.HEALTHY]
        assert recorder.failures(deployment_id) == []
        assert isinstance(recorder.events[0], DeploymentCreated)

    @pytest.mark.asyncio
    async def test_sessions_kept_apart(self, make_coordinator, recorder) -> None:
        coordinator = make_coordinator([UNAVAILABLE])
        first = await coordinator.start_deployment()
        await coordinator.deploy_to_inactive_environment("v1")
        await coordinator.verify_deployment()
        second = await coordinator.start_deployment()

        assert recorder.status_timeline(first)[-1] is DeploymentStatus.ROLLED_BACK
        assert recorder.status_timeline(second) == []
        assert len(recorder.query(second)) == 1
        assert len(recorder.failures()) == 1

    def test_max_events(self) -> None:
        recorder = DeploymentRecorder(max_events=2)
        for i in range(4):
            recorder.record(HealthCheckAttempted(deployment_id=f"d{i}"))
        assert len(recorder) == 2

    @pytest.mark.asyncio
    async def test_write_json(self, make_coordinator, recorder, tmp_path) -> None:
        coordinator = make_coordinator()
        await coordinator.start_deployment()
        await coordinator.abort_pending_deployment()

        path = recorder.write(tmp_path / "audit" / "run.json")

        data = json.loads(path.read_text())
        assert [entry["type"] for entry in data] == [
            "DeploymentCreated",
            "DeploymentStatusChanged",
            "DeploymentStatusChanged",
            "DeploymentReleased",
        ]
        assert data[-1]["final_status"] == "rolled_back"
        assert json.loads(recorder.to_json()) == data
