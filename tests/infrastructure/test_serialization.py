"""Tests for deployment and event serialization."""

from __future__ import annotations

import json

import pytest

from bluegreen.domain.entities import Deployment
from bluegreen.domain.enums import DeploymentStatus, HealthOutcome, Phase
from bluegreen.domain.events import DeploymentFailed, HealthCheckAttempted
from bluegreen.domain.values import HealthCheckAttempt
from bluegreen.infrastructure.serialization import (
    deployment_from_dict,
    deployment_to_dict,
    event_to_dict,
    health_attempt_from_dict,
    health_attempt_to_dict,
    to_json,
)


def _switched_deployment() -> Deployment:
    d = Deployment(active_env_at_start="blue", inactive_env_at_start="green", version="v3")
    for status in (
        DeploymentStatus.DEPLOYING,
        DeploymentStatus.DEPLOYED,
        DeploymentStatus.VERIFYING,
        DeploymentStatus.VERIFIED,
        DeploymentStatus.SWITCHING,
        DeploymentStatus.SWITCHED,
    ):
        d.transition_to(status)
    d.traffic_switched = True
    return d


class TestDeploymentSerialization:
    def test_to_dict_uses_plain_values(self) -> None:
        data = deployment_to_dict(_switched_deployment())
        assert data["status"] == "switched"
        assert data["traffic_switched"] is True
        assert data["history"][0]["status"] == "created"
        json.dumps(data)

    def test_from_dict_restores_state(self) -> None:
        original = _switched_deployment()
        restored = deployment_from_dict(deployment_to_dict(original))
        assert restored.deployment_id == original.deployment_id
        assert restored.status is DeploymentStatus.SWITCHED
        assert restored.statuses == original.statuses
        assert restored.can_transition_to(DeploymentStatus.FINALIZING)

    def test_unknown_status_rejected(self) -> None:
        data = deployment_to_dict(_switched_deployment())
        data["status"] = "teleported"
        with pytest.raises(ValueError, match="teleported"):
            deployment_from_dict(data)


class TestEventSerialization:
    def test_event_tagged_with_type(self) -> None:
        event = DeploymentFailed(
            deployment_id="d1",
            phase=Phase.DEPLOY,
            status=DeploymentStatus.FAILED,
            error_message="boom",
        )
        data = event_to_dict(event)
        assert data["type"] == "DeploymentFailed"
        assert data["phase"] == "deploy"
        assert data["status"] == "failed"

    def test_nested_attempt_flattened(self) -> None:
        attempt = HealthCheckAttempt(
            attempt_number=2,
            outcome=HealthOutcome.UNHEALTHY,
            status_code=503,
            detail="HTTP 503",
        )
        data = event_to_dict(HealthCheckAttempted(deployment_id="d1", attempt=attempt, max_attempts=5))
        assert data["attempt"]["outcome"] == "unhealthy"
        assert data["attempt"]["status_code"] == 503
        assert health_attempt_from_dict(data["attempt"]) == attempt

    def test_health_attempt_dict(self) -> None:
        attempt = HealthCheckAttempt(attempt_number=1, outcome=HealthOutcome.HEALTHY)
        assert health_attempt_to_dict(attempt)["outcome"] == "healthy"

    def test_to_json_handles_lists(self) -> None:
        events = [HealthCheckAttempted(deployment_id="d1", max_attempts=3)]
        parsed = json.loads(to_json(events))
        assert parsed[0]["type"] == "HealthCheckAttempted"
        assert parsed[0]["attempt"] is None
