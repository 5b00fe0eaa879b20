"""Serialization helpers for deployments and domain events.

Every ``*_to_dict`` output is JSON-serializable (enum members become their
``.value``).  ``deployment_from_dict`` is permissive about missing optional
keys and raises ``ValueError`` for unknown statuses.
"""

from __future__ import annotations

import json
from dataclasses import fields
from typing import Any

from bluegreen.domain.entities import Deployment
from bluegreen.domain.enums import DeploymentStatus, HealthOutcome
from bluegreen.domain.events import DomainEvent
from bluegreen.domain.values import HealthCheckAttempt

# =========================================================================== #
#  Generic helpers                                                             #
# =========================================================================== #

def _enum_val(v: Any) -> Any:
    """Return the ``.value`` if *v* is an enum member, else *v* unchanged."""
    if hasattr(v, "value"):
        return v.value
    return v


# =========================================================================== #
#  Value objects / entities                                                    #
# =========================================================================== #

def health_attempt_to_dict(a: HealthCheckAttempt) -> dict[str, Any]:
    return {
        "attempt_number": a.attempt_number,
        "outcome": _enum_val(a.outcome),
        "environment": a.environment,
        "url": a.url,
        "status_code": a.status_code,
        "detail": a.detail,
        "timestamp": a.timestamp,
    }


def health_attempt_from_dict(data: dict[str, Any]) -> HealthCheckAttempt:
    return HealthCheckAttempt(
        attempt_number=int(data["attempt_number"]),
        outcome=HealthOutcome(data["outcome"]),
        environment=str(data.get("environment", "")),
        url=str(data.get("url", "")),
        status_code=data.get("status_code"),
        detail=str(data.get("detail", "")),
        timestamp=float(data.get("timestamp", 0.0)),
    )


def deployment_to_dict(d: Deployment) -> dict[str, Any]:
    return {
        "deployment_id": d.deployment_id,
        "version": d.version,
        "status": _enum_val(d.status),
        "active_env_at_start": d.active_env_at_start,
        "inactive_env_at_start": d.inactive_env_at_start,
        "created_at": d.created_at,
        "updated_at": d.updated_at,
        "error": d.error,
        "traffic_switched": d.traffic_switched,
        "history": [
            {"status": _enum_val(status), "timestamp": ts} for status, ts in d.history
        ],
    }


def deployment_from_dict(data: dict[str, Any]) -> Deployment:
    try:
        status = DeploymentStatus(data.get("status", "created"))
    except ValueError as exc:
        raise ValueError(f"unknown deployment status: {data.get('status')!r}") from exc
    return Deployment(
        deployment_id=str(data["deployment_id"]),
        active_env_at_start=str(data["active_env_at_start"]),
        inactive_env_at_start=str(data["inactive_env_at_start"]),
        version=data.get("version"),
        status=status,
        created_at=float(data.get("created_at", 0.0)),
        updated_at=float(data.get("updated_at", 0.0)),
        error=data.get("error"),
        traffic_switched=bool(data.get("traffic_switched", False)),
        history=[
            (DeploymentStatus(h["status"]), float(h["timestamp"]))
            for h in data.get("history", [])
        ],
    )


# =========================================================================== #
#  Events                                                                      #
# =========================================================================== #

def event_to_dict(event: DomainEvent) -> dict[str, Any]:
    """Flatten *event* into a dict tagged with its class name under ``type``."""
    result: dict[str, Any] = {"type": type(event).__name__}
    for f in fields(event):
        value = getattr(event, f.name)
        if isinstance(value, HealthCheckAttempt):
            value = health_attempt_to_dict(value)
        result[f.name] = _enum_val(value)
    return result


def to_json(obj: Any, *, indent: int | None = 2) -> str:
    """Serialize a deployment, an event, or a list of either to JSON."""
    return json.dumps(_to_plain(obj), indent=indent)


def _to_plain(obj: Any) -> Any:
    if isinstance(obj, Deployment):
        return deployment_to_dict(obj)
    if isinstance(obj, DomainEvent):
        return event_to_dict(obj)
    if isinstance(obj, (list, tuple)):
        return [_to_plain(item) for item in obj]
    if isinstance(obj, dict):
        return {k: _to_plain(v) for k, v in obj.items()}
    return obj
