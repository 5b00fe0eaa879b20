"""Service layer: the coordinator, the health verifier and the recorder."""

from bluegreen.services.coordinator import DeploymentCoordinator
from bluegreen.services.health import HealthVerifier
from bluegreen.services.recorder import DeploymentRecorder

__all__ = [
    "DeploymentCoordinator",
    "HealthVerifier",
    "DeploymentRecorder",
]
