"""Blue-green deployment coordinator.

Ships a new version to the standby environment, gates the traffic cutover
behind bounded health verification, and supports aborting or reverting a
session.
"""

__version__ = "0.1.0"

from bluegreen.infrastructure.config import DeploymentConfig
from bluegreen.services.coordinator import DeploymentCoordinator
from bluegreen.services.health import HealthVerifier

__all__ = [
    "DeploymentConfig",
    "DeploymentCoordinator",
    "HealthVerifier",
]
