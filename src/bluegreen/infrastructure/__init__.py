"""Infrastructure layer for the blue-green deployment coordinator.

Re-exports the public API surface for convenience::

    from bluegreen.infrastructure import (
        AsyncEventBus, EventStore,
        DeploymentConfig, load_config_from_json,
        JsonFilePointerStore, InMemoryPointerStore,
        SimulatedArtifactPusher, CommandArtifactPusher,
    )
"""

from bluegreen.infrastructure.artifacts import (
    ArtifactPusher,
    CommandArtifactPusher,
    SimulatedArtifactPusher,
)
from bluegreen.infrastructure.config import (
    DeploymentConfig,
    load_config_from_json,
)
from bluegreen.infrastructure.event_bus import (
    AsyncEventBus,
    EventStore,
)
from bluegreen.infrastructure.pointer_store import (
    EnvironmentPointerStore,
    InMemoryPointerStore,
    JsonFilePointerStore,
)
from bluegreen.infrastructure.serialization import (
    deployment_from_dict,
    deployment_to_dict,
    event_to_dict,
    to_json,
)

__all__ = [
    # Event bus
    "AsyncEventBus",
    "EventStore",
    # Configuration
    "DeploymentConfig",
    "load_config_from_json",
    # Pointer store
    "EnvironmentPointerStore",
    "InMemoryPointerStore",
    "JsonFilePointerStore",
    # Artifact push
    "ArtifactPusher",
    "SimulatedArtifactPusher",
    "CommandArtifactPusher",
    # Serialization
    "deployment_to_dict",
    "deployment_from_dict",
    "event_to_dict",
    "to_json",
]
