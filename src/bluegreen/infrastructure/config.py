"""Configuration for the blue-green deployment coordinator.

``DeploymentConfig`` is a plain frozen ``dataclass`` with a ``validate()``
method that raises ``ValueError`` on invalid combinations.  It is loaded once
(from defaults, ``DEPLOY_*`` environment variables or a JSON document) and
never mutated afterwards.

All durations are in seconds.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields
from typing import Any

from bluegreen.domain.values import EnvironmentPair

DEFAULT_URL_TEMPLATE = "https://{environment}.{base_domain}{path}"

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})
_FALSE_STRINGS = frozenset({"0", "false", "no", "off"})


def _parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_STRINGS:
        return True
    if value in _FALSE_STRINGS:
        return False
    raise ValueError(f"cannot interpret '{raw}' as a boolean")


# ===================================================================== #
#  Deployment Configuration                                              #
# ===================================================================== #

@dataclass(frozen=True)
class DeploymentConfig:
    """Parameters governing a blue-green deployment.

    Attributes
    ----------
    base_domain:
        Domain under which each environment is reachable as
        ``<environment>.<base_domain>``.
    blue_env / green_env:
        Names of the two environment roles.  ``blue_env`` is the bootstrap
        default when no pointer has been persisted yet.
    health_check_path:
        Path of the health endpoint on a candidate environment.
    health_check_timeout:
        Upper bound for a single health-check attempt.
    health_check_retries:
        Number of attempts before verification gives up.
    health_check_interval:
        Fixed pause between attempts (no backoff).
    switch_delay:
        Grace period before the pointer is flipped.
    auto_rollback:
        Abort the session automatically when verification fails.
    pointer_path:
        File holding the persisted ``{"activeEnvironment": ...}`` record.
    url_template:
        Health-check URL template; receives ``environment``, ``base_domain`` and
        ``path``.
    """

    base_domain: str = "chainsync.example.com"
    blue_env: str = "blue"
    green_env: str = "green"
    health_check_path: str = "/api/health"
    health_check_timeout: float = 30.0
    health_check_retries: int = 5
    health_check_interval: float = 5.0
    switch_delay: float = 10.0
    auto_rollback: bool = True
    pointer_path: str = "active-environment.json"
    url_template: str = DEFAULT_URL_TEMPLATE

    @property
    def environments(self) -> EnvironmentPair:
        return EnvironmentPair(blue=self.blue_env, green=self.green_env)

    def health_check_url(self, environment: str) -> str:
        """Return the health-check URL for *environment*."""
        return self.url_template.format(
            environment=environment,
            base_domain=self.base_domain,
            path=self.health_check_path,
        )

    def validate(self) -> None:
        """Raise ``ValueError`` if any field has the wrong type or is out of range."""
        self._check_types()
        if not self.base_domain:
            raise ValueError("base_domain must not be empty")
        # EnvironmentPair rejects empty or identical names.
        EnvironmentPair(blue=self.blue_env, green=self.green_env)
        if not self.health_check_path.startswith("/"):
            raise ValueError(
                f"health_check_path must start with '/', got '{self.health_check_path}'"
            )
        if self.health_check_timeout <= 0:
            raise ValueError(
                f"health_check_timeout must be > 0, got {self.health_check_timeout}"
            )
        if self.health_check_retries < 1:
            raise ValueError(
                f"health_check_retries must be >= 1, got {self.health_check_retries}"
            )
        if self.health_check_interval < 0:
            raise ValueError(
                f"health_check_interval must be >= 0, got {self.health_check_interval}"
            )
        if self.switch_delay < 0:
            raise ValueError(f"switch_delay must be >= 0, got {self.switch_delay}")
        if not self.pointer_path:
            raise ValueError("pointer_path must not be empty")
        try:
            self.health_check_url(self.blue_env)
        except (KeyError, IndexError) as exc:
            raise ValueError(
                f"url_template has an unknown placeholder: {exc}"
            ) from exc

    def _check_types(self) -> None:
        # bool is an int subclass; it is only accepted where a bool is expected.
        for f in fields(self):
            value = getattr(self, f.name)
            expected = _FIELD_TYPES[f.name]
            if isinstance(value, bool) and expected is not bool:
                ok = False
            else:
                ok = isinstance(value, expected)
            if not ok:
                raise ValueError(
                    f"{f.name} must be of type {_type_name(expected)}, "
                    f"got {type(value).__name__} {value!r}"
                )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DeploymentConfig:
        valid_keys = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        cfg = cls(**filtered)
        cfg.validate()
        return cfg

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> DeploymentConfig:
        """Build a config from ``DEPLOY_*`` variables, falling back to defaults.

        Recognised variables: ``DEPLOY_BASE_DOMAIN``, ``DEPLOY_BLUE_ENV``,
        ``DEPLOY_GREEN_ENV``, ``DEPLOY_HEALTH_CHECK_PATH``,
        ``DEPLOY_HEALTH_CHECK_TIMEOUT``, ``DEPLOY_HEALTH_CHECK_RETRIES``,
        ``DEPLOY_HEALTH_CHECK_INTERVAL``, ``DEPLOY_SWITCH_DELAY``,
        ``DEPLOY_AUTO_ROLLBACK``, ``DEPLOY_POINTER_FILE`` and
        ``DEPLOY_URL_TEMPLATE``.
        """
        env = os.environ if environ is None else environ
        data: dict[str, Any] = {}
        for name, (var, convert) in _ENV_VARS.items():
            raw = env.get(var)
            if raw is None or raw == "":
                continue
            try:
                data[name] = convert(raw)
            except ValueError as exc:
                raise ValueError(f"invalid value for {var}: {exc}") from exc
        return cls.from_dict(data)


_FIELD_TYPES: dict[str, Any] = {
    "base_domain": str,
    "blue_env": str,
    "green_env": str,
    "health_check_path": str,
    "health_check_timeout": (int, float),
    "health_check_retries": int,
    "health_check_interval": (int, float),
    "switch_delay": (int, float),
    "auto_rollback": bool,
    "pointer_path": str,
    "url_template": str,
}


def _type_name(expected: Any) -> str:
    if isinstance(expected, tuple):
        return "number"
    return expected.__name__


_ENV_VARS: dict[str, tuple[str, Any]] = {
    "base_domain": ("DEPLOY_BASE_DOMAIN", str),
    "blue_env": ("DEPLOY_BLUE_ENV", str),
    "green_env": ("DEPLOY_GREEN_ENV", str),
    "health_check_path": ("DEPLOY_HEALTH_CHECK_PATH", str),
    "health_check_timeout": ("DEPLOY_HEALTH_CHECK_TIMEOUT", float),
    "health_check_retries": ("DEPLOY_HEALTH_CHECK_RETRIES", int),
    "health_check_interval": ("DEPLOY_HEALTH_CHECK_INTERVAL", float),
    "switch_delay": ("DEPLOY_SWITCH_DELAY", float),
    "auto_rollback": ("DEPLOY_AUTO_ROLLBACK", _parse_bool),
    "pointer_path": ("DEPLOY_POINTER_FILE", str),
    "url_template": ("DEPLOY_URL_TEMPLATE", str),
}


# ===================================================================== #
#  JSON loader                                                           #
# ===================================================================== #

def load_config_from_json(json_str: str) -> DeploymentConfig:
    """Parse a JSON document into a validated ``DeploymentConfig``.

    The document is either the config object itself or an object with a
    ``deployment`` section holding it.  Unknown keys are ignored.
    """
    raw = json.loads(json_str)
    if not isinstance(raw, dict):
        raise ValueError("Top-level JSON must be an object")
    section = raw.get("deployment", raw)
    if not isinstance(section, dict):
        raise ValueError("'deployment' section must be an object")
    return DeploymentConfig.from_dict(section)
