"""Persistence for the environment pointer.

The pointer (``{"activeEnvironment": "<role>"}``) is the single source of
truth for which environment serves production traffic.  Only the active
role is stored; the inactive role is always derived from the configured
``EnvironmentPair``.

``set_active_environment`` is the sole write path and must be atomic: the
JSON file store writes a temporary file next to the target, fsyncs it and
``os.replace``-s it into place, so a concurrent reader sees either the old
record or the new one, never a torn one.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path

from bluegreen.domain.exceptions import PointerStoreError
from bluegreen.domain.values import EnvironmentPair

logger = logging.getLogger(__name__)

POINTER_KEY = "activeEnvironment"


class EnvironmentPointerStore(ABC):
    """Abstract store for the active-environment pointer.

    Parameters
    ----------
    environments:
        The two configured roles.  ``environments.blue`` is the bootstrap
        default written when no record exists yet.
    """

    def __init__(self, environments: EnvironmentPair) -> None:
        self._environments = environments

    @property
    def environments(self) -> EnvironmentPair:
        return self._environments

    # -- backend hooks ------------------------------------------------------

    @abstractmethod
    def _read(self) -> str | None:
        """Return the persisted active role, or ``None`` if no record exists."""

    @abstractmethod
    def _write(self, name: str) -> None:
        """Atomically persist *name* as the active role."""

    # -- public API ---------------------------------------------------------

    def get_current_active_environment(self) -> str:
        """Return the active role, bootstrapping the record if it is missing."""
        name = self._read()
        if name is None:
            name = self._environments.blue
            logger.info("No environment pointer found; bootstrapping to '%s'", name)
            self._write(name)
            return name
        if name not in self._environments:
            raise PointerStoreError(
                f"Persisted active environment '{name}' is not one of "
                f"{self._environments.names}",
                location=self.location,
            )
        return name

    def get_inactive_environment(self) -> str:
        return self._environments.other(self.get_current_active_environment())

    def set_active_environment(self, name: str) -> None:
        """Persist *name* as the active role."""
        self._environments.require(name)
        self._write(name)
        logger.info("Environment pointer set to '%s' (%s)", name, self.location)

    @property
    def location(self) -> str:
        """Human-readable location of the record, for logs and errors."""
        return type(self).__name__


class InMemoryPointerStore(EnvironmentPointerStore):
    """Process-local pointer store, for tests and embedding."""

    def __init__(self, environments: EnvironmentPair, active: str | None = None) -> None:
        super().__init__(environments)
        if active is not None:
            environments.require(active)
        self._active = active
        self._lock = threading.Lock()
        self.write_count = 0

    def _read(self) -> str | None:
        with self._lock:
            return self._active

    def _write(self, name: str) -> None:
        with self._lock:
            self._active = name
            self.write_count += 1


class JsonFilePointerStore(EnvironmentPointerStore):
    """Pointer store backed by a small JSON file.

    A missing file means "not yet bootstrapped".  A file that exists but
    cannot be parsed raises ``PointerStoreError`` instead of being silently
    overwritten, since guessing here could move production traffic.
    """

    def __init__(self, path: str | os.PathLike[str], environments: EnvironmentPair) -> None:
        super().__init__(environments)
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def location(self) -> str:
        return str(self._path)

    def _read(self) -> str | None:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as exc:
            raise PointerStoreError(
                f"Environment pointer {self._path} is not valid UTF-8: {exc}",
                location=self.location,
            ) from exc
        except OSError as exc:
            raise PointerStoreError(
                f"Cannot read environment pointer {self._path}: {exc}",
                location=self.location,
            ) from exc

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise PointerStoreError(
                f"Environment pointer {self._path} is not valid JSON: {exc}",
                location=self.location,
            ) from exc

        name = data.get(POINTER_KEY) if isinstance(data, dict) else None
        if not isinstance(name, str):
            raise PointerStoreError(
                f"Environment pointer {self._path} has no '{POINTER_KEY}' string",
                location=self.location,
            )
        return name

    def _write(self, name: str) -> None:
        directory = self._path.parent
        payload = json.dumps({POINTER_KEY: name})
        tmp_name = ""
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=directory
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self._path)
        except OSError as exc:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PointerStoreError(
                f"Cannot write environment pointer {self._path}: {exc}",
                location=self.location,
            ) from exc
