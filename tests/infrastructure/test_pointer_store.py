"""Tests for the environment pointer stores."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from bluegreen.domain.exceptions import InvalidEnvironmentError, PointerStoreError
from bluegreen.domain.values import EnvironmentPair
from bluegreen.infrastructure.pointer_store import (
    POINTER_KEY,
    InMemoryPointerStore,
    JsonFilePointerStore,
)

PAIR = EnvironmentPair()


class TestInMemoryPointerStore:
    def test_bootstraps_to_blue(self) -> None:
        store = InMemoryPointerStore(PAIR)
        assert store.get_current_active_environment() == "blue"
        assert store.get_inactive_environment() == "green"
        assert store.write_count == 1

    def test_reads_are_idempotent(self) -> None:
        store = InMemoryPointerStore(PAIR, active="green")
        assert store.get_current_active_environment() == "green"
        assert store.get_current_active_environment() == "green"
        assert store.write_count == 0

    def test_set_then_get(self) -> None:
        store = InMemoryPointerStore(PAIR, active="blue")
        store.set_active_environment("green")
        assert store.get_current_active_environment() == "green"
        assert store.get_inactive_environment() == "blue"

    def test_rejects_unknown_role(self) -> None:
        store = InMemoryPointerStore(PAIR, active="blue")
        with pytest.raises(InvalidEnvironmentError):
            store.set_active_environment("red")
        assert store.get_current_active_environment() == "blue"

    def test_custom_names_bootstrap_to_first_role(self) -> None:
        store = InMemoryPointerStore(EnvironmentPair(blue="east", green="west"))
        assert store.get_current_active_environment() == "east"


class TestJsonFilePointerStore:
    """File-backed store: bootstrap, atomic writes, corruption handling."""

    def test_missing_file_bootstraps(self, tmp_path: Path) -> None:
        path = tmp_path / "active-environment.json"
        store = JsonFilePointerStore(path, PAIR)
        assert store.get_current_active_environment() == "blue"
        assert json.loads(path.read_text()) == {POINTER_KEY: "blue"}

    def test_reads_existing_record(self, tmp_path: Path) -> None:
        path = tmp_path / "pointer.json"
        path.write_text(json.dumps({POINTER_KEY: "green"}))
        store = JsonFilePointerStore(path, PAIR)
        assert store.get_current_active_environment() == "green"
        assert store.get_inactive_environment() == "blue"

    def test_write_persists_across_instances(self, tmp_path: Path) -> None:
        path = tmp_path / "pointer.json"
        JsonFilePointerStore(path, PAIR).set_active_environment("green")
        assert JsonFilePointerStore(path, PAIR).get_current_active_environment() == "green"

    def test_write_leaves_no_temp_files(self, tmp_path: Path) -> None:
        path = tmp_path / "pointer.json"
        store = JsonFilePointerStore(path, PAIR)
        store.set_active_environment("green")
        store.set_active_environment("blue")
        assert sorted(p.name for p in tmp_path.iterdir()) == ["pointer.json"]

    def test_creates_parent_directory(self, tmp_path: Path) -> None:
        path = tmp_path / "state" / "deploy" / "pointer.json"
        JsonFilePointerStore(path, PAIR).set_active_environment("green")
        assert path.exists()

    @pytest.mark.parametrize(
        "content",
        [
            "{not json",
            json.dumps(["green"]),
            json.dumps({"active": "green"}),
            json.dumps({POINTER_KEY: 3}),
        ],
    )
    def test_malformed_record_is_an_error(self, tmp_path: Path, content: str) -> None:
        path = tmp_path / "pointer.json"
        path.write_text(content)
        store = JsonFilePointerStore(path, PAIR)
        with pytest.raises(PointerStoreError) as excinfo:
            store.get_current_active_environment()
        assert excinfo.value.location == str(path)
        # Left for an operator to inspect, not overwritten.
        assert path.read_text() == content

    def test_undecodable_record_is_an_error(self, tmp_path: Path) -> None:
        path = tmp_path / "pointer.json"
        raw = b'{"activeEnvironment": "\xff\xfe"}'
        path.write_bytes(raw)
        with pytest.raises(PointerStoreError, match="UTF-8"):
            JsonFilePointerStore(path, PAIR).get_current_active_environment()
        assert path.read_bytes() == raw

    def test_unknown_persisted_role_is_an_error(self, tmp_path: Path) -> None:
        path = tmp_path / "pointer.json"
        path.write_text(json.dumps({POINTER_KEY: "red"}))
        with pytest.raises(PointerStoreError, match="red"):
            JsonFilePointerStore(path, PAIR).get_current_active_environment()

    def test_unwritable_location(self, tmp_path: Path) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        store = JsonFilePointerStore(blocker / "pointer.json", PAIR)
        with pytest.raises(PointerStoreError):
            store.set_active_environment("green")
