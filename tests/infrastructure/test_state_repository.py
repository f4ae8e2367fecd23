"""Tests for JsonStateRepository."""

import json

import pytest
from linode_kitchen.infrastructure.repositories.state_repository import JsonStateRepository


class TestJsonStateRepository:
    def test_missing_loads_empty(self, tmp_path):
        assert JsonStateRepository(tmp_path).load("default-debian") == {}

    def test_save_and_load(self, tmp_path):
        repo = JsonStateRepository(tmp_path / "state")
        repo.save("default-debian", {"linode_id": 42, "hostname": "192.0.2.1"})

        assert repo.load("default-debian") == {"linode_id": 42, "hostname": "192.0.2.1"}
        path = tmp_path / "state" / "default-debian.json"
        assert json.loads(path.read_text())["linode_id"] == 42
        # no temporary files left behind
        assert [p.name for p in (tmp_path / "state").iterdir()] == ["default-debian.json"]

    def test_save_overwrites(self, tmp_path):
        repo = JsonStateRepository(tmp_path)
        repo.save("a", {"linode_id": 1})
        repo.save("a", {})
        assert repo.load("a") == {}

    def test_delete(self, tmp_path):
        repo = JsonStateRepository(tmp_path)
        repo.save("a", {"linode_id": 1})
        assert repo.delete("a") is True
        assert repo.delete("a") is False
        assert repo.load("a") == {}

    def test_rejects_path_traversal(self, tmp_path):
        with pytest.raises(ValueError):
            JsonStateRepository(tmp_path).load("../etc/passwd")

    def test_non_object_state(self, tmp_path):
        (tmp_path / "a.json").write_text("[1, 2]")
        with pytest.raises(ValueError, match="JSON object"):
            JsonStateRepository(tmp_path).load("a")
