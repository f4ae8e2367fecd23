"""Tests for domain value objects."""

import pytest
from conftest import make_spec
from linode_kitchen.domain.value_objects.failure import Failure, FailureKind
from linode_kitchen.domain.value_objects.host_instance import HostInstance
from linode_kitchen.domain.value_objects.instance_handle import (
    HANDLE_KEYS,
    InstanceHandle,
    clear_handle,
)


class TestProvisionSpec:
    def test_valid(self):
        spec = make_spec()
        assert spec.tags == ("kitchen",)
        assert spec.label_style == "suffix"
        assert not spec.has_key_pair

    @pytest.mark.parametrize("field", ["region", "instance_type", "image", "label_prefix", "root_password"])
    def test_empty_required_field(self, field):
        with pytest.raises(ValueError):
            make_spec(**{field: ""})

    def test_bad_label_style(self):
        with pytest.raises(ValueError, match="label_style"):
            make_spec(label_style="uuid")

    def test_bad_hostname(self):
        with pytest.raises(ValueError, match="hostname"):
            make_spec(hostname="bad host")

    def test_zero_retries(self):
        with pytest.raises(ValueError, match="api_retries"):
            make_spec(api_retries=0)

    def test_key_pair_and_password_disable(self):
        spec = make_spec(private_key_path="/home/u/.ssh/id_rsa", authorized_key="ssh-rsa AAA")
        assert spec.has_key_pair
        assert spec.disables_password_auth
        assert not make_spec(
            private_key_path="/k", authorized_key="ssh-rsa AAA", disable_ssh_password=False
        ).disables_password_auth


class TestInstanceHandle:
    def test_key_and_password_exclusive(self):
        with pytest.raises(ValueError):
            InstanceHandle(1, "l", "h", ssh_key="/k", password="p")

    def test_str(self):
        assert str(InstanceHandle(7, "lbl", "h")) == "<7, lbl>"

    def test_write_and_read_back_key_handle(self):
        state = {"password": "stale"}
        InstanceHandle(7, "lbl", "192.0.2.1", ssh_key="/k").write_to(state)
        assert state == {
            "linode_id": 7,
            "linode_label": "lbl",
            "hostname": "192.0.2.1",
            "ssh_key": "/k",
        }
        assert InstanceHandle.from_state(state).uses_key_auth

    def test_password_handle(self):
        state = {}
        InstanceHandle(8, "lbl", "h", password="pw").write_to(state)
        assert state["password"] == "pw"
        assert "ssh_key" not in state
        assert InstanceHandle.from_state(state).password == "pw"

    def test_from_empty_state(self):
        assert InstanceHandle.from_state({}) is None

    def test_clear_handle_removes_all_keys(self):
        state = {key: "x" for key in HANDLE_KEYS}
        state["last_action"] = "create"
        clear_handle(state)
        assert state == {"last_action": "create"}


class TestHostInstance:
    def test_str(self):
        assert str(HostInstance("default-debian", "debian12")) == "default-debian (debian12)"

    def test_requires_name(self):
        with pytest.raises(ValueError):
            HostInstance("", "debian12")


class TestFailure:
    def test_retryable_kinds(self):
        assert Failure(FailureKind.TRANSIENT).retryable
        assert Failure(FailureKind.RATE_LIMITED).retryable
        assert Failure(FailureKind.LABEL_CONFLICT).retryable
        assert not Failure(FailureKind.USER_ERROR).retryable
        assert not Failure(FailureKind.NOT_FOUND).retryable
        assert not Failure(FailureKind.UNKNOWN).retryable
