"""Tests for persisted-state schema migration."""

from __future__ import annotations

import pytest

from provisioner.errors import StateMigrationError
from provisioner.models.resource import CURRENT_SCHEMA_VERSION, When
from provisioner.models.state import StateV1, StateV3
from provisioner.services.migrate import (
    parse_state,
    record_from_state,
    upgrade_state,
    upgrade_v0,
)

V0_RECORD = {
    "id": "5577006791947779410",
    "host": "10.0.0.5",
    "port": 22,
    "user": "deploy",
    "private_key": "KEY",
    "agent": False,
    "commands": ["date > /tmp/stamp", "echo done"],
    "commands_after_file_changes": True,
    "timeout": "5m",
    "result": "done\n",
    "triggers": {"build": "42"},
    "file": [{"destination": "/etc/motd", "content": "hi", "source": ""}],
}


class TestUpgradeState:
    def test_v0_gets_when_create(self):
        state = upgrade_state(V0_RECORD, 0)
        assert isinstance(state, StateV3)
        assert state.when == When.create

    def test_v0_preserves_fields_and_order(self):
        state = upgrade_state(V0_RECORD, 0)
        assert state.id == "5577006791947779410"
        assert state.commands == ["date > /tmp/stamp", "echo done"]
        assert state.result == "done\n"
        assert state.triggers == {"build": "42"}
        assert state.file[0].destination == "/etc/motd"

    def test_additive_fields_take_defaults(self):
        state = upgrade_state(V0_RECORD, 0)
        assert state.pre_commands == []
        assert state.retry_delay == "10s"
        assert state.password == ""

    def test_none_mapping_tolerated(self):
        state = upgrade_state(None, 0)
        assert state.when == When.create
        assert state.host == ""

    def test_null_attributes_take_defaults(self):
        raw = {
            "id": "1",
            "host": "h",
            "user": "u",
            "bastion_host": None,
            "host_user": None,
            "private_key": None,
            "triggers": None,
            "commands": ["true"],
            "result": None,
            "file": [{"destination": "/etc/motd", "content": "hi", "source": None, "owner": None}],
        }
        state = upgrade_state(raw, 0)
        assert state.when == When.create
        assert state.bastion_host == ""
        assert state.private_key == ""
        assert state.triggers == {}
        assert state.result == ""
        assert state.commands == ["true"]
        assert state.file[0].source == ""
        assert state.file[0].owner == ""

    def test_v1_destroy_is_kept(self):
        state = upgrade_state({**V0_RECORD, "when": "destroy"}, 1)
        assert state.when == When.destroy

    def test_current_version_is_noop(self):
        current = upgrade_state(V0_RECORD, 0)
        again = upgrade_state(current.model_dump(mode="json"), CURRENT_SCHEMA_VERSION)
        assert again == current

    def test_migration_is_idempotent(self):
        once = upgrade_state(V0_RECORD, 0).model_dump(mode="json")
        twice = upgrade_state(once, CURRENT_SCHEMA_VERSION).model_dump(mode="json")
        assert once == twice

    @pytest.mark.parametrize("version", [-1, 4, 99])
    def test_unknown_version_rejected(self, version):
        with pytest.raises(StateMigrationError, match="unsupported state schema version"):
            upgrade_state(V0_RECORD, version)

    def test_invalid_record_rejected(self):
        with pytest.raises(StateMigrationError, match="not a valid version 1 record"):
            upgrade_state({"when": "sometimes"}, 1)


def test_upgrade_v0_returns_v1():
    state = upgrade_v0(parse_state({"host": "h"}, 0))
    assert isinstance(state, StateV1)
    assert state.host == "h"


def test_record_from_state():
    record = record_from_state(upgrade_state(V0_RECORD, 0))
    assert record.present
    assert record.schema_version == CURRENT_SCHEMA_VERSION
    assert record.when == When.create
    assert record.commands == V0_RECORD["commands"]
