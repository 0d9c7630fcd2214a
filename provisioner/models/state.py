"""Persisted-state schemas, one model per schema version.

Each version only ever adds fields to the previous one.  Unknown keys are
ignored so that a record written by a newer minor release still parses.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from provisioner.models.resource import (
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT,
    MAX_COMMANDS,
    FileArtifact,
    When,
)


class StateV0(BaseModel):
    """Initial schema: no ``when``, no pre-commands, no retry delay."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    triggers: dict[str, str] = Field(default_factory=dict)
    host: str = ""
    port: int = 22
    bastion_host: str = ""
    bastion_port: int = 22
    user: str = ""
    host_user: str = ""
    private_key: str = Field(default="", repr=False)
    host_private_key: str = Field(default="", repr=False)
    agent: bool = False
    commands: list[str] = Field(default_factory=list, max_length=MAX_COMMANDS)
    commands_after_file_changes: bool = True
    timeout: str = DEFAULT_TIMEOUT
    result: str = ""
    file: list[FileArtifact] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # Unset optional attributes are persisted as null.
        if not isinstance(data, dict):
            return data
        cleaned = {k: v for k, v in data.items() if v is not None}
        files = cleaned.get("file")
        if isinstance(files, list):
            cleaned["file"] = [
                {k: v for k, v in f.items() if v is not None} if isinstance(f, dict) else f
                for f in files
            ]
        return cleaned


class StateV1(StateV0):
    """Adds the execution phase."""

    when: When = When.create


class StateV2(StateV1):
    """Adds pre-commands and the retry delay."""

    pre_commands: list[str] = Field(default_factory=list, max_length=MAX_COMMANDS)
    retry_delay: str = DEFAULT_RETRY_DELAY


class StateV3(StateV2):
    """Adds password authentication."""

    password: str = Field(default="", repr=False)


STATE_MODELS: dict[int, type[StateV0]] = {
    0: StateV0,
    1: StateV1,
    2: StateV2,
    3: StateV3,
}
