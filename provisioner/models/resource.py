"""Resource attributes, file artifacts and the persisted resource record."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

MAX_COMMANDS = 100
DEFAULT_TIMEOUT = "5m"
DEFAULT_RETRY_DELAY = "10s"
CURRENT_SCHEMA_VERSION = 3

# Attributes whose change cannot be applied in place.
REPLACEMENT_FIELDS: tuple[str, ...] = ("host", "user", "host_user", "triggers")


class When(str, Enum):
    """Phase in which the resource payload is executed."""

    create = "create"
    destroy = "destroy"


class FileArtifact(BaseModel):
    """One file to be materialised on the remote host."""

    model_config = ConfigDict(frozen=True)

    destination: str
    source: str = ""
    content: str = Field(default="", repr=False)
    permissions: str = ""
    owner: str = ""
    group: str = ""


class ResourceConfig(BaseModel):
    """Desired state of one provisioning resource, as supplied by the caller."""

    when: When = When.create
    triggers: dict[str, str] = Field(default_factory=dict)

    host: str
    port: int = 22
    bastion_host: str = ""
    bastion_port: int = 22

    user: str = ""
    host_user: str = ""
    password: str = Field(default="", repr=False)
    private_key: str = Field(default="", repr=False)
    host_private_key: str = Field(default="", repr=False)
    agent: bool = False

    pre_commands: list[str] = Field(default_factory=list, max_length=MAX_COMMANDS)
    commands: list[str] = Field(default_factory=list, max_length=MAX_COMMANDS)
    commands_after_file_changes: bool = True

    timeout: str = DEFAULT_TIMEOUT
    retry_delay: str = DEFAULT_RETRY_DELAY

    file: list[FileArtifact] = Field(default_factory=list)

    def file_set(self) -> frozenset[FileArtifact]:
        """The file block with set semantics (order and duplicates ignored)."""
        return frozenset(self.file)

    def to_config(self) -> ResourceConfig:
        return ResourceConfig.model_validate(
            self.model_dump(include=set(ResourceConfig.model_fields)),
        )


class ResourceRecord(ResourceConfig):
    """Persisted state of a resource.  An empty ``id`` means absent."""

    id: str = ""
    result: str = ""
    schema_version: int = CURRENT_SCHEMA_VERSION

    @property
    def present(self) -> bool:
        return bool(self.id)

    @classmethod
    def from_config(
        cls,
        config: ResourceConfig,
        *,
        resource_id: str,
        result: str = "",
    ) -> ResourceRecord:
        return cls(
            **config.model_dump(include=set(ResourceConfig.model_fields)),
            id=resource_id,
            result=result,
        )


class UpdateRequest(BaseModel):
    prior: ResourceRecord
    config: ResourceConfig


class PlanRequest(BaseModel):
    prior: Optional[ResourceRecord] = None
    config: ResourceConfig


class ImportRequest(BaseModel):
    id: str = Field(min_length=1)
    config: ResourceConfig
