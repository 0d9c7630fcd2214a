"""Fully-resolved connection specification."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AuthMode(str, Enum):
    password = "password"
    private_key = "private_key"
    agent = "agent"


class BastionHop(BaseModel):
    """Intermediate host, authenticated with the primary user and key."""

    model_config = ConfigDict(frozen=True)

    host: str
    port: int = 22
    user: str = ""
    private_key: str = Field(default="", repr=False)
    agent: bool = False


class ConnectionSpec(BaseModel):
    """Two-hop connection: optional bastion, then the target host."""

    model_config = ConfigDict(frozen=True)

    host: str
    port: int = 22
    user: str = ""
    auth: AuthMode
    password: str = Field(default="", repr=False)
    private_key: str = Field(default="", repr=False)
    bastion: Optional[BastionHop] = None

    @property
    def agent(self) -> bool:
        return self.auth == AuthMode.agent

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"
