"""Command-related data structures."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from provisioner.models.diagnostics import Diagnostic


class CommandResult(BaseModel):
    """Internal result from one SSH command execution."""

    command: str
    stdout: str = ""
    stderr: str = ""
    exit_status: int = 0
    done: bool = True
    elapsed_time: float = 0.0

    @property
    def failed(self) -> bool:
        return not self.done or self.exit_status != 0


class ExecutionPolicy(BaseModel):
    """Timing policy of one apply, in seconds."""

    timeout: float = Field(gt=0)
    retry_delay: float = Field(ge=0)


class ExecutionResult(BaseModel):
    """Outcome of running one ordered command list."""

    stdout: str = ""
    stderr: str = ""
    failed_command: Optional[str] = None
    error: Optional[str] = None
    attempts: int = 0
    diagnostics: list[Diagnostic] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error is None
