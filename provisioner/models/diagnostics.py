"""Diagnostics and lifecycle response models."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from provisioner.models.resource import ResourceRecord


class Severity(str, Enum):
    error = "error"
    warning = "warning"


class Diagnostic(BaseModel):
    severity: Severity = Severity.error
    summary: str
    detail: str = ""

    @classmethod
    def from_error(cls, exc: BaseException, detail: str = "") -> Diagnostic:
        return cls(severity=Severity.error, summary=str(exc), detail=detail)


def has_errors(diagnostics: list[Diagnostic]) -> bool:
    return any(d.severity == Severity.error for d in diagnostics)


class ApplyResponse(BaseModel):
    """Outcome of one lifecycle call."""

    record: Optional[ResourceRecord] = None
    diagnostics: list[Diagnostic] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not has_errors(self.diagnostics)


class PlanResult(BaseModel):
    """Pre-apply diff: what the next apply will do to the computed fields."""

    result_unknown: bool = False
    requires_replace: list[str] = Field(default_factory=list)
    diagnostics: list[Diagnostic] = Field(default_factory=list)


class UpgradeRequest(BaseModel):
    version: int
    state: Optional[dict[str, Any]] = None


class UpgradeResponse(BaseModel):
    version: int
    state: Optional[dict[str, Any]] = None
    diagnostics: list[Diagnostic] = Field(default_factory=list)
