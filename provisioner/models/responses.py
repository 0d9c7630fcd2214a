"""Common API response models."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    version: str
    debug_log: Optional[str] = None


class ErrorResponse(BaseModel):
    detail: str
