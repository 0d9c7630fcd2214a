"""Lifecycle callback endpoints.

Every endpoint is stateless: the caller sends the prior record and/or the
desired attributes and persists whatever record comes back.
"""

from __future__ import annotations

from enum import Enum

from fastapi import APIRouter, Depends, Request

from provisioner.auth import require_api_key
from provisioner.errors import StateMigrationError
from provisioner.models.diagnostics import (
    ApplyResponse,
    Diagnostic,
    PlanResult,
    UpgradeRequest,
    UpgradeResponse,
)
from provisioner.models.resource import (
    CURRENT_SCHEMA_VERSION,
    ImportRequest,
    PlanRequest,
    ResourceConfig,
    ResourceRecord,
    UpdateRequest,
)
from provisioner.services.lifecycle import ResourceController
from provisioner.services.migrate import upgrade_state


class ResourceKind(str, Enum):
    ssh_resource = "ssh_resource"
    ssh_sensitive_resource = "ssh_sensitive_resource"


router = APIRouter(
    prefix="/resources/{kind}",
    tags=["resources"],
    dependencies=[Depends(require_api_key)],
)


def get_controller(kind: ResourceKind, request: Request) -> ResourceController:
    """Build a controller around the process-wide session factory and debug sink."""
    state = request.app.state
    return ResourceController(
        state.session_factory,
        state.debug_sink,
        sensitive=kind == ResourceKind.ssh_sensitive_resource,
    )


# ── CRUD ──────────────────────────────────────────────────────────────────


@router.post("/create", response_model=ApplyResponse)
async def create(
    config: ResourceConfig,
    ctl: ResourceController = Depends(get_controller),
) -> ApplyResponse:
    return await ctl.create(config)


@router.post("/read", response_model=ApplyResponse)
async def read(
    record: ResourceRecord,
    ctl: ResourceController = Depends(get_controller),
) -> ApplyResponse:
    return await ctl.read(record)


@router.post("/update", response_model=ApplyResponse)
async def update(
    req: UpdateRequest,
    ctl: ResourceController = Depends(get_controller),
) -> ApplyResponse:
    return await ctl.update(req.prior, req.config)


@router.post("/delete", response_model=ApplyResponse)
async def delete(
    record: ResourceRecord,
    ctl: ResourceController = Depends(get_controller),
) -> ApplyResponse:
    return await ctl.delete(record)


# ── Plan / import / upgrade ───────────────────────────────────────────────


@router.post("/plan", response_model=PlanResult)
async def plan(
    req: PlanRequest,
    ctl: ResourceController = Depends(get_controller),
) -> PlanResult:
    return ctl.plan(req.prior, req.config)


@router.post("/import", response_model=ApplyResponse)
async def import_resource(
    req: ImportRequest,
    ctl: ResourceController = Depends(get_controller),
) -> ApplyResponse:
    return ctl.import_state(req.id, req.config)


@router.post("/upgrade", response_model=UpgradeResponse)
async def upgrade(kind: ResourceKind, req: UpgradeRequest) -> UpgradeResponse:
    """Upgrade a stored state record to the current schema version."""
    try:
        state = upgrade_state(req.state, req.version)
    except StateMigrationError as exc:
        return UpgradeResponse(
            version=req.version,
            state=req.state,
            diagnostics=[Diagnostic.from_error(exc)],
        )
    return UpgradeResponse(version=CURRENT_SCHEMA_VERSION, state=state.model_dump(mode="json"))
