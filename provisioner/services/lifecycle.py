"""Lifecycle controller: create / read / update / delete of a provisioning resource.

The declared phase decides when the payload runs:

* ``when = create``: pre-commands, file sync and main commands run on
  create (and on update when files or commands changed); delete only
  forgets the resource.
* ``when = destroy``: create only assigns an identity; the payload runs on
  delete, and the identity is cleared only if it succeeded.
"""

from __future__ import annotations

from typing import Optional
from uuid import uuid4

from provisioner.errors import FileSyncError
from provisioner.models.diagnostics import (
    ApplyResponse,
    Diagnostic,
    PlanResult,
    has_errors,
)
from provisioner.models.resource import (
    REPLACEMENT_FIELDS,
    ResourceConfig,
    ResourceRecord,
    When,
)
from provisioner.services.deadline import Deadline
from provisioner.services.executor import run_commands
from provisioner.services.file_sync import copy_files
from provisioner.services.ssh_session import RemoteHost, SessionFactory
from provisioner.services.validate import ValidatedResource, validate_resource
from provisioner.utils.debug_log import DebugSink
from provisioner.utils.logging import get_logger

log = get_logger(__name__)


def new_resource_id() -> str:
    """Random 128-bit identity."""
    return uuid4().hex


def files_changed(prior: ResourceConfig, config: ResourceConfig) -> bool:
    return prior.file_set() != config.file_set()


def commands_changed(prior: ResourceConfig, config: ResourceConfig) -> bool:
    return prior.commands != config.commands


def replacement_changes(prior: ResourceConfig, config: ResourceConfig) -> list[str]:
    """Attributes whose change forces delete + create instead of update."""
    return [
        name for name in REPLACEMENT_FIELDS
        if getattr(prior, name) != getattr(config, name)
    ]


class ResourceController:
    """Drives one resource type through its lifecycle.

    The session factory and debug sink are created once by the caller and
    shared by every apply; nothing else is shared between applies.
    """

    def __init__(
        self,
        sessions: SessionFactory,
        debug: DebugSink,
        *,
        sensitive: bool = False,
    ) -> None:
        self._sessions = sessions
        self._debug = debug
        self.sensitive = sensitive

    # ── callbacks ─────────────────────────────────────────────────────

    async def create(self, config: ResourceConfig) -> ApplyResponse:
        if config.when == When.create:
            result, diags = await self._provision(config)
        else:
            # Payload runs on delete.
            _, diags = validate_resource(config)
            result = ""

        if has_errors(diags):
            log.error("apply.create_failed", host=config.host, when=config.when.value)
            return ApplyResponse(record=None, diagnostics=diags)

        record = ResourceRecord.from_config(
            config, resource_id=new_resource_id(), result=result or "",
        )
        log.info("apply.created", resource_id=record.id, host=config.host, when=config.when.value)
        return ApplyResponse(record=record, diagnostics=diags)

    async def read(self, record: ResourceRecord) -> ApplyResponse:
        """Remote state is not inspected; the stored record is authoritative."""
        return ApplyResponse(record=record)

    async def update(self, prior: ResourceRecord, config: ResourceConfig) -> ApplyResponse:
        replace = replacement_changes(prior, config)
        if replace:
            return ApplyResponse(
                record=prior,
                diagnostics=[
                    Diagnostic(
                        summary="attribute change requires replacement",
                        detail=", ".join(replace),
                    ),
                ],
            )

        updated = ResourceRecord.from_config(config, resource_id=prior.id, result=prior.result)
        if config.when != When.create:
            return ApplyResponse(record=updated)

        validated, diags = validate_resource(config)
        if validated is None:
            return ApplyResponse(record=prior, diagnostics=diags)

        cmds_changed = commands_changed(prior, config)
        if not (files_changed(prior, config) or cmds_changed):
            log.debug("apply.update_skipped", resource_id=prior.id)
            return ApplyResponse(record=updated)

        run_main = cmds_changed or config.commands_after_file_changes
        result, diags = await self._execute(validated, run_main=run_main)
        if has_errors(diags):
            log.error("apply.update_failed", resource_id=prior.id)
            return ApplyResponse(record=prior, diagnostics=diags)

        if result is not None:
            updated = updated.model_copy(update={"result": result})
        log.info("apply.updated", resource_id=prior.id, commands_ran=run_main)
        return ApplyResponse(record=updated, diagnostics=diags)

    async def delete(self, record: ResourceRecord) -> ApplyResponse:
        if not record.present:
            return ApplyResponse(record=record)

        diags: list[Diagnostic] = []
        if record.when == When.destroy:
            _, diags = await self._provision(record.to_config())
            if has_errors(diags):
                log.error("apply.delete_failed", resource_id=record.id)
                return ApplyResponse(record=record, diagnostics=diags)

        log.info("apply.deleted", resource_id=record.id, when=record.when.value)
        return ApplyResponse(
            record=record.model_copy(update={"id": ""}),
            diagnostics=diags,
        )

    def plan(self, prior: Optional[ResourceRecord], config: ResourceConfig) -> PlanResult:
        """Decide, before an apply, whether ``result`` will be recomputed."""
        if prior is None or not prior.present:
            return PlanResult(result_unknown=config.when == When.create)
        replace = replacement_changes(prior, config)
        if replace:
            return PlanResult(result_unknown=True, requires_replace=replace)
        unknown = config.when == When.create and (
            files_changed(prior, config) or commands_changed(prior, config)
        )
        return PlanResult(result_unknown=unknown)

    def import_state(self, resource_id: str, config: ResourceConfig) -> ApplyResponse:
        """Adopt an existing identity without touching the remote host."""
        record = ResourceRecord.from_config(config, resource_id=resource_id)
        log.info("apply.imported", resource_id=resource_id, host=config.host)
        return ApplyResponse(record=record)

    # ── helpers ───────────────────────────────────────────────────────

    async def _provision(self, config: ResourceConfig) -> tuple[Optional[str], list[Diagnostic]]:
        validated, diags = validate_resource(config)
        if validated is None:
            return None, diags
        return await self._execute(validated)

    async def _execute(
        self,
        validated: ValidatedResource,
        *,
        run_main: bool = True,
    ) -> tuple[Optional[str], list[Diagnostic]]:
        """Pre-commands -> file sync -> main commands, under one deadline.

        Returns the captured result (``None`` when main commands were
        skipped) and the diagnostics of the first failing stage.
        """
        deadline = Deadline(validated.policy.timeout)
        host = RemoteHost(self._sessions, validated.connection, deadline)
        try:
            # ── 1. Pre-commands ───────────────────────────────────────
            if validated.pre_commands:
                pre = await run_commands(
                    host, validated.pre_commands, validated.policy, deadline,
                    self._debug, sensitive=self.sensitive,
                )
                if not pre.success:
                    return None, pre.diagnostics

            # ── 2. Files ──────────────────────────────────────────────
            try:
                await copy_files(
                    host, validated.files, validated.policy, deadline,
                    self._debug, sensitive=self.sensitive,
                )
            except FileSyncError as exc:
                return None, [Diagnostic(summary=f"copying files to remote: {exc}")]

            if not run_main:
                return None, []

            # ── 3. Main commands ──────────────────────────────────────
            main = await run_commands(
                host, validated.commands, validated.policy, deadline,
                self._debug, sensitive=self.sensitive,
            )
            if not main.success:
                return None, main.diagnostics
            return main.stdout, []
        finally:
            await host.close()
