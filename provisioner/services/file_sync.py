"""File synchronizer: upload artifacts and apply permission/ownership changes.

Per file the steps are strictly ordered: transfer, ``chmod``, ``chown``,
``chgrp``.  The whole sequence is retried as one unit, so a failing
``chown`` causes the file to be transferred again on the next attempt.
Nothing already written is rolled back.
"""

from __future__ import annotations

import io
import os
import shlex

from provisioner.errors import CommandFailedError, FileSyncError
from provisioner.models.commands import ExecutionPolicy
from provisioner.models.diagnostics import Diagnostic
from provisioner.models.resource import FileArtifact
from provisioner.services.deadline import Deadline
from provisioner.services.ssh_session import RemoteHost
from provisioner.utils.debug_log import DebugSink
from provisioner.utils.logging import get_logger

log = get_logger(__name__)


def collect_files(
    artifacts: list[FileArtifact],
) -> tuple[list[FileArtifact], list[Diagnostic]]:
    """Validate every artifact of the batch before anything is transferred.

    Returns the valid artifacts and one error diagnostic per rejected one.
    """
    files: list[FileArtifact] = []
    diags: list[Diagnostic] = []

    # Identical blocks are one artifact; first-seen order is kept.
    for f in dict.fromkeys(artifacts):
        if not f.source and not f.content:
            diags.append(
                Diagnostic(
                    summary="conflict in file block",
                    detail=f"file {f.destination} has neither 'source' or 'content', set one",
                ),
            )
            continue
        if f.source and f.content:
            diags.append(
                Diagnostic(
                    summary="conflict in file block",
                    detail=(
                        f"file {f.destination} has conflicting 'source' and "
                        "'content', choose only one"
                    ),
                ),
            )
            continue
        if f.source:
            try:
                src = open(f.source, "rb")
            except OSError as exc:
                diags.append(
                    Diagnostic(summary="issue with source", detail=f"file {f.source}: {exc}"),
                )
                continue
            with src:
                try:
                    os.fstat(src.fileno())
                except OSError as exc:
                    diags.append(
                        Diagnostic(
                            summary="issue with source stat",
                            detail=f"file {f.source}: {exc}",
                        ),
                    )
                    continue
        files.append(f)

    return files, diags


async def _remote_change(host: RemoteHost, debug: DebugSink, verb: str, value: str, f: FileArtifact) -> None:
    command = f"{verb} {shlex.quote(value)} {shlex.quote(f.destination)}"
    res = await host.run(command)
    debug.write("%s file %s:%s: %s %s\n", verb, f.destination, value, res.stdout, res.stderr)
    if res.failed:
        raise CommandFailedError(command, res.exit_status, res.stdout, res.stderr)


async def copy_file(host: RemoteHost, f: FileArtifact, debug: DebugSink, *, sensitive: bool = False) -> None:
    """Run one attempt of the full per-file sequence."""
    if f.source:
        try:
            with open(f.source, "rb") as src:
                size = os.fstat(src.fileno()).st_size
                await host.write_file(src, size, f.destination)
        except Exception as exc:
            debug.write("Failed to copy %s to remote file %s:%s: %s\n", f.source, host.spec.address, f.destination, exc)
            raise
        debug.write("Copied %s to remote file %s:%s: %d bytes\n", f.source, host.spec.address, f.destination, size)
    else:
        data = f.content.encode("utf-8")
        try:
            await host.write_file(io.BytesIO(data), len(data), f.destination)
        except Exception as exc:
            debug.write("Failed to copy content to remote file %s:%s: %s\n", host.spec.address, f.destination, exc)
            raise
        if sensitive:
            debug.write("Created remote file %s:%s\n", host.spec.address, f.destination)
        else:
            debug.write("Created remote file %s:%s: %d bytes\n", host.spec.address, f.destination, len(data))

    if f.permissions:
        await _remote_change(host, debug, "chmod", f.permissions, f)
    if f.owner:
        await _remote_change(host, debug, "chown", f.owner, f)
    if f.group:
        await _remote_change(host, debug, "chgrp", f.group, f)


async def copy_files(
    host: RemoteHost,
    files: list[FileArtifact],
    policy: ExecutionPolicy,
    deadline: Deadline,
    debug: DebugSink,
    *,
    sensitive: bool = False,
) -> None:
    """Synchronise *files* one after another.

    Raises:
        FileSyncError: When a file still fails once the deadline elapsed;
            later files are not attempted.
    """
    for f in files:
        attempt = 0
        while True:
            attempt += 1
            try:
                await copy_file(host, f, debug, sensitive=sensitive)
                break
            except Exception as exc:
                log.warning("files.attempt_failed", destination=f.destination, attempt=attempt, error=str(exc))
                if not await deadline.pause(policy.retry_delay):
                    log.error("files.aborted", destination=f.destination, attempts=attempt)
                    raise FileSyncError(f.destination, exc, deadline.timeout) from exc
        log.info("files.synced", destination=f.destination, attempts=attempt)
