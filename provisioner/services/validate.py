"""Resource validation.

Everything here runs before a connection is opened:
1. Timing policy (duration syntax, ``retry_delay < timeout``).
2. File artifacts (exactly one of source/content, source readable).
3. Connection resolution (credentials and auth-mode conflicts).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from provisioner.errors import ConfigValidationError
from provisioner.models.commands import ExecutionPolicy
from provisioner.models.connection import ConnectionSpec
from provisioner.models.diagnostics import Diagnostic
from provisioner.models.resource import FileArtifact, ResourceConfig
from provisioner.services.connection import resolve_connection
from provisioner.services.file_sync import collect_files
from provisioner.utils.durations import parse_duration
from provisioner.utils.logging import get_logger

log = get_logger(__name__)


@dataclass
class ValidatedResource:
    """Everything an apply needs, resolved from the raw attributes."""

    connection: ConnectionSpec
    policy: ExecutionPolicy
    pre_commands: list[str] = field(default_factory=list)
    commands: list[str] = field(default_factory=list)
    files: list[FileArtifact] = field(default_factory=list)


def resolve_policy(config: ResourceConfig) -> ExecutionPolicy:
    """Parse the timing attributes.

    Raises:
        ConfigValidationError: On malformed durations or ``retry_delay >= timeout``.
    """
    try:
        timeout = parse_duration(config.timeout)
    except ValueError as exc:
        raise ConfigValidationError(f"timeout value: {exc}") from exc
    try:
        retry_delay = parse_duration(config.retry_delay)
    except ValueError as exc:
        raise ConfigValidationError(f"retry_delay value: {exc}") from exc

    if retry_delay < 0:
        raise ConfigValidationError(f"retry_delay value: negative duration {config.retry_delay!r}")
    if retry_delay >= timeout:
        raise ConfigValidationError(
            f"retry_delay cannot be greater than timeout ({config.retry_delay} >= {config.timeout})",
        )
    return ExecutionPolicy(timeout=timeout, retry_delay=retry_delay)


def validate_resource(
    config: ResourceConfig,
) -> tuple[ValidatedResource | None, list[Diagnostic]]:
    """Validate *config*; returns the resolved resource or error diagnostics."""
    try:
        policy = resolve_policy(config)
    except ConfigValidationError as exc:
        return None, [Diagnostic.from_error(exc)]

    files, diags = collect_files(config.file)
    if diags:
        log.warning("validate.files_rejected", host=config.host, count=len(diags))
        return None, diags

    try:
        connection = resolve_connection(config)
    except ConfigValidationError as exc:
        return None, [Diagnostic.from_error(exc)]

    return (
        ValidatedResource(
            connection=connection,
            policy=policy,
            pre_commands=list(config.pre_commands),
            commands=list(config.commands),
            files=files,
        ),
        [],
    )
