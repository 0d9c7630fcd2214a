"""
Persisted-state migration.

Upgrades a previously stored resource state through every schema version
up to the current one.  Upgraders are forward-only and applied in strictly
increasing version order; each one takes the typed state of version N and
returns the typed state of version N+1.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

from pydantic import ValidationError

from provisioner.errors import StateMigrationError
from provisioner.models.resource import CURRENT_SCHEMA_VERSION, ResourceRecord, When
from provisioner.models.state import STATE_MODELS, StateV0, StateV1, StateV2, StateV3
from provisioner.utils.logging import get_logger

log = get_logger(__name__)


def upgrade_v0(state: StateV0) -> StateV1:
    """Introduce ``when``; records that predate it ran at creation."""
    return StateV1(**state.model_dump(), when=When.create)


def upgrade_v1(state: StateV1) -> StateV2:
    return StateV2(**state.model_dump())


def upgrade_v2(state: StateV2) -> StateV3:
    return StateV3(**state.model_dump())


UPGRADERS: dict[int, Callable[[Any], StateV0]] = {
    0: upgrade_v0,
    1: upgrade_v1,
    2: upgrade_v2,
}


def parse_state(raw: Optional[Mapping[str, Any]], version: int) -> StateV0:
    """Load *raw* as the typed state of *version*.

    Raises:
        StateMigrationError: If the version is unknown or the record does
            not match its declared schema.
    """
    model = STATE_MODELS.get(version)
    if model is None:
        raise StateMigrationError(
            f"unsupported state schema version {version} "
            f"(current is {CURRENT_SCHEMA_VERSION})",
        )
    try:
        return model.model_validate(dict(raw or {}))
    except ValidationError as exc:
        raise StateMigrationError(
            f"state is not a valid version {version} record: {exc}",
        ) from exc


def upgrade_state(raw: Optional[Mapping[str, Any]], version: int) -> StateV3:
    """Upgrade a stored record of *version* to the current schema.

    A ``None`` mapping is treated as an empty record.  Upgrading a record
    that is already current returns it unchanged.
    """
    state = parse_state(raw, version)
    for step in range(version, CURRENT_SCHEMA_VERSION):
        state = UPGRADERS[step](state)
        log.debug("state.upgraded", from_version=step, to_version=step + 1)
    return state  # type: ignore[return-value]


def record_from_state(state: StateV3) -> ResourceRecord:
    """Build a lifecycle record from a current-version state."""
    return ResourceRecord.model_validate(
        {**state.model_dump(), "schema_version": CURRENT_SCHEMA_VERSION},
    )
