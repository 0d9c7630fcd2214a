"""Connection resolver: raw resource attributes -> ConnectionSpec.

Pure validation and merge; nothing here touches the network.
"""

from __future__ import annotations

from provisioner.errors import ConfigValidationError
from provisioner.models.connection import AuthMode, BastionHop, ConnectionSpec
from provisioner.models.resource import ResourceConfig


def resolve_connection(config: ResourceConfig) -> ConnectionSpec:
    """Resolve the two-hop connection for *config*.

    ``host_user`` falls back to ``user`` and ``host_private_key`` falls back
    to ``private_key``.  The bastion hop, when present, always uses the
    primary ``user`` / ``private_key``.

    Raises:
        ConfigValidationError: On missing credentials or conflicting auth.
    """
    host_user = config.host_user or config.user
    host_private_key = config.host_private_key or config.private_key

    if config.pre_commands or config.commands:
        if not config.user:
            raise ConfigValidationError(
                "user must be set when 'commands' is specified",
            )
        if not config.agent and not config.private_key:
            raise ConfigValidationError(
                "private_key must be set when 'commands' is specified "
                "and 'agent' is false",
            )
    if host_private_key and config.agent:
        raise ConfigValidationError(
            "agent mode is enabled, not expecting a private key",
        )

    if config.agent:
        auth = AuthMode.agent
    elif host_private_key:
        auth = AuthMode.private_key
    else:
        auth = AuthMode.password

    bastion = None
    if config.bastion_host:
        bastion = BastionHop(
            host=config.bastion_host,
            port=config.bastion_port,
            user=config.user,
            private_key=config.private_key,
            agent=config.agent,
        )

    return ConnectionSpec(
        host=config.host,
        port=config.port,
        user=host_user,
        auth=auth,
        password=config.password,
        private_key=host_private_key,
        bastion=bastion,
    )
