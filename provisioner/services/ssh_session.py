"""SSH sessions: the paramiko transport and the per-apply RemoteHost handle.

The engine only needs three capabilities from the wire protocol: open a
session, run a command with a timeout, and stream bytes to a remote path.
``SessionFactory`` / ``Session`` describe that boundary; the paramiko
implementation below is the production one.

Blocking paramiko calls run inside a single-thread executor owned by the
``RemoteHost`` so the asyncio event loop is never blocked.
"""

from __future__ import annotations

import asyncio
import io
import socket
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import BinaryIO, Callable, Optional, Protocol

import paramiko

from provisioner.config import Settings, settings
from provisioner.errors import TransportError
from provisioner.models.commands import CommandResult
from provisioner.models.connection import ConnectionSpec
from provisioner.services.deadline import Deadline
from provisioner.utils.logging import get_logger

log = get_logger(__name__)

_KEY_TYPES: tuple[type[paramiko.PKey], ...] = (
    paramiko.Ed25519Key,
    paramiko.ECDSAKey,
    paramiko.RSAKey,
)


class Session(Protocol):
    def run(self, command: str, timeout: float) -> CommandResult: ...

    def write_file(self, stream: BinaryIO, size: int, destination: str) -> None: ...

    def close(self) -> None: ...


class SessionFactory(Protocol):
    def connect(self, spec: ConnectionSpec, timeout: float) -> Session: ...


# ── paramiko implementation ───────────────────────────────────────────────


def load_private_key(text: str) -> paramiko.PKey:
    """Parse an unencrypted PEM/OpenSSH private key of any supported type."""
    errors: list[str] = []
    for key_type in _KEY_TYPES:
        try:
            return key_type.from_private_key(io.StringIO(text))
        except (paramiko.SSHException, ValueError) as exc:
            errors.append(f"{key_type.__name__}: {exc}")
    raise TransportError("unable to parse private key (" + "; ".join(errors) + ")")


class ParamikoSession:
    """One open connection to the target host, possibly through a bastion."""

    def __init__(
        self,
        client: paramiko.SSHClient,
        bastion: paramiko.SSHClient | None = None,
    ) -> None:
        self._client = client
        self._bastion = bastion

    def run(self, command: str, timeout: float) -> CommandResult:
        started = time.monotonic()
        try:
            stdin, stdout, stderr = self._client.exec_command(command, timeout=timeout)
            stdin.close()
            out = stdout.read().decode("utf-8", errors="replace")
            err = stderr.read().decode("utf-8", errors="replace")
            status = stdout.channel.recv_exit_status()
        except (paramiko.SSHException, socket.timeout, OSError) as exc:
            raise TransportError(f"running {command!r}: {exc}") from exc
        return CommandResult(
            command=command,
            stdout=out,
            stderr=err,
            exit_status=status,
            done=True,
            elapsed_time=time.monotonic() - started,
        )

    def write_file(self, stream: BinaryIO, size: int, destination: str) -> None:
        try:
            sftp = self._client.open_sftp()
            try:
                # confirm=True stats the remote file and raises on a short write
                sftp.putfo(stream, destination, file_size=size, confirm=True)
            finally:
                sftp.close()
        except (paramiko.SSHException, OSError) as exc:
            raise TransportError(f"writing {destination}: {exc}") from exc

    def close(self) -> None:
        try:
            self._client.close()
        finally:
            if self._bastion is not None:
                self._bastion.close()


class ParamikoSessionFactory:
    """Opens paramiko sessions for resolved connection specs."""

    def __init__(self, cfg: Settings | None = None) -> None:
        self._cfg = cfg or settings

    def _new_client(self) -> paramiko.SSHClient:
        client = paramiko.SSHClient()
        if self._cfg.ssh_strict_host_key:
            client.load_system_host_keys()
            if self._cfg.ssh_known_hosts_file:
                client.load_host_keys(self._cfg.ssh_known_hosts_file)
            client.set_missing_host_key_policy(paramiko.RejectPolicy())
        else:
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        return client

    def _open(
        self,
        host: str,
        port: int,
        user: str,
        *,
        private_key: str,
        password: str,
        agent: bool,
        timeout: float,
        sock: Optional[paramiko.Channel] = None,
    ) -> paramiko.SSHClient:
        client = self._new_client()
        kwargs: dict = dict(
            hostname=host,
            port=port,
            username=user,
            allow_agent=agent,
            look_for_keys=False,
            timeout=min(self._cfg.ssh_connect_timeout_seconds, timeout),
            banner_timeout=self._cfg.ssh_banner_timeout_seconds,
            auth_timeout=self._cfg.ssh_auth_timeout_seconds,
        )
        if private_key:
            kwargs["pkey"] = load_private_key(private_key)
        if password:
            kwargs["password"] = password
        if sock is not None:
            kwargs["sock"] = sock
        try:
            client.connect(**kwargs)
        except (paramiko.SSHException, socket.timeout, OSError) as exc:
            client.close()
            raise TransportError(f"connecting to {user}@{host}:{port}: {exc}") from exc
        return client

    def connect(self, spec: ConnectionSpec, timeout: float) -> ParamikoSession:
        bastion_client: paramiko.SSHClient | None = None
        sock = None
        if spec.bastion is not None:
            hop = spec.bastion
            log.info("ssh.bastion_connecting", bastion=f"{hop.host}:{hop.port}")
            bastion_client = self._open(
                hop.host,
                hop.port,
                hop.user,
                private_key=hop.private_key,
                password="",
                agent=hop.agent,
                timeout=timeout,
            )
            try:
                sock = bastion_client.get_transport().open_channel(
                    "direct-tcpip",
                    (spec.host, spec.port),
                    ("127.0.0.1", 0),
                    timeout=timeout,
                )
            except (paramiko.SSHException, OSError) as exc:
                bastion_client.close()
                raise TransportError(
                    f"tunnelling to {spec.address} via {hop.host}: {exc}",
                ) from exc

        log.info("ssh.connecting", host=spec.address, user=spec.user, auth=spec.auth.value)
        try:
            client = self._open(
                spec.host,
                spec.port,
                spec.user,
                private_key=spec.private_key,
                password=spec.password,
                agent=spec.agent,
                timeout=timeout,
                sock=sock,
            )
        except TransportError:
            if bastion_client is not None:
                bastion_client.close()
            raise
        log.info("ssh.connected", host=spec.address)
        return ParamikoSession(client, bastion_client)


# ── per-apply handle ──────────────────────────────────────────────────────


class RemoteHost:
    """Lazily-connected handle on the target host for the duration of one apply.

    The session is opened on first use.  Any transport exception drops it so
    that the next attempt reconnects; every call is bounded by the apply
    deadline.
    """

    def __init__(
        self,
        factory: SessionFactory,
        spec: ConnectionSpec,
        deadline: Deadline,
    ) -> None:
        self.spec = spec
        self._factory = factory
        self._deadline = deadline
        self._session: Optional[Session] = None
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ssh")

    async def _run(self, fn, *args, on_late: Optional[Callable[[Future], None]] = None):
        future = self._executor.submit(fn, *args)
        try:
            return await asyncio.wait_for(
                asyncio.wrap_future(future),
                timeout=self._deadline.remaining(),
            )
        except asyncio.TimeoutError as exc:
            if on_late is not None:
                future.add_done_callback(on_late)
            raise self._deadline.error() from exc

    def _close_late_session(self, future: Future) -> None:
        # Runs in the worker thread once a timed-out connect finally returns.
        if future.cancelled() or future.exception() is not None:
            return
        log.warning("ssh.late_session_closed", host=self.spec.address)
        try:
            future.result().close()
        except Exception as exc:
            log.warning("ssh.close_failed", host=self.spec.address, error=str(exc))

    async def _ensure(self) -> Session:
        if self._session is None:
            self._session = await self._run(
                self._factory.connect,
                self.spec,
                self._deadline.remaining(),
                on_late=self._close_late_session,
            )
        return self._session

    async def _drop(self) -> None:
        session, self._session = self._session, None
        if session is None:
            return
        # Closed from the loop thread: a call still hung in the executor
        # unblocks once its channel goes away.
        try:
            session.close()
        except Exception as exc:
            log.warning("ssh.close_failed", host=self.spec.address, error=str(exc))

    async def run(self, command: str) -> CommandResult:
        session = await self._ensure()
        try:
            return await self._run(session.run, command, self._deadline.remaining())
        except Exception:
            await self._drop()
            raise

    async def write_file(self, stream: BinaryIO, size: int, destination: str) -> None:
        session = await self._ensure()
        try:
            await self._run(session.write_file, stream, size, destination)
        except Exception:
            await self._drop()
            raise

    @property
    def is_connected(self) -> bool:
        return self._session is not None

    async def close(self) -> None:
        await self._drop()
        self._executor.shutdown(wait=False)
        log.debug("ssh.closed", host=self.spec.address)
