"""Remote executor: run an ordered command list with retry-until-deadline.

Commands run strictly one after another, since later commands may depend on
the side effects of earlier ones.  A failing command is retried after
``retry_delay`` until it succeeds or the deadline elapses; in the latter case
the remaining commands are never attempted.
"""

from __future__ import annotations

from provisioner.errors import CommandFailedError, DeadlineExceededError
from provisioner.models.commands import ExecutionPolicy, ExecutionResult
from provisioner.models.diagnostics import Diagnostic
from provisioner.services.deadline import Deadline
from provisioner.services.ssh_session import RemoteHost
from provisioner.utils.debug_log import DebugSink
from provisioner.utils.logging import get_logger

log = get_logger(__name__)

_REDACTED = "(sensitive value)"


async def run_commands(
    host: RemoteHost,
    commands: list[str],
    policy: ExecutionPolicy,
    deadline: Deadline,
    debug: DebugSink,
    *,
    sensitive: bool = False,
) -> ExecutionResult:
    """Execute *commands* in order against *host*.

    On success the result carries the stdout of the last command.  On abort
    it carries the last captured stdout/stderr, the failing command, the
    error, and error diagnostics describing them.
    """
    stdout = ""
    stderr = ""
    attempts = 0

    for command in commands:
        last_failure: tuple[str, str, Exception] | None = None
        while True:
            attempts += 1
            stdout, stderr, done = "", "", False
            error: Exception | None = None
            try:
                res = await host.run(command)
                stdout, stderr, done = res.stdout, res.stderr, res.done
                if res.failed:
                    error = CommandFailedError(command, res.exit_status, res.stdout, res.stderr)
            except Exception as exc:
                error = exc

            debug.write(
                "command: %s\ndone: %s\nstdout:\n%s\nstderr:\n%s\nerror: %s\n",
                command,
                "true" if done else "false",
                _REDACTED if sensitive else stdout,
                _REDACTED if sensitive else stderr,
                error,
            )
            if error is None:
                break

            # An attempt cut short by the deadline reports the previous failure.
            if isinstance(error, DeadlineExceededError) and last_failure is not None:
                stdout, stderr, error = last_failure
            else:
                last_failure = (stdout, stderr, error)

            log.warning("exec.attempt_failed", host=host.spec.address, attempt=attempts, error=str(error))
            if not await deadline.pause(policy.retry_delay):
                debug.write("error: %s\n", error)
                log.error("exec.aborted", host=host.spec.address, failed_command=command, attempts=attempts)
                diagnostics = [
                    Diagnostic(
                        summary=(
                            f"execution of command '{command}' failed: "
                            f"{deadline.error()}: {error}"
                        ),
                        detail=stdout,
                    ),
                ]
                if stderr:
                    diagnostics.append(Diagnostic(summary="stderr output", detail=stderr))
                return ExecutionResult(
                    stdout=stdout,
                    stderr=stderr,
                    failed_command=command,
                    error=str(error),
                    attempts=attempts,
                    diagnostics=diagnostics,
                )

    log.info("exec.done", host=host.spec.address, commands=len(commands), attempts=attempts)
    return ExecutionResult(stdout=stdout, stderr=stderr, attempts=attempts)
