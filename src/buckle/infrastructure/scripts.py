"""Script execution — interpreter dispatch and output capture.

Scripts always run to completion: there is no timeout and no
cancellation. Variables reach the child through its environment only,
never through argv, so secrets don't show up in process listings.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from buckle.config.models import InterpretersConfig
from buckle.domain.package import InterpreterKind, ScriptFile, require_interpreter
from buckle.domain.redaction import redact
from buckle.errors import ExecutionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ScriptResult:
    """Outcome of one script run."""

    path: Path
    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def build_command(
    path: Path,
    kind: InterpreterKind,
    interpreters: InterpretersConfig | None = None,
) -> list[str]:
    """Return the argv used to run *path* with the interpreter for *kind*."""
    cfg = interpreters or InterpretersConfig()
    match kind:
        case InterpreterKind.BASH:
            return [cfg.shell, str(path)]
        case InterpreterKind.POWERSHELL:
            return [cfg.powershell, "-NoProfile", "-NonInteractive", "-File", str(path)]
        case InterpreterKind.CMD:
            return [cfg.cmd, "/C", str(path)]


def child_environment(variables: Mapping[str, str]) -> dict[str, str]:
    """The current process environment overlaid with *variables*."""
    merged = os.environ.copy()
    merged.update(variables)
    return merged


def run_script(
    path: Path,
    kind: InterpreterKind,
    env: Mapping[str, str],
    *,
    interpreters: InterpretersConfig | None = None,
    check: bool = True,
    hide_output: bool = False,
) -> ScriptResult:
    """Run *path* and block until it exits.

    Args:
        path: The script file.
        kind: Interpreter to run it with.
        env: Variables to expose; merged over the current environment.
        interpreters: Executable overrides from settings.
        check: Raise :class:`ExecutionError` on a non-zero exit.
        hide_output: Keep stdout and stderr out of logs and errors. Set for
            scripts whose output is itself secret.
    """
    command = build_command(path, kind, interpreters)
    logger.debug("Running script %s with %s", path, command[0])
    try:
        proc = subprocess.run(
            command,
            env=child_environment(env),
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError as exc:
        msg = (
            f"Failed to execute '{command[0]}'. Make sure it is installed, "
            "on your PATH, and that you have permission to run it"
        )
        raise ExecutionError(msg, path=path) from exc
    except OSError as exc:
        msg = f"Failed to execute the command '{command[0]} {path}': {exc}"
        raise ExecutionError(msg, path=path) from exc

    result = ScriptResult(
        path=path,
        stdout=proc.stdout or "",
        stderr=proc.stderr or "",
        exit_code=proc.returncode,
    )
    if result.stderr and not hide_output:
        logger.debug("stderr from %s:\n%s", path, result.stderr)

    if check and not result.ok:
        msg = f"Script exited with status {result.exit_code}"
        if hide_output:
            raise ExecutionError(msg, path=path, exit_code=result.exit_code)
        raise ExecutionError(
            msg,
            path=path,
            exit_code=result.exit_code,
            stdout=redact(result.stdout),
            stderr=redact(result.stderr),
        )
    return result


def run_script_file(
    script: ScriptFile,
    env: Mapping[str, str],
    *,
    interpreters: InterpretersConfig | None = None,
) -> ScriptResult:
    return run_script(script.path, script.interpreter, env, interpreters=interpreters)


def run_config_script(
    path: Path,
    env: Mapping[str, str] | None = None,
    *,
    interpreters: InterpretersConfig | None = None,
    secret: bool = False,
) -> str:
    """Run a config-discovery script and return its stdout.

    A non-zero exit is always fatal: config never loads from partial data.
    When *secret* is set the script's output never reaches logs or the
    raised error, since nothing is registered for redaction yet.
    """
    kind = require_interpreter(path)
    result = run_script(
        path, kind, env or {}, interpreters=interpreters, check=True, hide_output=secret
    )
    return result.stdout
