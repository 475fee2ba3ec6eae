from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence

from ..errors import CommandError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def _fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def run_cmd(
    argv: Sequence[str],
    *,
    check: bool = True,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
    input_text: str | None = None,
    dry_run: bool = False,
) -> CmdResult:
    """Run a command with consistent logging.

    - Always logs the command (never the stdin payload, which may hold secrets).
    - Captures stdout/stderr.
    - dry_run logs but does not execute.
    """

    argv_list = list(argv)
    logger.info("CMD %s", _fmt_argv(argv_list))

    if dry_run:
        return CmdResult(argv=argv_list, returncode=0, stdout="", stderr="")

    p = subprocess.run(
        argv_list,
        input=input_text,
        text=True,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        cwd=cwd,
        env=dict(os.environ, **(env or {})),
    )

    if p.stdout:
        logger.debug("STDOUT %s", p.stdout.strip())
    if p.stderr:
        logger.debug("STDERR %s", p.stderr.strip())

    if check and p.returncode != 0:
        raise CommandError(argv_list, p.returncode, p.stderr or "")

    if p.returncode != 0:
        logger.warning("Tolerated failure (%s): %s", p.returncode, _fmt_argv(argv_list))

    return CmdResult(argv=argv_list, returncode=p.returncode, stdout=p.stdout, stderr=p.stderr)


@dataclass
class BackgroundProcess:
    argv: list[str]
    proc: Optional[subprocess.Popen] = field(default=None, repr=False)

    def stop(self, timeout: float = 5.0) -> None:
        """Terminate the process; never raises."""
        if self.proc is None or self.proc.poll() is not None:
            return
        logger.info("Stopping %s (pid=%s)", self.argv[0], self.proc.pid)
        try:
            self.proc.terminate()
            self.proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            self.proc.kill()
            self.proc.wait()
        except ProcessLookupError:
            pass


class CommandRunner:
    """Executes external tools on behalf of the steps.

    Steps never call subprocess directly, so tests can swap in a fake that
    records argv lists.
    """

    def __init__(self, *, dry_run: bool = False) -> None:
        self.dry_run = dry_run

    def run(
        self,
        argv: Sequence[str],
        *,
        check: bool = True,
        env: Mapping[str, str] | None = None,
        input_text: str | None = None,
    ) -> CmdResult:
        return run_cmd(argv, check=check, env=env, input_text=input_text, dry_run=self.dry_run)

    def spawn(self, argv: Sequence[str]) -> BackgroundProcess:
        argv_list = list(argv)
        logger.info("SPAWN %s", _fmt_argv(argv_list))
        if self.dry_run:
            return BackgroundProcess(argv=argv_list)
        proc = subprocess.Popen(
            argv_list,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        return BackgroundProcess(argv=argv_list, proc=proc)
