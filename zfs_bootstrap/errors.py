from __future__ import annotations

from typing import Sequence


class InstallerError(RuntimeError):
    """Base class for fatal installer failures.

    ``exit_code`` is what the CLI exits with when the error reaches it.
    """

    exit_code = 1


class PreflightError(InstallerError):
    exit_code = 2


class ConfirmationDeclined(InstallerError):
    exit_code = 3


class DiskError(InstallerError):
    exit_code = 4


class LockError(DiskError):
    pass


class ResourceError(InstallerError):
    """A partition, pool or dataset did not appear after creating it."""

    exit_code = 5


class CommandError(InstallerError):
    exit_code = 6

    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        msg = f"Command failed ({returncode}): {' '.join(self.argv)}"
        if stderr.strip():
            msg += f"\n{stderr.strip()}"
        super().__init__(msg)


class CacheTimeoutError(InstallerError):
    exit_code = 7
