from __future__ import annotations

from typing import Sequence


class InstallerError(RuntimeError):
    """Base class for fatal installer failures."""


class PreconditionError(InstallerError):
    """The live environment does not meet the installation requirements."""


class PlanningError(InstallerError):
    """No usable disk, an invalid partition plan, or a disk that changed under us."""


class AbortedByOperator(InstallerError):
    """The operator declined a confirmation."""


class CommandError(InstallerError):
    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"Command failed ({returncode}): {' '.join(self.argv)}\n{stderr}".rstrip())
