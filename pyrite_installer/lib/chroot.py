from __future__ import annotations

import contextlib
import logging
import os
import secrets
from pathlib import Path
from typing import TYPE_CHECKING, Iterator, Mapping, Sequence

from .command import CmdResult, run_cmd

if TYPE_CHECKING:
    from ..cleanup import CleanupManager

logger = logging.getLogger(__name__)


def run_in_target(
    target_root: str,
    argv: Sequence[str],
    *,
    check: bool = True,
    input_text: str | None = None,
) -> CmdResult:
    """Run a command against the installed system's own files (arch-chroot)."""

    return run_cmd(["arch-chroot", target_root, *argv], check=check, input_text=input_text)


def chroot_shell(target_root: str, script: str, *, check: bool = True) -> CmdResult:
    return run_in_target(target_root, ["/bin/sh", "-c", script], check=check)


def write_target_file(target_root: str, rel: str, contents: str, *, mode: int | None = None) -> Path:
    """Atomically write a file inside the target root."""

    p = Path(target_root) / rel.lstrip("/")
    p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_name(f".{p.name}.tmp")
    tmp.write_text(contents, encoding="utf-8")
    if mode is not None:
        os.chmod(tmp, mode)
    os.replace(tmp, p)
    logger.info("Wrote %s", str(p))
    return p


@contextlib.contextmanager
def secrets_file(
    target_root: str,
    lines: Mapping[str, str],
    cleanup: CleanupManager | None = None,
) -> Iterator[str]:
    """Yield a path (as seen inside the target) to a 0600 user:password file.

    The file is removed as soon as the block exits; it is also handed to the
    cleanup manager so an interrupted run does not leave it behind.
    """

    rel = f"root/.pyrite-{secrets.token_hex(8)}"
    host_path = Path(target_root) / rel
    host_path.parent.mkdir(parents=True, exist_ok=True)
    if cleanup is not None:
        cleanup.register_file(host_path)
    fd = os.open(host_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write("".join(f"{user}:{password}\n" for user, password in lines.items()))
        yield "/" + rel
    finally:
        host_path.unlink(missing_ok=True)
        logger.debug("Removed transient secrets file")


def set_passwords(target_root: str, passwords: Mapping[str, str], cleanup: CleanupManager | None = None) -> None:
    with secrets_file(target_root, passwords, cleanup) as inner:
        chroot_shell(target_root, f"chpasswd < {inner}")
    logger.info("Passwords set for: %s", ", ".join(passwords))
