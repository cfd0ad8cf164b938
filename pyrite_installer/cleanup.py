from __future__ import annotations

import atexit
import logging
import signal
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from .lib.command import run_cmd

logger = logging.getLogger(__name__)


@dataclass
class ReleaseHandle:
    """One outstanding resource (a mount, an active swap device, ...)."""

    description: str
    _release: Callable[[], None] = field(repr=False)
    released: bool = False

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        self._release()


class CleanupManager:
    """Scoped teardown guard for everything the pipeline acquires.

    Handles (mounts, active swap) are released in reverse acquisition order,
    then a safety net runs (recursive unmount of the mount root, transient
    file removal)
    so a run that died between acquiring a resource and registering it still
    leaves the live environment unmounted. Partitioning and formatting are
    never undone.
    """

    def __init__(self, mount_root: str) -> None:
        self.mount_root = mount_root
        self._handles: List[ReleaseHandle] = []
        self._files: List[Path] = []
        self._closed = False
        self._installed = False

    def push(self, description: str, release: Callable[[], None]) -> ReleaseHandle:
        handle = ReleaseHandle(description=description, _release=release)
        self._handles.append(handle)
        logger.debug("Acquired %s", description)
        return handle

    def push_mount(self, target: str) -> ReleaseHandle:
        return self.push(f"mount {target}", lambda: run_cmd(["umount", target], check=False))

    def push_swap(self, device: str) -> ReleaseHandle:
        return self.push(f"swap {device}", lambda: run_cmd(["swapoff", device], check=False))

    def register_file(self, path: str | Path) -> None:
        p = Path(path)
        if p not in self._files:
            self._files.append(p)

    @property
    def outstanding(self) -> List[ReleaseHandle]:
        return [h for h in self._handles if not h.released]

    def _best_effort(self, what: str, fn: Callable[[], object]) -> None:
        try:
            fn()
        except Exception as e:
            logger.warning("Cleanup: %s failed: %s", what, e)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        logger.info("Cleaning up (%d outstanding resources)", len(self.outstanding))

        for handle in reversed(self._handles):
            self._best_effort(f"release {handle.description}", handle.release)

        self._best_effort(
            f"umount -R {self.mount_root}",
            lambda: run_cmd(["umount", "-R", self.mount_root], check=False),
        )

        for p in self._files:
            self._best_effort(f"remove {p}", lambda p=p: p.unlink(missing_ok=True))

        logger.info("Cleanup complete")

    def _on_signal(self, signum: int, _frame: Optional[object]) -> None:
        logger.error("Received signal %d, aborting", signum)
        raise SystemExit(128 + signum)

    def install(self) -> "CleanupManager":
        """Register as the process exit handler (atexit + SIGTERM/SIGHUP)."""

        if self._installed:
            return self
        atexit.register(self.close)
        for sig in (signal.SIGTERM, signal.SIGHUP):
            signal.signal(sig, self._on_signal)
        self._installed = True
        return self

    def __enter__(self) -> "CleanupManager":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
