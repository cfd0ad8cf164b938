from __future__ import annotations

import subprocess
from typing import List, Optional, Sequence, Tuple

import pytest


class FakeRun:
    """Stand-in for subprocess.run: records argv, answers by argv prefix."""

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.inputs: List[Optional[str]] = []
        self._rules: List[Tuple[Tuple[str, ...], str, int]] = []
        self._missing: set[str] = set()

    def on(self, prefix: Sequence[str], stdout: str = "", returncode: int = 0) -> "FakeRun":
        self._rules.insert(0, (tuple(prefix), stdout, returncode))
        return self

    def missing(self, binary: str) -> "FakeRun":
        self._missing.add(binary)
        return self

    def __call__(self, argv, input=None, **kwargs):
        argv = list(argv)
        if argv and argv[0] in self._missing:
            raise FileNotFoundError(argv[0])
        self.calls.append(argv)
        self.inputs.append(input)
        for prefix, stdout, rc in self._rules:
            if tuple(argv[: len(prefix)]) == prefix:
                return subprocess.CompletedProcess(argv, rc, stdout, "" if rc == 0 else "boom")
        return subprocess.CompletedProcess(argv, 0, "", "")

    def index(self, prefix: Sequence[str]) -> int:
        for i, argv in enumerate(self.calls):
            if tuple(argv[: len(prefix)]) == tuple(prefix):
                return i
        raise AssertionError(f"{list(prefix)} was never run; calls: {self.calls}")

    def all(self, prefix: Sequence[str]) -> List[List[str]]:
        return [a for a in self.calls if tuple(a[: len(prefix)]) == tuple(prefix)]


@pytest.fixture
def fake_run(monkeypatch):
    fake = FakeRun()
    monkeypatch.setattr("pyrite_installer.lib.command.subprocess.run", fake)
    return fake


@pytest.fixture
def no_sleep(monkeypatch):
    monkeypatch.setattr("pyrite_installer.lib.storage.time.sleep", lambda _s: None)
