import logging

import pytest

from pyrite_installer import main as main_mod
from pyrite_installer.errors import PreconditionError


@pytest.fixture
def isolated_process(monkeypatch):
    monkeypatch.setattr("pyrite_installer.cleanup.signal.signal", lambda *_a: None)
    monkeypatch.setattr("pyrite_installer.cleanup.atexit.register", lambda *_a: None)
    root = logging.getLogger()
    before = list(root.handlers)
    yield
    for h in root.handlers:
        if h not in before:
            root.removeHandler(h)
            h.close()
    for attr in ("_pyrite_configured", "_pyrite_log_path"):
        if hasattr(root, attr):
            delattr(root, attr)


def test_help_exits_cleanly(capsys):
    with pytest.raises(SystemExit) as exc:
        main_mod.main(["--help"])
    assert exc.value.code == 0
    assert "pyrite-install" in capsys.readouterr().out


def _failing_steps(error):
    class Boom:
        step_id = "10_check_requirements"
        stage = None

        def run(self, ctx):
            raise error

    return lambda prompter, log_path=None: [Boom()]


def test_failed_step_returns_nonzero_and_cleans_up(fake_run, isolated_process, monkeypatch, tmp_path):
    monkeypatch.setattr(main_mod, "build_steps", _failing_steps(PreconditionError("UEFI firmware required")))
    log = tmp_path / "install.log"

    assert main_mod.run(log_path=str(log)) == 1
    assert ["umount", "-R", "/mnt"] in fake_run.calls
    assert "10_check_requirements: UEFI firmware required" in log.read_text()


def test_interrupt_returns_130(fake_run, isolated_process, monkeypatch, tmp_path):
    monkeypatch.setattr(main_mod, "build_steps", _failing_steps(KeyboardInterrupt()))
    assert main_mod.run(log_path=str(tmp_path / "install.log")) == 130
    assert ["umount", "-R", "/mnt"] in fake_run.calls


def test_unexpected_error_is_logged_and_returns_1(fake_run, isolated_process, monkeypatch, tmp_path):
    monkeypatch.setattr(main_mod, "build_steps", _failing_steps(ValueError("btrfs.mount_options must not be empty")))
    log = tmp_path / "install.log"

    assert main_mod.run(log_path=str(log)) == 1
    text = log.read_text()
    assert "Installation failed at 10_check_requirements" in text
    assert "Traceback" in text and "btrfs.mount_options must not be empty" in text
    assert ["umount", "-R", "/mnt"] in fake_run.calls
