import pytest

from pyrite_installer.errors import AbortedByOperator
from pyrite_installer.lib.block import Disk
from pyrite_installer.prompts import (
    Prompter,
    collect_config,
    validate_hostname,
    validate_locale,
    validate_password,
    validate_username,
)


class Script:
    def __init__(self, *answers):
        self.answers = list(answers)
        self.prompts = []

    def __call__(self, prompt):
        self.prompts.append(prompt)
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)


def _prompter(inputs=(), secrets=()):
    out = []
    return Prompter(input_fn=Script(*inputs), secret_fn=Script(*secrets), out=out.append), out


def test_hostname_rules():
    assert validate_hostname("my_host!") is not None
    assert validate_hostname("my-host1") is None
    assert validate_hostname("-leading") is not None


def test_hostname_is_reprompted():
    prompter, out = _prompter(["my_host!", "my-host1"])
    assert prompter.ask("Hostname", validator=validate_hostname) == "my-host1"
    assert len([o for o in out if o.startswith("Invalid input")]) == 1


def test_username_rules():
    assert validate_username("Admin") is not None
    assert validate_username("admin") is None
    assert validate_username("root") is not None


def test_password_rules():
    assert validate_password("abc12", "abc12") is not None
    assert validate_password("abc123", "abc123") is None
    assert validate_password("abc123", "abc124") is not None


def test_password_reprompted_until_valid_and_confirmed():
    prompter, out = _prompter(secrets=["abc12", "abc12", "abc123", "abc124", "abc123", "abc123"])
    assert prompter.ask_password("root") == "abc123"
    assert len(out) == 2


@pytest.mark.parametrize("answer,expected", [("", False), ("n", False), ("y", True), ("YES", True)])
def test_confirm_defaults_to_no(answer, expected):
    prompter, _ = _prompter([answer])
    assert prompter.confirm("Erase /dev/sda?") is expected


def test_confirm_treats_closed_input_as_no():
    prompter, _ = _prompter([])
    assert prompter.confirm("Erase /dev/sda?", default=True) is False


def test_choose_disk_reprompts_out_of_range():
    disks = [Disk("/dev/sda", 60.0, "A"), Disk("/dev/sdb", 120.0, "B")]
    prompter, out = _prompter(["3", "0", "x", "\u00b2", "2"])
    assert prompter.choose_disk(disks) == disks[1]
    assert len([o for o in out if o.startswith("Invalid input")]) == 4


def test_swap_size_rejects_superscript_digits():
    prompter, out = _prompter(["\u00b2", "4"])
    assert prompter.ask_int("Swap size in GB", default=2, minimum=1, maximum=128) == 4
    assert len(out) == 1


def test_ask_aborts_on_closed_input():
    prompter, _ = _prompter([])
    with pytest.raises(AbortedByOperator):
        prompter.ask("Username", validator=validate_username)


def test_collect_config(tmp_path):
    (tmp_path / "Europe").mkdir()
    (tmp_path / "Europe/Paris").write_text("TZif")
    inputs = [
        "",  # hostname default
        "Admin",
        "admin",
        "Mars/Base",
        "",  # timezone from geolocation
        "",  # locale default
        "y",  # swap
        "2",
        "",  # firewall default yes
        "y",  # ssh
        "",  # password login default no behind firewall
    ]
    prompter, _ = _prompter(inputs, ["hunter22", "hunter22", "rootpass", "rootpass"])
    cfg = collect_config(prompter, zoneinfo=str(tmp_path), timezone_guess="Europe/Paris")

    assert cfg.hostname == "pyrite"
    assert cfg.username == "admin"
    assert cfg.timezone == "Europe/Paris"
    assert cfg.locale == "en_US.UTF-8"
    assert (cfg.enable_swap, cfg.swap_size_gb) == (True, 2)
    assert cfg.enable_firewall and cfg.enable_ssh
    assert cfg.ssh_password_auth is False
    assert "hunter22" not in repr(cfg)
    assert "user_password" not in cfg.public()


@pytest.mark.parametrize("locale", ["en_US.UTF-8", "de_DE.UTF-8", "C.UTF-8", "C", "POSIX", "sr_RS@latin"])
def test_locale_accepts(locale):
    assert validate_locale(locale) is None


@pytest.mark.parametrize("locale", ["", "english", "en_us.UTF-8", "C.UTF 8"])
def test_locale_rejects(locale):
    assert validate_locale(locale) is not None
