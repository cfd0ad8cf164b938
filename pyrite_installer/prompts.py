from __future__ import annotations

import getpass
import logging
import re
from pathlib import Path
from typing import Callable, Optional, Sequence

from .context import SystemConfig
from .errors import AbortedByOperator
from .lib.block import Disk

logger = logging.getLogger(__name__)

HOSTNAME_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?$")
USERNAME_RE = re.compile(r"^[a-z_][a-z0-9_-]{0,31}$")
LOCALE_RE = re.compile(r"^(?:C|POSIX|[A-Za-z]{2,3}(?:_[A-Z]{2})?)(?:\.[A-Za-z0-9-]+)?(?:@[A-Za-z]+)?$")
MIN_PASSWORD_LENGTH = 6
RESERVED_USERNAMES = {"root", "bin", "daemon", "nobody", "mail", "ftp", "http"}

Validator = Callable[[str], Optional[str]]


def validate_hostname(value: str) -> Optional[str]:
    if not HOSTNAME_RE.match(value):
        return "Hostname may contain only letters, digits and '-', 1-63 chars, not starting or ending with '-'"
    return None


def validate_username(value: str) -> Optional[str]:
    if not USERNAME_RE.match(value):
        return "Username must start with a lowercase letter or '_' and contain only a-z, 0-9, '_' or '-'"
    if value in RESERVED_USERNAMES:
        return f"Username {value!r} is reserved"
    return None


def validate_password(password: str, confirmation: str, min_length: int = MIN_PASSWORD_LENGTH) -> Optional[str]:
    if len(password) < min_length:
        return f"Password must be at least {min_length} characters"
    if password != confirmation:
        return "Passwords do not match"
    return None


def validate_locale(value: str) -> Optional[str]:
    if not LOCALE_RE.match(value):
        return "Locale must look like en_US.UTF-8 or C.UTF-8"
    return None


def timezone_validator(zoneinfo: str) -> Validator:
    def check(value: str) -> Optional[str]:
        if not value or ".." in value or value.startswith("/"):
            return "Invalid timezone"
        if not (Path(zoneinfo) / value).is_file():
            return f"Unknown timezone {value!r}"
        return None

    return check


class Prompter:
    """Interactive input; every answer is validated and re-asked until valid."""

    def __init__(
        self,
        input_fn: Callable[[str], str] = input,
        secret_fn: Callable[[str], str] = getpass.getpass,
        out: Callable[[str], None] = print,
    ) -> None:
        self._input = input_fn
        self._secret = secret_fn
        self._out = out

    def _read(self, fn: Callable[[str], str], prompt: str) -> str:
        try:
            return fn(prompt)
        except EOFError as e:
            raise AbortedByOperator("Input closed") from e

    def ask(self, prompt: str, *, default: Optional[str] = None, validator: Optional[Validator] = None) -> str:
        suffix = f" [{default}]" if default else ""
        while True:
            answer = self._read(self._input, f"{prompt}{suffix}: ").strip()
            if not answer and default is not None:
                answer = default
            error = validator(answer) if validator else (None if answer else "A value is required")
            if error is None:
                return answer
            self._out(f"Invalid input: {error}")

    def confirm(self, prompt: str, *, default: bool = False) -> bool:
        """Yes/no; an empty answer or closed input means the default (no, unless stated)."""

        hint = "[Y/n]" if default else "[y/N]"
        while True:
            try:
                answer = self._input(f"{prompt} {hint}: ").strip().lower()
            except EOFError:
                return False
            if not answer:
                return default
            if answer in {"y", "yes"}:
                return True
            if answer in {"n", "no"}:
                return False
            self._out("Please answer y or n")

    def ask_int(self, prompt: str, *, default: int, minimum: int, maximum: int) -> int:
        def check(value: str) -> Optional[str]:
            if not value.isdecimal() or not minimum <= int(value) <= maximum:
                return f"Enter a whole number between {minimum} and {maximum}"
            return None

        return int(self.ask(prompt, default=str(default), validator=check))

    def ask_password(self, label: str, *, min_length: int = MIN_PASSWORD_LENGTH) -> str:
        while True:
            first = self._read(self._secret, f"{label} password: ")
            second = self._read(self._secret, f"Confirm {label} password: ")
            error = validate_password(first, second, min_length)
            if error is None:
                return first
            self._out(f"Invalid input: {error}")

    def choose_disk(self, disks: Sequence[Disk]) -> Disk:
        self._out("Available disks:")
        for i, d in enumerate(disks, start=1):
            self._out(f"  {i}) {d.describe()}")

        def check(value: str) -> Optional[str]:
            if not value.isdecimal() or not 1 <= int(value) <= len(disks):
                return f"Select a number between 1 and {len(disks)}"
            return None

        return disks[int(self.ask("Select target disk", validator=check)) - 1]


def collect_config(
    prompter: Prompter,
    *,
    zoneinfo: str,
    timezone_guess: Optional[str] = None,
    memory_gb: int = 4,
) -> SystemConfig:
    """Ask for every operator choice up front, before anything is destroyed."""

    hostname = prompter.ask("Hostname", default="pyrite", validator=validate_hostname)
    username = prompter.ask("Username", validator=validate_username)
    user_password = prompter.ask_password(f"{username}'s")
    root_password = prompter.ask_password("root")
    timezone = prompter.ask("Timezone", default=timezone_guess or "UTC", validator=timezone_validator(zoneinfo))
    locale = prompter.ask("Locale", default="en_US.UTF-8", validator=validate_locale)

    enable_swap = prompter.confirm("Create a swap partition?", default=True)
    swap_size_gb = 0
    if enable_swap:
        swap_size_gb = prompter.ask_int("Swap size in GB", default=min(max(memory_gb, 1), 8), minimum=1, maximum=128)

    enable_firewall = prompter.confirm("Enable firewall (ufw)?", default=True)
    enable_ssh = prompter.confirm("Enable SSH server?", default=False)
    ssh_password_auth = False
    if enable_ssh:
        # Root login over SSH is always disabled; password login for users is opt-in behind a firewall.
        ssh_password_auth = prompter.confirm(
            f"Allow SSH password login for {username}? (key login is always allowed)",
            default=not enable_firewall,
        )

    return SystemConfig(
        hostname=hostname,
        username=username,
        user_password=user_password,
        root_password=root_password,
        timezone=timezone,
        locale=locale,
        enable_ssh=enable_ssh,
        enable_firewall=enable_firewall,
        enable_swap=enable_swap,
        swap_size_gb=swap_size_gb,
        ssh_password_auth=ssh_password_auth,
    )
