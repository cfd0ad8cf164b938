from __future__ import annotations

import logging
import re
from typing import Optional

from ..errors import CommandError
from .command import run_cmd

logger = logging.getLogger(__name__)

_TZ_RE = re.compile(r"^[A-Za-z_]+(?:/[A-Za-z0-9_+\-]+){0,2}$")


def is_online(host: str = "archlinux.org", *, timeout_s: int = 5) -> bool:
    """Best-effort online check."""

    try:
        r = run_cmd(["ping", "-c", "1", "-W", str(timeout_s), host], check=False, timeout=timeout_s + 5)
    except CommandError as e:
        logger.warning("Connectivity probe unavailable: %s", e)
        return False
    return r.ok


def guess_timezone(url: str, *, timeout_s: int = 5) -> Optional[str]:
    """Geolocated timezone name, or None. Never raises."""

    try:
        r = run_cmd(["curl", "-fsS", "--max-time", str(timeout_s), url], check=False, timeout=timeout_s + 5)
    except CommandError:
        return None
    tz = r.stdout.strip()
    if not r.ok or not _TZ_RE.match(tz):
        return None
    return tz
