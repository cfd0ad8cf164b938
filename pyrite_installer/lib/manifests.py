from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import yaml

DEFAULT_MANIFEST = "install.yaml"


def _manifest_dir() -> Path:
    # pyrite_installer/lib/manifests.py -> pyrite_installer/manifests
    return Path(__file__).resolve().parents[1] / "manifests"


def load_yaml(path: Path) -> Dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Manifest must be a mapping/dict: {path}")
    return data


def load_install_manifest(name: str = DEFAULT_MANIFEST) -> Dict[str, Any]:
    """Load a packaged manifest (manifests/<name>)."""
    return load_yaml(_manifest_dir() / name)
