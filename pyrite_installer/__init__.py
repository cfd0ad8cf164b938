"""Pyrite Linux installer (Python-first, strictly ordered).

Core design goals:
- One explicit pipeline, one explicit context
- Btrfs subvolume layout with a single mount-option source
- Teardown on every exit path
- Centralized logging
"""

__all__ = []

__version__ = "2.0.0"
