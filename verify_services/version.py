"""
Version helpers for Verify Services.

- ``__version__`` is the semantic version for packaging.
- ``git_describe()`` returns ``git describe`` metadata when running from a checkout.
"""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Optional

# Bump this when making a release; use semver (MAJOR.MINOR.PATCH)
__version__ = "0.3.0"


def _repo_root() -> Path:
    here = Path(__file__).resolve()
    for p in (here.parent, here.parent.parent):
        if (p / ".git").exists():
            return p
    return here.parent


def git_describe() -> Optional[str]:
    """
    Return `git describe --tags --long --dirty --always` output if available,
    else the GIT_DESCRIBE / GIT_REF environment variables, else None.
    """
    cmd = ["git", "-C", str(_repo_root()), "describe", "--tags", "--long", "--dirty", "--always"]
    try:
        out = subprocess.check_output(cmd, stderr=subprocess.DEVNULL, timeout=2.0)
        return out.decode().strip()
    except (OSError, subprocess.SubprocessError):
        return os.getenv("GIT_DESCRIBE") or os.getenv("GIT_REF")


__all__ = ["__version__", "git_describe"]
