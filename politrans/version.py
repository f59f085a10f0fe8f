from __future__ import annotations

"""
politrans.version — semantic version string.

Rules:
- BASE_VERSION is the semver for this package.
- If POLITRANS_VERSION is set in the environment, that wins (CI stamps builds
  this way).
"""

import os
import re

# Bump this on intentional releases.
BASE_VERSION = "0.3.0"

_SEMVER_RE = re.compile(r"^\d+\.\d+\.\d+([.+-][0-9A-Za-z.+-]+)?$")


def _env_version() -> str | None:
    v = os.environ.get("POLITRANS_VERSION", "").strip()
    if v and _SEMVER_RE.match(v):
        return v
    return None


__version__ = _env_version() or BASE_VERSION

__all__ = ["BASE_VERSION", "__version__"]
