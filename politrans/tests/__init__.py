"""
politrans.tests helpers

- Deterministic test defaults (hash seed, Hypothesis profile).
- Shared identities and the `mk_token` factory live in conftest.py.
"""

from __future__ import annotations

import os

from hypothesis import settings

# Stable hashing across runs
os.environ.setdefault("PYTHONHASHSEED", "0")

# Hypothesis defaults: faster local runs, deeper CI runs
settings.register_profile("local", settings(max_examples=60, deadline=None))
settings.register_profile("ci", settings(max_examples=200, deadline=None))
_profile = os.environ.get("HYPOTHESIS_PROFILE") or ("ci" if os.environ.get("CI") else "local")
settings.load_profile(_profile)
