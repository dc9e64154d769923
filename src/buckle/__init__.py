"""buckle — Taking care of your bootstrapping needs."""

from __future__ import annotations

__version__ = "0.1.0"
