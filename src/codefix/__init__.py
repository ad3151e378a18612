"""codefix - drive pluggable analyzers and fixers until a code base converges."""

from __future__ import annotations

__version__ = "0.1.0"
