"""floe-catalog command-line interface."""

from __future__ import annotations

__all__: list[str] = []
