"""Request safety gate."""

from __future__ import annotations

from bookloom.safety.gate import SafetyGate

__all__ = ["SafetyGate"]
