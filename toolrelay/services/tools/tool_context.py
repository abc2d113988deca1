"""ToolContext — runtime context injected into every tool execution.

This is NOT part of a tool's input schema. It carries the session and message
ids of the call so handlers can log and tag their side-effects.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from toolrelay.config import Settings, settings as default_settings


@dataclass(frozen=True)
class ToolContext:
    """Immutable context injected into every tool invocation."""

    message_id: str
    session_id: Optional[str] = None
    settings: Settings = field(default_factory=lambda: default_settings)
