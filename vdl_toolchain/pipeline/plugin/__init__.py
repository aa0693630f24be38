"""
Plugin module.

Contains the JSON request/response protocol and the subprocess runner used to
drive external generators.
"""

from __future__ import annotations

from .protocol import PluginRequest, PluginResponse
from .runner import PluginRunner

__all__ = [
    "PluginRequest",
    "PluginResponse",
    "PluginRunner",
]
