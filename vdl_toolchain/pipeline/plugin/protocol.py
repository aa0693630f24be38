"""
Plugin wire protocol.

A plugin receives exactly one JSON request on stdin and answers with exactly
one JSON response on stdout:

    request:  {"version": str, "schema": str, "ir": {...}, "options": any}
    response: {"files": [{"path": str, "content": str}, ...]}
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from ...errors import PluginResponseError
from ..analyzer.ir_nodes import IR
from ..output import GeneratedFile, check_relative_path


@dataclass(frozen=True)
class PluginRequest:
    """The document sent to a plugin."""

    version: str
    schema: str
    ir: IR
    options: Any = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "schema": self.schema,
            "ir": self.ir.to_dict(),
            "options": self.options if self.options is not None else {},
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


@dataclass(frozen=True)
class PluginResponse:
    """The files a plugin asked to write."""

    files: tuple[GeneratedFile, ...] = ()

    @staticmethod
    def from_json(text: str, target: str | None = None) -> PluginResponse:
        """
        Parse and validate plugin stdout.

        Raises:
            PluginResponseError: If stdout is not exactly one valid response object
        """
        if not text.strip():
            raise PluginResponseError("plugin produced no output", target)
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise PluginResponseError(f"plugin output is not valid JSON: {e}", target) from e
        return PluginResponse.from_dict(data, target)

    @staticmethod
    def from_dict(data: Any, target: str | None = None) -> PluginResponse:
        if not isinstance(data, dict) or not isinstance(data.get("files"), list):
            raise PluginResponseError("plugin response must be an object with a 'files' list", target)

        files = []
        seen: set[str] = set()
        for i, entry in enumerate(data["files"]):
            if not isinstance(entry, dict):
                raise PluginResponseError(f"files[{i}] must be an object", target)
            path = entry.get("path")
            content = entry.get("content")
            if not isinstance(path, str) or not isinstance(content, str):
                raise PluginResponseError(f"files[{i}] needs string 'path' and 'content'", target)
            try:
                normalized = str(check_relative_path(path))
            except ValueError as e:
                raise PluginResponseError(f"files[{i}]: {e}", target) from e
            if normalized in seen:
                raise PluginResponseError(f"files[{i}]: duplicate path {path!r}", target)
            seen.add(normalized)
            files.append(GeneratedFile(path=path, content=content))

        return PluginResponse(files=tuple(files))
