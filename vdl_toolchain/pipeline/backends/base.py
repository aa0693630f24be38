"""
Base class for code generation backends.

Defines the interface that all built-in generators implement. A backend is a
deterministic function of the IR and its options: the same input always
yields byte-identical files.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import jinja2

from ...utils import escape_identifier, to_pascal_case
from ..analyzer.ir_nodes import IR, Deprecation, FieldDef, TypeRef
from ..analyzer.patterns import PLACEHOLDER_PATTERN
from ..config import GeneratorOptions
from ..output import GeneratedFile

GENERATION_COMMENT = "Code generated by vdl. DO NOT EDIT."


@dataclass(frozen=True)
class RecordDef:
    """A record to emit: a declared type, an inline object or an operation payload."""

    name: str
    fields: tuple[FieldDef, ...]
    doc: str | None = None
    deprecated: Deprecation | None = None


class CodeBackend(ABC):
    """Abstract base class for code generation backends."""

    # Type mapping from IR primitive names to language types
    TYPE_MAP: dict[str, str] = {}

    # Template directory name
    TEMPLATE_LANG: str = ""

    # Identifiers that get an underscore suffix
    RESERVED: frozenset[str] = frozenset()

    # Options dataclass built from the target's free-form options
    OPTIONS_CLASS: type = GeneratorOptions

    def __init__(self, options: Any = None):
        """
        Initialize the backend.

        Args:
            options: An options instance, a dictionary of options, or None
        """
        if isinstance(options, self.OPTIONS_CLASS):
            self.options = options
        else:
            self.options = self.OPTIONS_CLASS.from_dict(options)
        if self.TEMPLATE_LANG:
            self._setup_templates()

    def _setup_templates(self) -> None:
        """Set up Jinja2 templates."""
        template_dir = Path(__file__).parent.parent.parent / "templates" / self.TEMPLATE_LANG
        self.jinja_env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            lstrip_blocks=True,
            trim_blocks=True,
            keep_trailing_newline=True,
        )

    @abstractmethod
    def generate(self, ir: IR) -> list[GeneratedFile]:
        """
        Generate files from IR.

        Args:
            ir: The intermediate representation

        Returns:
            Generated files with paths relative to the output directory
        """

    @abstractmethod
    def translate_type(self, type_ref: TypeRef) -> str:
        """
        Translate an IR type to a language-specific type string.

        Args:
            type_ref: The type reference

        Returns:
            Language-specific type string
        """

    def render(self, template_name: str, **context: Any) -> str:
        """Render one template with the shared header context."""
        template = self.jinja_env.get_template(template_name)
        return template.render(
            generation_comment=GENERATION_COMMENT if self.options.add_generation_comment else None,
            comment_prefix=self._get_comment_prefix(),
            **context,
        )

    def _get_comment_prefix(self) -> str:
        """Get the comment prefix for the language."""
        return "#" if self.TEMPLATE_LANG == "python" else "//"

    def identifier(self, name: str) -> str:
        """Escape a name that collides with a reserved word."""
        return escape_identifier(name, self.RESERVED)

    def unique_identifiers(self, names: list[str], convert) -> list[str]:
        """Convert names to identifiers, suffixing a counter where two collide."""
        result: list[str] = []
        for name in names:
            candidate = self.identifier(convert(name) or "value")
            if candidate[0].isdigit():
                candidate = f"_{candidate}"
            base, counter = candidate, 2
            while candidate in result:
                candidate = f"{base}{counter}"
                counter += 1
            result.append(candidate)
        return result

    @staticmethod
    def records(ir: IR) -> list[RecordDef]:
        """All records to emit: declared types, inline objects and operation payloads.

        Inline objects reached through several spreads are emitted once.
        """
        records = [RecordDef(t.name, t.fields, t.doc, t.deprecated) for t in ir.types]
        inline: dict[str, RecordDef] = {}
        for obj in ir.inline_objects():
            inline.setdefault(obj.object_name, RecordDef(obj.object_name, obj.object_fields or ()))
        records.extend(inline[name] for name in sorted(inline))
        for op in ir.procedures + ir.streams:
            prefix = f"{op.rpc_name}{to_pascal_case(op.name)}"
            records.append(RecordDef(f"{prefix}Input", op.input, op.doc))
            records.append(RecordDef(f"{prefix}Output", op.output, op.doc))
        return records

    @staticmethod
    def order_fields(fields: tuple[FieldDef, ...]) -> list[FieldDef]:
        """Order fields: required fields first, then optional ones, each in declaration order."""
        return [f for f in fields if not f.optional] + [f for f in fields if f.optional]

    @staticmethod
    def pattern_segments(template: str) -> list[tuple[bool, str]]:
        """Split a template into ``(is_placeholder, text)`` segments."""
        segments: list[tuple[bool, str]] = []
        pos = 0
        for match in PLACEHOLDER_PATTERN.finditer(template):
            if match.start() > pos:
                segments.append((False, template[pos : match.start()]))
            segments.append((True, match.group(1)))
            pos = match.end()
        if pos < len(template):
            segments.append((False, template[pos:]))
        return segments
