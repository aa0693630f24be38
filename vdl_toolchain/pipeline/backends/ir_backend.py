"""IR JSON backend: writes the IR document itself, for tooling that consumes it directly."""

from __future__ import annotations

from ...errors import BackendError
from ..analyzer.ir_nodes import IR, TypeRef
from ..config import IrOptions
from ..output import GeneratedFile, check_relative_path
from .base import CodeBackend


class IrBackend(CodeBackend):
    """Serializes the IR as JSON."""

    OPTIONS_CLASS = IrOptions

    def generate(self, ir: IR) -> list[GeneratedFile]:
        try:
            check_relative_path(self.options.filename)
        except ValueError as e:
            raise BackendError(f"invalid IR filename: {e}") from e
        content = ir.to_json(minify=self.options.minify)
        return [GeneratedFile(self.options.filename, content + "\n")]

    def translate_type(self, type_ref: TypeRef) -> str:
        return type_ref.kind.value
