"""Compilation of synthesized snippet programs into runnable units."""

import traceback
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import CodeType


@dataclass(frozen=True, kw_only=True)
class CompiledSnippet:
    """Program that compiled and can be executed."""

    source: str
    filename: str
    code: CodeType = field(repr=False)


@dataclass(frozen=True, kw_only=True)
class BuildFailure:
    """Program that failed to compile, with the compiler's diagnostic."""

    filename: str
    diagnostic: str


class SnippetCompiler(ABC):
    """Turns program text into a runnable unit or a build failure."""

    @abstractmethod
    def compile(self, source: str, filename: str) -> CompiledSnippet | BuildFailure:
        """Compile ``source``, reporting ``filename`` in diagnostics."""


class PythonSnippetCompiler(SnippetCompiler):
    """Byte-compiles snippets with the running interpreter."""

    def compile(self, source: str, filename: str) -> CompiledSnippet | BuildFailure:
        """Compile with the builtin compiler; syntax errors become build failures."""
        try:
            code = compile(source, filename, "exec", dont_inherit=True)
        except (SyntaxError, ValueError) as e:
            diagnostic = "".join(traceback.format_exception_only(e)).rstrip()
            return BuildFailure(filename=filename, diagnostic=diagnostic)
        return CompiledSnippet(source=source, filename=filename, code=code)
