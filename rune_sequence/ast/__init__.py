from __future__ import annotations

from .diagnostics import Diagnostic, DiagnosticLevel
from .nodes import (
    Alternative,
    TokenAlternative,
    MarkerAlternative,
    GroupAlternative,
    Term,
    Step,
    SequenceDefinition,
)
from .tokenizer import Token, tokenize
from .settings import ParsedRotation, split_rotation
from .parser import ParserConfig, DEFAULT_PARSER_CONFIG, parse
from .codec import render, export_simple, export_deep
from .compiler import CompileResult, compile_rotation

__all__ = [
    "Diagnostic",
    "DiagnosticLevel",
    "Alternative",
    "TokenAlternative",
    "MarkerAlternative",
    "GroupAlternative",
    "Term",
    "Step",
    "SequenceDefinition",
    "Token",
    "tokenize",
    "ParsedRotation",
    "split_rotation",
    "ParserConfig",
    "DEFAULT_PARSER_CONFIG",
    "parse",
    "render",
    "export_simple",
    "export_deep",
    "CompileResult",
    "compile_rotation",
]
