# rdgen/codegen/__init__.py
"""IR construction and text emitters (Rust parser/AST, tokenizer scanner, Mermaid diagram, type-size report)."""

from .ir import CodegenIR, ElementKind, build_ir
from .emit_rs import emit_parser_to_string, emit_ast_to_string
from .emit_tokenmap import emit_token_scanner_to_string
