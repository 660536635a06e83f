# rdgen/grammar/__init__.py
"""Grammar model, DSL parser and structural checks."""

from .ast import (
    Span, Modifier, Terminal, Field, BranchVariant, BranchRule, ProductRule, Grammar,
)
from .parser import parse_grammar
from .check import check_grammar, collect_warnings
from .loader import load_grammar, load_grammar_text
